import logging
import math

import numpy as np
import pytest

from qverify.algorithms import (
    NO_COUNTS_ADVICE,
    VALIDATORS,
    Algorithm,
    bell_expected,
    grover_iterations,
    teleportation_expected,
)
from qverify.circuit import Circuit
from qverify.config import SimulatorConfig
from qverify.simulator import simulate


def _run(key, n=3, **kwargs):
    return simulate(Circuit(n, name=key), seed=0, **kwargs)


def test_every_algorithm_has_a_validator():
    assert set(VALIDATORS) == set(Algorithm)


@pytest.mark.parametrize("name, alg", [
    ("bell", Algorithm.BELL),
    ("My Bell test", Algorithm.BELL),
    ("GHZ-5", Algorithm.GHZ),
    ("deutsch-jozsa", Algorithm.DEUTSCH_JOZSA),
    ("DEUTSCH_JOZSA", Algorithm.DEUTSCH_JOZSA),
    ("teleport me", Algorithm.TELEPORTATION),
    ("superdense coding", Algorithm.SUPERDENSE),
    ("Grover search", Algorithm.GROVER),
    ("quantum fourier transform", Algorithm.QFT),
    ("vqe ansatz", Algorithm.GENERIC),
    ("", Algorithm.GENERIC),
    (None, Algorithm.GENERIC),
])
def test_detect(name, alg):
    assert Algorithm.detect(name) is alg


@pytest.mark.parametrize("alg", list(Algorithm))
def test_ideal_runs_are_valid(alg):
    result = _run(alg.key)
    assert result.is_valid, result.recommendations
    assert result.kind is alg
    assert result.algorithm == alg.title
    assert np.isclose(result.error_rate, 1.0 - result.fidelity)
    assert result.execution_time >= 0.0


def test_bell_result():
    result = _run("bell")
    assert np.allclose(result.actual_state, bell_expected())
    assert result.fidelity >= 0.99
    assert result.quantum_advantage == 2.0
    assert result.num_qubits == 2
    assert result.gate_count == 2


def test_ghz_uses_circuit_width():
    result = _run("ghz", n=4)
    assert result.num_qubits == 4
    assert np.isclose(abs(result.actual_state[0]) ** 2, 0.5)
    assert np.isclose(abs(result.actual_state[15]) ** 2, 0.5)
    assert result.quantum_advantage == 2.5


def test_ghz_never_below_three_qubits():
    assert _run("ghz", n=2).num_qubits == 3


def test_deutsch_jozsa_reports_balanced():
    result = _run("deutsch-jozsa", n=2)
    assert np.allclose(result.actual_state, np.array([0, 1, 0, -1]) / np.sqrt(2))
    assert result.quantum_advantage == 3.0


def test_teleportation_amplitudes_are_uniform():
    result = _run("teleportation")
    assert np.allclose(np.abs(result.actual_state), 1 / math.sqrt(8))
    assert np.allclose(result.actual_state, teleportation_expected())
    assert result.quantum_advantage == 2.2


def test_superdense_decodes_11():
    result = _run("superdense", n=2)
    assert np.isclose(result.actual_state[3], 1.0)


def test_grover_three_qubits_amplifies_last_index():
    result = _run("grover", n=3)
    p = result.probabilities()
    assert np.argmax(p) == 7
    assert p[7] > 0.5
    assert all(p[7] > p[i] for i in range(7))
    assert np.isclose(result.quantum_advantage, math.sqrt(8))


def test_grover_iteration_cap(caplog):
    assert grover_iterations(5, 3) == (4, 3)
    with caplog.at_level(logging.WARNING, logger="qverify.algorithms"):
        result = _run("grover", n=5)

    assert "capped" in caplog.text
    assert any("capped" in r for r in result.recommendations)
    assert result.is_valid


def test_grover_cap_is_configurable():
    result = _run("grover", n=5, config=SimulatorConfig(grover_iteration_cap=4))
    assert not any("capped" in r for r in result.recommendations)
    assert result.probabilities()[31] > 0.99


@pytest.mark.parametrize("n", [2, 3, 4])
def test_qft_validator(n):
    result = _run("qft", n=n)
    assert result.is_valid
    assert np.isclose(result.quantum_advantage, 2 ** (n / 3))


def test_generic_runner_reports_fixed_scores():
    result = simulate(Circuit(2).h(0).cx(0, 1), seed=0)
    assert result.kind is Algorithm.GENERIC
    assert result.fidelity == 0.9
    assert result.quantum_advantage == 1.5
    assert "Verify circuit correctness" in result.recommendations


def test_depolarizing_lowers_bell_fidelity():
    result = _run("bell", noise={"depolarizing": 0.1})
    assert np.isclose(result.actual_state[0], 0.9 / np.sqrt(2))
    assert np.isclose(result.fidelity, 0.81)
    assert not result.is_valid
    assert result.quantum_advantage == 1.0
    assert "Consider error correction codes" in result.recommendations
    assert "Depolarizing noise is high - shorten the circuit or use dynamical decoupling" in result.recommendations


def test_gate_error_recommendation():
    result = _run("bell", noise={"gate_error": 0.05})
    assert "High gate error rate detected - calibrate hardware" in result.recommendations


def test_legacy_fidelity_method_saturates():
    # sum_i sqrt(|e_i| |a_i|) = 2 sqrt(0.45) > 1, clipped
    cfg = SimulatorConfig(fidelity_method="legacy")
    result = _run("bell", noise={"depolarizing": 0.1}, config=cfg)
    assert result.fidelity == 1.0
    assert result.is_valid


def test_result_to_dict():
    d = _run("bell", shots=100).to_dict()
    assert d["kind"] == "bell"
    assert d["actual_state"][0] == pytest.approx([1 / math.sqrt(2), 0.0])
    assert sum(d["counts"].values()) == 100
    assert set(d["counts"]) <= {"00", "11"}


@pytest.mark.parametrize("key, n", [
    ("bell", 2),
    ("ghz", 3),
    ("deutsch-jozsa", 2),
    ("deutsch-jozsa", 3),
    ("teleportation", 3),
    ("superdense", 2),
    ("grover", 3),
    ("qft", 3),
])
def test_depolarized_runs_are_invalid_without_advantage(key, n):
    result = _run(key, n=n, noise={"depolarizing": 0.1})
    assert result.is_valid is False
    assert result.quantum_advantage == 1.0
    assert np.isclose(result.fidelity, 0.81)


def test_depolarized_grover_still_amplifies_but_fails_fidelity():
    result = _run("grover", n=3, noise={"depolarizing": 0.1})
    p = result.probabilities()
    # target keeps 0.81 * 0.945 of the mass, but the 0.9 fidelity gate decides
    assert np.argmax(p) == 7
    assert p[7] > 0.5
    assert result.fidelity < 0.9
    assert result.is_valid is False


def test_depolarized_generic_run_fails_norm_check():
    result = simulate(Circuit(2).h(0), noise={"depolarizing": 0.1}, seed=0)
    assert result.is_valid is False
    assert result.fidelity == 0.5
    assert result.quantum_advantage == 1.5


def test_fully_depolarized_run_returns_result_without_counts():
    result = _run("bell", n=2, noise={"depolarizing": 1.0}, shots=10)
    assert result.counts is None
    assert NO_COUNTS_ADVICE in result.recommendations
    assert result.fidelity == 0.0
    assert result.is_valid is False


def test_fully_depolarized_generic_run_returns_result_without_counts():
    result = simulate(Circuit(1).h(0).measure(0), noise={"depolarizing": 1.0}, shots=5, seed=0)
    assert result.counts is None
    assert NO_COUNTS_ADVICE in result.recommendations
