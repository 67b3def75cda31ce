import numpy as np
import pytest

from qverify.circuit import Circuit
from qverify.errors import MalformedNoiseModelError
from qverify.noise import (
    NoiseModel,
    apply_amplitude_damping,
    apply_depolarizing,
    apply_noise,
    apply_phase_damping,
    validate_noise_model,
)
from qverify.simulator import run_noisy_statevector, run_statevector


def test_noisy_runner_with_zero_noise_matches_clean_runner():
    c = Circuit(2).h(0).cx(0, 1)

    clean = run_statevector(c)
    noisy = run_noisy_statevector(c, NoiseModel(), rng=np.random.default_rng(0))

    assert np.allclose(noisy, clean, atol=1e-12)


def test_depolarizing_scales_every_amplitude():
    c = Circuit(2).h(0).cx(0, 1)
    psi = run_noisy_statevector(c, NoiseModel(depolarizing=0.1), seed=0)

    assert np.isclose(psi[0], 0.9 / np.sqrt(2))
    assert np.isclose(psi[3], 0.9 / np.sqrt(2))
    assert np.isclose(np.sum(np.abs(psi) ** 2), 0.81)


def test_amplitude_damping_shrinks_excited_amplitudes_only():
    psi = np.array([1, 1], dtype=complex) / np.sqrt(2)
    out = apply_amplitude_damping(psi, 0.36)

    assert np.isclose(out[0], 1 / np.sqrt(2))
    assert np.isclose(out[1], 0.8 / np.sqrt(2))


def test_amplitude_damping_counts_each_excited_qubit():
    psi = np.zeros(4, dtype=complex)
    psi[3] = 1.0
    out = apply_amplitude_damping(psi, 0.75)
    assert np.isclose(out[3], 0.25)


def test_phase_damping_keeps_magnitudes():
    psi = run_statevector(Circuit(3).h(0).h(1).h(2))
    for seed in range(5):
        out = apply_phase_damping(psi, 1.0, np.random.default_rng(seed))
        assert np.allclose(np.abs(out), np.abs(psi))


def test_phase_damping_zero_is_identity():
    psi = run_statevector(Circuit(2).h(0))
    out = apply_phase_damping(psi, 0.0, None)
    assert np.allclose(out, psi)


def test_gate_error_one_always_injects_a_pauli():
    c = Circuit(1).i(0)
    for seed in range(10):
        psi = run_noisy_statevector(c, NoiseModel(gate_error=1.0), seed=seed)
        # X or Y leave |1> up to phase, Z leaves |0>
        assert np.isclose(np.sum(np.abs(psi) ** 2), 1.0)
        assert np.isclose(max(abs(psi[0]), abs(psi[1])), 1.0)


def test_noisy_runs_are_reproducible():
    c = Circuit(3).h(0).cx(0, 1).cx(1, 2).rz(2, 0.4)
    model = NoiseModel(phase_damping=0.5, gate_error=0.3)
    a = run_noisy_statevector(c, model, seed=11)
    b = run_noisy_statevector(c, model, seed=11)
    assert np.allclose(a, b)


def test_apply_noise_does_not_touch_input():
    psi = np.array([1, 0], dtype=complex)
    apply_noise(psi, NoiseModel(depolarizing=0.5))
    assert psi[0] == 1.0
    assert np.allclose(apply_depolarizing(psi, 0.5), [0.5, 0])


@pytest.mark.parametrize("field", ["depolarizing", "amplitude_damping", "phase_damping", "gate_error"])
@pytest.mark.parametrize("value", [-0.1, 1.5, "x", float("nan")])
def test_out_of_range_probability_rejected(field, value):
    with pytest.raises(MalformedNoiseModelError):
        NoiseModel(**{field: value})


def test_from_dict_accepts_camel_case_and_rejects_unknown():
    m = NoiseModel.from_dict({"gateError": 0.02, "amplitudeDamping": 0.1})
    assert m.gate_error == 0.02
    assert m.amplitude_damping == 0.1
    assert m.to_dict()["gate_error"] == 0.02

    with pytest.raises(MalformedNoiseModelError):
        NoiseModel.from_dict({"thermal": 0.1})


def test_validate_noise_model():
    assert validate_noise_model(None) is None
    assert validate_noise_model({"depolarizing": 0.2}).depolarizing == 0.2
    assert NoiseModel().is_ideal
    with pytest.raises(MalformedNoiseModelError):
        validate_noise_model(0.1)
