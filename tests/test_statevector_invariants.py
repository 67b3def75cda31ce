import numpy as np
import pytest

from qverify.circuit import Circuit, random_circuit
from qverify.config import SimulatorConfig
from qverify.errors import CircuitTooLargeError, MalformedCircuitError, NormalizationDriftError
from qverify.simulator import run_statevector
from qverify.state import StateVector


def test_empty_circuit_is_zero_state():
    c = Circuit(3)
    psi = run_statevector(c)
    assert psi.shape == (8,)
    assert np.allclose(psi, np.array([1, 0, 0, 0, 0, 0, 0, 0], dtype=complex))


def test_x_on_qubit0_sets_least_significant_bit():
    # qubit 0 is bit 0 of the basis index, so |q2 q1 q0> = |001> is index 1
    c = Circuit(3).x(0)
    psi = run_statevector(c)

    expected = np.zeros(8, dtype=complex)
    expected[1] = 1.0
    assert np.allclose(psi, expected)


def test_x_on_highest_qubit_is_index_four():
    psi = run_statevector(Circuit(3).x(2))
    assert np.isclose(psi[4], 1.0)


def test_h_on_single_qubit_gives_half_half_probs():
    psi = run_statevector(Circuit(1).h(0))

    probs = np.abs(psi) ** 2
    assert np.allclose(probs.sum(), 1.0)
    assert np.allclose(probs, np.array([0.5, 0.5], dtype=float), atol=1e-12)


def test_bell_state_support_only_00_11():
    psi = run_statevector(Circuit(2).h(0).cx(0, 1))

    assert np.isclose(psi[0], 1 / np.sqrt(2), atol=1e-12)
    assert np.isclose(psi[3], 1 / np.sqrt(2), atol=1e-12)
    assert np.isclose(psi[1], 0.0, atol=1e-12)
    assert np.isclose(psi[2], 0.0, atol=1e-12)


def test_ghz_three_qubits():
    psi = run_statevector(Circuit(3).h(0).cx(0, 1).cx(0, 2))

    expected = np.zeros(8, dtype=complex)
    expected[0] = expected[7] = 1 / np.sqrt(2)
    assert np.allclose(psi, expected, atol=1e-12)


def test_toffoli_deterministic_mapping_011_to_111():
    c = Circuit(3).x(0).x(1).tof(0, 1, 2)
    psi = run_statevector(c)

    expected = np.zeros(8, dtype=complex)
    expected[7] = 1.0
    assert np.allclose(psi, expected, atol=1e-12)


def test_fredkin_swaps_only_when_control_set():
    # control q0 set, q1=1, q2=0 -> swap -> q1=0, q2=1: index 0b101
    psi = run_statevector(Circuit(3).x(0).x(1).fred(0, 1, 2))
    assert np.isclose(psi[0b101], 1.0)

    psi = run_statevector(Circuit(3).x(1).fred(0, 1, 2))
    assert np.isclose(psi[0b010], 1.0)


def test_x_twice_is_identity():
    c = Circuit(2).h(0).rz(0, 0.3).cx(0, 1)
    before = run_statevector(c)
    after = run_statevector(c.x(1).x(1))
    assert np.allclose(before, after, atol=1e-12)


@pytest.mark.parametrize("seed", range(10))
def test_random_circuits_stay_normalised(seed):
    c = random_circuit(seed, num_qubits=4, depth=40)
    psi = run_statevector(c)
    assert np.isclose(np.sum(np.abs(psi) ** 2), 1.0, atol=1e-10)


def test_amplitudes_are_a_read_only_copy():
    sv = StateVector(2)
    a = sv.amplitudes()
    with pytest.raises(ValueError):
        a[0] = 0.0
    assert np.isclose(sv.amplitudes()[0], 1.0)


def test_too_many_qubits_rejected_before_allocation():
    with pytest.raises(CircuitTooLargeError):
        StateVector(40)
    with pytest.raises(CircuitTooLargeError):
        run_statevector(Circuit(40))


def test_max_qubits_is_configurable():
    with pytest.raises(CircuitTooLargeError):
        run_statevector(Circuit(3), config=SimulatorConfig(max_qubits=2))


@pytest.mark.parametrize("n", [0, -1, 1.5, True])
def test_bad_qubit_count_is_malformed(n):
    with pytest.raises(MalformedCircuitError):
        StateVector(n)


def test_norm_drift_is_detected():
    sv = StateVector(1)
    sv._amps[0] = 2.0
    with pytest.raises(NormalizationDriftError):
        sv.apply_gate(Circuit(1).i(0).gates[0])
