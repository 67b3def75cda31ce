import numpy as np
import pytest

from qverify.fidelity import fidelity, magnitude_overlap, state_fidelity


def _random_state(n, seed):
    rng = np.random.default_rng(seed)
    v = rng.normal(size=2 ** n) + 1j * rng.normal(size=2 ** n)
    return v / np.linalg.norm(v)


def test_identical_states_have_fidelity_one():
    psi = _random_state(3, 0)
    assert np.isclose(state_fidelity(psi, psi), 1.0)


def test_orthogonal_states_have_fidelity_zero():
    assert state_fidelity([1, 0], [0, 1]) == 0.0


def test_fidelity_is_symmetric():
    a = _random_state(2, 1)
    b = _random_state(2, 2)
    assert np.isclose(state_fidelity(a, b), state_fidelity(b, a))


def test_global_phase_is_ignored_relative_phase_is_not():
    plus = np.array([1, 1]) / np.sqrt(2)
    minus = np.array([1, -1]) / np.sqrt(2)
    assert np.isclose(state_fidelity(plus, 1j * plus), 1.0)
    assert np.isclose(state_fidelity(plus, minus), 0.0)


def test_legacy_overlap_is_phase_blind():
    plus = np.array([1, 1]) / np.sqrt(2)
    minus = np.array([1, -1]) / np.sqrt(2)
    assert np.isclose(magnitude_overlap(plus, minus), 1.0)
    assert np.isclose(fidelity(plus, minus, method="legacy"), 1.0)


def test_shrunk_state_scores_below_one():
    bell = np.array([1, 0, 0, 1]) / np.sqrt(2)
    assert np.isclose(state_fidelity(bell, 0.9 * bell), 0.81)


def test_length_mismatch_and_unknown_method():
    with pytest.raises(ValueError):
        state_fidelity([1, 0], [1, 0, 0, 0])
    with pytest.raises(ValueError):
        fidelity([1, 0], [1, 0], method="trace")
