from __future__ import annotations

import numpy as np


def _pair(expected, actual) -> tuple[np.ndarray, np.ndarray]:
    e = np.asarray(expected, dtype=complex).reshape(-1)
    a = np.asarray(actual, dtype=complex).reshape(-1)
    if e.shape != a.shape:
        raise ValueError(f"state lengths differ: {e.shape[0]} vs {a.shape[0]}")
    return e, a


def state_fidelity(expected, actual) -> float:
    """
    |<expected|actual>|^2, clipped to [0, 1].

    Relative phase matters, global phase does not. Neither vector is
    renormalised, so a noisy (shrunk) actual state scores below 1.
    """
    e, a = _pair(expected, actual)
    overlap = np.vdot(e, a)
    f = float(overlap.real * overlap.real + overlap.imag * overlap.imag)
    return min(1.0, max(0.0, f))


def magnitude_overlap(expected, actual) -> float:
    """
    Legacy score: min(1, sum_i sqrt(|e_i| |a_i|)).

    Phase-blind and not a fidelity in the quantum sense; kept only for parity
    with older reports.
    """
    e, a = _pair(expected, actual)
    return float(min(1.0, np.sum(np.sqrt(np.abs(e) * np.abs(a)))))


_METHODS = {
    "overlap": state_fidelity,
    "legacy": magnitude_overlap,
}


def fidelity(expected, actual, method: str = "overlap") -> float:
    try:
        fn = _METHODS[method]
    except KeyError:
        raise ValueError(f"unknown fidelity method {method!r}, expected one of {sorted(_METHODS)}") from None
    return fn(expected, actual)
