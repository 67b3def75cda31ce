from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .apply import apply_single_qubit
from .errors import MalformedCircuitError
from .gates import H, S


def probabilities(amplitudes: np.ndarray) -> np.ndarray:
    psi = np.asarray(amplitudes, dtype=complex)
    return psi.real * psi.real + psi.imag * psi.imag


def _num_qubits(dim: int) -> int:
    n = int(dim).bit_length() - 1
    if 2 ** n != dim:
        raise ValueError(f"state length {dim} is not a power of two")
    return n


def qubit_probability(amplitudes: np.ndarray, qubit: int, value: int = 1) -> float:
    """Marginal probability that `qubit` reads `value`. Not renormalised."""
    p = probabilities(amplitudes)
    n = _num_qubits(p.shape[0])
    if qubit < 0 or qubit >= n:
        raise ValueError("qubit out of range")
    bits = (np.arange(p.shape[0]) >> qubit) & 1
    return float(p[bits == value].sum())


def register_nonzero_probability(amplitudes: np.ndarray, qubits: Iterable[int]) -> float:
    """Probability that at least one of `qubits` reads 1. Not renormalised."""
    p = probabilities(amplitudes)
    mask = 0
    for q in qubits:
        mask |= 1 << q
    idx = np.arange(p.shape[0])
    return float(p[(idx & mask) != 0].sum())


def _check_shots(shots) -> int:
    if isinstance(shots, bool) or not isinstance(shots, (int, np.integer)) or shots <= 0:
        raise MalformedCircuitError(f"shots must be a positive int, got {shots!r}")
    return int(shots)


def _sample_indices(amplitudes: np.ndarray, shots: int, rng: np.random.Generator) -> np.ndarray:
    if rng is None:
        raise ValueError("a numpy Generator is required for sampling")

    p = probabilities(amplitudes)
    total = float(p.sum())
    if total <= 0.0:
        raise ValueError("Cannot sample from a zero vector")

    # noisy states are not normalised; sampling always renormalises
    p = p / total
    outcomes = rng.choice(p.shape[0], size=shots, p=p)
    return np.bincount(outcomes, minlength=p.shape[0])


def sample_counts(amplitudes: np.ndarray, shots: int, rng: np.random.Generator) -> dict[str, int]:
    """
    Draw `shots` computational-basis samples. Keys are bitstrings with qubit
    n-1 first, so index 3 on 3 qubits is "011".
    """
    shots = _check_shots(shots)
    psi = np.asarray(amplitudes, dtype=complex)
    n = _num_qubits(psi.shape[0])

    hist = _sample_indices(psi, shots, rng)
    return {format(i, f"0{n}b"): int(c) for i, c in enumerate(hist) if c}


SDG = S.conj().T


def rotate_to_basis(amplitudes: np.ndarray, measurements) -> np.ndarray:
    """Copy of the state with each measured qubit rotated so Z-readout measures its basis."""
    psi = np.array(amplitudes, dtype=complex, copy=True)
    seen = set()
    for m in measurements:
        if m.qubit in seen:
            raise MalformedCircuitError(f"qubit {m.qubit} is measured more than once")
        seen.add(m.qubit)
        if m.basis == "X":
            apply_single_qubit(psi, H, m.qubit)
        elif m.basis == "Y":
            apply_single_qubit(psi, SDG, m.qubit)
            apply_single_qubit(psi, H, m.qubit)
    return psi


def sample_classical_counts(
    amplitudes: np.ndarray,
    measurements: Sequence,
    shots: int,
    rng: np.random.Generator,
) -> dict[str, int]:
    """
    Sample the measurements of a circuit. Keys are classical registers
    written with the highest classical bit first; unwritten bits read 0.
    """
    shots = _check_shots(shots)
    if not measurements:
        return sample_counts(amplitudes, shots, rng)

    psi = rotate_to_basis(amplitudes, measurements)
    num_clbits = max(m.clbit for m in measurements) + 1

    hist = _sample_indices(psi, shots, rng)
    counts: dict[str, int] = {}
    for index in np.nonzero(hist)[0]:
        bits = ["0"] * num_clbits
        for m in measurements:
            if (int(index) >> m.qubit) & 1:
                bits[num_clbits - 1 - m.clbit] = "1"
        key = "".join(bits)
        counts[key] = counts.get(key, 0) + int(hist[index])
    return counts
