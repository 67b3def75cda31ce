from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from .errors import InvalidQubitIndexError, UnsupportedGateError
from .gates import Gate, GateKind

logger = logging.getLogger(__name__)

# Conventions for every kernel in this module:
# - statevector length 2**num_qubits, contiguous, mutated in place
# - qubit b of basis index i is (i >> b) & 1 (qubit 0 is least significant)


def _num_qubits(state: np.ndarray) -> int:
    return int(state.shape[0]).bit_length() - 1


def _require_buffer(state: np.ndarray) -> None:
    if state.ndim != 1 or not state.flags.c_contiguous or not state.flags.writeable:
        raise ValueError("state must be a writeable, contiguous 1-d array")


def check_qubits(qubits, num_qubits: int) -> None:
    for q in qubits:
        if q < 0 or q >= num_qubits:
            raise InvalidQubitIndexError(q, num_qubits)


def _indices(state: np.ndarray) -> np.ndarray:
    return np.arange(state.shape[0])


def apply_single_qubit(state: np.ndarray, U: np.ndarray, qubit: int) -> None:
    """
    Recombine every amplitude pair (i, i | 1<<qubit) with i's bit `qubit` clear:
        a0' = U00 a0 + U01 a1
        a1' = U10 a0 + U11 a1
    The (2**(n-q-1), 2, 2**q) view puts bit q on the middle axis.
    """
    _require_buffer(state)
    view = state.reshape(-1, 2, 1 << qubit)
    a0 = view[:, 0, :].copy()
    a1 = view[:, 1, :].copy()
    view[:, 0, :] = U[0, 0] * a0 + U[0, 1] * a1
    view[:, 1, :] = U[1, 0] * a0 + U[1, 1] * a1


def apply_controlled_x(state: np.ndarray, controls, target: int) -> None:
    _require_buffer(state)
    idx = _indices(state)
    cmask = 0
    for c in controls:
        cmask |= 1 << c
    tmask = 1 << target

    sel = idx[((idx & cmask) == cmask) & ((idx & tmask) == 0)]
    partner = sel | tmask
    state[sel], state[partner] = state[partner].copy(), state[sel].copy()


def apply_controlled_swap(state: np.ndarray, controls, q1: int, q2: int) -> None:
    _require_buffer(state)
    idx = _indices(state)
    cmask = 0
    for c in controls:
        cmask |= 1 << c
    m1 = 1 << q1
    m2 = 1 << q2

    # pairs |..1..0..> <-> |..0..1..>, each visited once
    sel = idx[((idx & cmask) == cmask) & ((idx & m1) != 0) & ((idx & m2) == 0)]
    partner = sel ^ (m1 | m2)
    state[sel], state[partner] = state[partner].copy(), state[sel].copy()


def apply_controlled_phase(state: np.ndarray, qubits, phase: complex) -> None:
    _require_buffer(state)
    idx = _indices(state)
    mask = 0
    for q in qubits:
        mask |= 1 << q
    state[(idx & mask) == mask] *= phase


def apply_phase_flip(state: np.ndarray, index: int) -> None:
    """Oracle: flip the sign of a single basis amplitude."""
    _require_buffer(state)
    state[index] *= -1


def apply_diffusion(state: np.ndarray) -> None:
    """Inversion about the mean: a_i -> 2<a> - a_i."""
    _require_buffer(state)
    mean = state.mean()
    state *= -1
    state += 2 * mean


def _single(state: np.ndarray, gate: Gate) -> None:
    apply_single_qubit(state, gate.matrix, gate.qubits[0])


def _cnot(state: np.ndarray, gate: Gate) -> None:
    control, target = gate.qubits
    apply_controlled_x(state, (control,), target)


def _toffoli(state: np.ndarray, gate: Gate) -> None:
    c1, c2, target = gate.qubits
    apply_controlled_x(state, (c1, c2), target)


def _swap(state: np.ndarray, gate: Gate) -> None:
    q1, q2 = gate.qubits
    apply_controlled_swap(state, (), q1, q2)


def _fredkin(state: np.ndarray, gate: Gate) -> None:
    control, q1, q2 = gate.qubits
    apply_controlled_swap(state, (control,), q1, q2)


def _cz(state: np.ndarray, gate: Gate) -> None:
    apply_controlled_phase(state, gate.qubits, -1.0)


def _cp(state: np.ndarray, gate: Gate) -> None:
    apply_controlled_phase(state, gate.qubits, np.exp(1j * gate.params[0]))


KERNELS: dict[GateKind, Callable[[np.ndarray, Gate], None]] = {
    GateKind.I: _single,
    GateKind.H: _single,
    GateKind.X: _single,
    GateKind.Y: _single,
    GateKind.Z: _single,
    GateKind.S: _single,
    GateKind.T: _single,
    GateKind.RX: _single,
    GateKind.RY: _single,
    GateKind.RZ: _single,
    GateKind.U: _single,
    GateKind.CNOT: _cnot,
    GateKind.CZ: _cz,
    GateKind.CP: _cp,
    GateKind.SWAP: _swap,
    GateKind.TOFFOLI: _toffoli,
    GateKind.FREDKIN: _fredkin,
}


def apply_gate(state: np.ndarray, gate: Gate) -> None:
    num_qubits = _num_qubits(state)
    check_qubits(gate.qubits, num_qubits)

    kernel = KERNELS.get(gate.kind)
    if kernel is None:
        raise UnsupportedGateError(gate.kind.tag)

    logger.debug("apply %s", gate)
    kernel(state, gate)


def _inverse_permutation(perm: list[int]) -> list[int]:
    inv = [0] * len(perm)
    for i, p in enumerate(perm):
        inv[p] = i
    return inv


def apply_unitary(state, U, targets: list[int], num_qubits: int) -> np.ndarray:
    """
    Apply a dense k-qubit unitary U to a copy of the statevector.
    Conventions:
    - Statevector length 2**num_qubits.
    - qubit indices are 0...num_qubits-1, qubit 0 is least significant.
    - U's row index reads targets[0] as its most significant bit.
    This is the slow reference path; the kernels above are what the engine runs.
    """
    U = np.asarray(U, dtype=complex)
    state = np.asarray(state, dtype=complex)

    if state.shape != (2 ** num_qubits,):
        raise ValueError(f"state must have shape {(2 ** num_qubits,)}, got {state.shape}")

    if U.ndim != 2 or U.shape[0] != U.shape[1]:
        raise ValueError(f"U must be a square matrix, got shape {U.shape}")

    k = len(targets)
    if k == 0:
        return state.copy()

    if len(set(targets)) != k:
        raise ValueError(f"targets must be unique, got {targets}")

    check_qubits(targets, num_qubits)

    dim_k = 2 ** k
    if U.shape != (dim_k, dim_k):
        raise ValueError(f"U shape must be {(dim_k, dim_k)} for k={k}, got {U.shape}")

    # reshape axis a holds qubit num_qubits-1-a
    psi = state.reshape((2,) * num_qubits)

    target_axes = [num_qubits - 1 - t for t in targets]
    remaining = [a for a in range(num_qubits) if a not in target_axes]
    perm = target_axes + remaining

    psi_mat = np.transpose(psi, axes=perm).reshape(dim_k, -1)
    psi_mat2 = U @ psi_mat

    psi_perm2 = psi_mat2.reshape((2,) * num_qubits)
    psi2 = np.transpose(psi_perm2, axes=_inverse_permutation(perm))

    return psi2.reshape(-1).copy()
