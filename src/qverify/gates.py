from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .errors import InvalidQubitIndexError, UnsupportedGateError


## 1 qubit gates

I = np.array([
    [1, 0],
    [0, 1],
], dtype=complex)

X = np.array([
    [0, 1],
    [1, 0],
], dtype=complex)

Y = np.array([
    [0, -1j],
    [1j, 0],
], dtype=complex)

Z = np.array([
    [1, 0],
    [0, -1],
], dtype=complex)

H = (1 / np.sqrt(2)) * np.array([
    [1, 1],
    [1, -1],
], dtype=complex)

S = np.array([
    [1, 0],
    [0, 1j],
], dtype=complex)

T = np.array([
    [1, 0],
    [0, np.exp(1j * np.pi / 4)],
], dtype=complex)


def RZ(theta: float) -> np.ndarray:
    """
    RZ(theta) = exp(-i theta Z/2) =
    [[e^{-iθ/2}, 0],
     [0, e^{+iθ/2}]]
    """
    t = float(theta) / 2.0
    return np.array([
        [np.exp(-1j * t), 0.0],
        [0.0, np.exp(1j * t)],
    ], dtype=complex)


def RY(theta: float) -> np.ndarray:
    """
    RY(theta) = exp(-i theta Y/2) =
    [[cos(θ/2), -sin(θ/2)],
     [sin(θ/2),  cos(θ/2)]]
    """
    t = float(theta) / 2.0
    c = np.cos(t)
    s = np.sin(t)
    return np.array([
        [c, -s],
        [s,  c],
    ], dtype=complex)


def RX(theta: float) -> np.ndarray:
    """
    RX(theta) = exp(-i theta X/2) =
    [[cos(θ/2), -i sin(θ/2)],
     [-i sin(θ/2), cos(θ/2)]]
    """
    t = float(theta) / 2.0
    c = np.cos(t)
    s = np.sin(t)
    return np.array([
        [c, -1j * s],
        [-1j * s, c],
    ], dtype=complex)


def U(theta: float, phi: float, lam: float) -> np.ndarray:
    """
    Generic single-qubit rotation (OpenQASM u3):
    [[cos(θ/2),          -e^{iλ} sin(θ/2)],
     [e^{iφ} sin(θ/2),  e^{i(φ+λ)} cos(θ/2)]]
    """
    t = float(theta) / 2.0
    c = np.cos(t)
    s = np.sin(t)
    return np.array([
        [c, -np.exp(1j * float(lam)) * s],
        [np.exp(1j * float(phi)) * s, np.exp(1j * (float(phi) + float(lam))) * c],
    ], dtype=complex)


## 2 qubit gates
## local ordering: the first listed qubit is the most significant row/column bit

CNOT = np.array([
    [1,0,0,0],
    [0,1,0,0],
    [0,0,0,1],
    [0,0,1,0],
], dtype=complex)

SWAP = np.array([
    [1,0,0,0],
    [0,0,1,0],
    [0,1,0,0],
    [0,0,0,1],
], dtype=complex)

CZ = np.array([
    [1,0,0,0],
    [0,1,0,0],
    [0,0,1,0],
    [0,0,0,-1],
], dtype=complex)


def CP(theta: float) -> np.ndarray:
    theta = float(theta)
    return np.array([
        [1,0,0,0],
        [0,1,0,0],
        [0,0,1,0],
        [0,0,0,np.exp(1j*theta)],
    ], dtype=complex)

## 3 qubit gates

TOF = np.array([
    [1,0,0,0,0,0,0,0],
    [0,1,0,0,0,0,0,0],
    [0,0,1,0,0,0,0,0],
    [0,0,0,1,0,0,0,0],
    [0,0,0,0,1,0,0,0],
    [0,0,0,0,0,1,0,0],
    [0,0,0,0,0,0,0,1],
    [0,0,0,0,0,0,1,0],
], dtype=complex)

FRED = np.array([
    [1,0,0,0,0,0,0,0],
    [0,1,0,0,0,0,0,0],
    [0,0,1,0,0,0,0,0],
    [0,0,0,1,0,0,0,0],
    [0,0,0,0,1,0,0,0],
    [0,0,0,0,0,0,1,0],
    [0,0,0,0,0,1,0,0],
    [0,0,0,0,0,0,0,1],
], dtype=complex)


class GateKind(Enum):
    """Closed set of gates the engine knows how to apply."""

    I = ("I", 1, 0)
    H = ("H", 1, 0)
    X = ("X", 1, 0)
    Y = ("Y", 1, 0)
    Z = ("Z", 1, 0)
    S = ("S", 1, 0)
    T = ("T", 1, 0)
    RX = ("RX", 1, 1)
    RY = ("RY", 1, 1)
    RZ = ("RZ", 1, 1)
    U = ("U", 1, 3)
    CNOT = ("CNOT", 2, 0)
    CZ = ("CZ", 2, 0)
    CP = ("CP", 2, 1)
    SWAP = ("SWAP", 2, 0)
    TOFFOLI = ("TOFFOLI", 3, 0)
    FREDKIN = ("FREDKIN", 3, 0)

    def __init__(self, tag: str, arity: int, num_params: int):
        self.tag = tag
        self.arity = arity
        self.num_params = num_params

    @property
    def is_single_qubit(self) -> bool:
        return self.arity == 1

    @classmethod
    def parse(cls, tag) -> "GateKind":
        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise UnsupportedGateError(tag)
        key = tag.strip().upper()
        kind = _TAGS.get(key)
        if kind is None:
            raise UnsupportedGateError(tag)
        return kind


_TAGS = {kind.tag: kind for kind in GateKind}
_TAGS.update({
    "ID": GateKind.I,
    "CX": GateKind.CNOT,
    "CPHASE": GateKind.CP,
    "CU1": GateKind.CP,
    "CCX": GateKind.TOFFOLI,
    "CCNOT": GateKind.TOFFOLI,
    "TOF": GateKind.TOFFOLI,
    "CSWAP": GateKind.FREDKIN,
    "FRED": GateKind.FREDKIN,
    "U3": GateKind.U,
})

_FIXED = {
    GateKind.I: I,
    GateKind.H: H,
    GateKind.X: X,
    GateKind.Y: Y,
    GateKind.Z: Z,
    GateKind.S: S,
    GateKind.T: T,
    GateKind.CNOT: CNOT,
    GateKind.CZ: CZ,
    GateKind.SWAP: SWAP,
    GateKind.TOFFOLI: TOF,
    GateKind.FREDKIN: FRED,
}

_PARAMETRIC = {
    GateKind.RX: RX,
    GateKind.RY: RY,
    GateKind.RZ: RZ,
    GateKind.U: U,
    GateKind.CP: CP,
}


def gate_matrix(kind: GateKind, params: tuple[float, ...] = ()) -> np.ndarray:
    if kind in _FIXED:
        return _FIXED[kind]
    if kind in _PARAMETRIC:
        return _PARAMETRIC[kind](*params)
    raise UnsupportedGateError(kind.tag)


@dataclass(frozen=True)
class Gate:
    kind: GateKind
    qubits: tuple[int, ...]
    params: tuple[float, ...] = ()

    def __post_init__(self):
        kind = GateKind.parse(self.kind)
        qubits = tuple(self.qubits)
        params = tuple(self.params)

        if len(qubits) != kind.arity:
            raise UnsupportedGateError(
                kind.tag, f"{kind.tag} expects {kind.arity} qubit(s), got {len(qubits)}: {qubits}"
            )
        if len(params) != kind.num_params:
            raise UnsupportedGateError(
                kind.tag, f"{kind.tag} expects {kind.num_params} parameter(s), got {len(params)}"
            )

        checked = []
        for q in qubits:
            if isinstance(q, bool) or not isinstance(q, (int, np.integer)):
                raise InvalidQubitIndexError(q, message=f"{kind.tag}: qubit index must be an int, got {q!r}")
            if q < 0:
                raise InvalidQubitIndexError(int(q), message=f"{kind.tag}: qubit index must be >= 0, got {q}")
            checked.append(int(q))
        if len(set(checked)) != len(checked):
            raise InvalidQubitIndexError(
                checked[0], message=f"{kind.tag}: qubits must be distinct, got {tuple(checked)}"
            )

        angles = []
        for p in params:
            try:
                value = float(p)
            except (TypeError, ValueError):
                raise UnsupportedGateError(kind.tag, f"{kind.tag}: parameter {p!r} is not a real number") from None
            if not math.isfinite(value):
                raise UnsupportedGateError(kind.tag, f"{kind.tag}: parameter {p!r} is not finite")
            angles.append(value)

        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "qubits", tuple(checked))
        object.__setattr__(self, "params", tuple(angles))

    @classmethod
    def from_tag(cls, tag, qubits, params=()) -> "Gate":
        return cls(GateKind.parse(tag), tuple(qubits), tuple(params))

    @property
    def matrix(self) -> np.ndarray:
        return gate_matrix(self.kind, self.params)

    def __str__(self):
        qs = ",".join(str(q) for q in self.qubits)
        if self.params:
            ps = ",".join(f"{p:.6g}" for p in self.params)
            return f"{self.kind.tag}({ps}) q[{qs}]"
        return f"{self.kind.tag} q[{qs}]"
