from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from .config import DEFAULT_CONFIG, SimulatorConfig
from .errors import CircuitTooLargeError, InvalidQubitIndexError, MalformedCircuitError
from .gates import Gate, GateKind

MEASUREMENT_BASES = ("Z", "X", "Y")


@dataclass(frozen=True)
class Measurement:
    qubit: int
    clbit: int
    basis: str = "Z"

    def __post_init__(self):
        basis = str(self.basis).upper()
        if basis not in MEASUREMENT_BASES:
            raise MalformedCircuitError(f"measurement basis must be one of {MEASUREMENT_BASES}, got {self.basis!r}")
        object.__setattr__(self, "basis", basis)


@dataclass(frozen=True)
class Circuit:
    """
    Immutable circuit description: qubit count, ordered gates, measurements.

    Builder methods return a new Circuit and chain:

        bell = Circuit(2).h(0).cx(0, 1)
    """

    num_qubits: int
    gates: tuple[Gate, ...] = ()
    measurements: tuple[Measurement, ...] = ()
    name: str = ""

    def __post_init__(self):
        if isinstance(self.num_qubits, bool) or not isinstance(self.num_qubits, (int, np.integer)):
            raise MalformedCircuitError(f"num_qubits must be an int, got {self.num_qubits!r}")
        if self.num_qubits <= 0:
            raise MalformedCircuitError("num_qubits must be positive")

        gates = tuple(self.gates)
        for g in gates:
            if not isinstance(g, Gate):
                raise MalformedCircuitError(f"expected Gate, got {type(g).__name__}")
        measurements = tuple(self.measurements)
        for m in measurements:
            if not isinstance(m, Measurement):
                raise MalformedCircuitError(f"expected Measurement, got {type(m).__name__}")

        object.__setattr__(self, "num_qubits", int(self.num_qubits))
        object.__setattr__(self, "gates", gates)
        object.__setattr__(self, "measurements", measurements)

    ## builders

    def add(self, tag, *qubits: int, params=()) -> "Circuit":
        gate = tag if isinstance(tag, Gate) else Gate.from_tag(tag, qubits, params)
        return replace(self, gates=self.gates + (gate,))

    def extend(self, gates) -> "Circuit":
        return replace(self, gates=self.gates + tuple(gates))

    def compose(self, other: "Circuit") -> "Circuit":
        if other.num_qubits > self.num_qubits:
            raise MalformedCircuitError(
                f"cannot compose a {other.num_qubits}-qubit circuit onto {self.num_qubits} qubits"
            )
        return replace(self, gates=self.gates + other.gates, measurements=self.measurements + other.measurements)

    def named(self, name: str) -> "Circuit":
        return replace(self, name=str(name))

    def i(self, q): return self.add(GateKind.I, q)
    def h(self, q): return self.add(GateKind.H, q)
    def x(self, q): return self.add(GateKind.X, q)
    def y(self, q): return self.add(GateKind.Y, q)
    def z(self, q): return self.add(GateKind.Z, q)
    def s(self, q): return self.add(GateKind.S, q)
    def t(self, q): return self.add(GateKind.T, q)

    def rx(self, q, theta): return self.add(GateKind.RX, q, params=(theta,))
    def ry(self, q, theta): return self.add(GateKind.RY, q, params=(theta,))
    def rz(self, q, theta): return self.add(GateKind.RZ, q, params=(theta,))

    def u(self, q, theta, phi, lam):
        return self.add(GateKind.U, q, params=(theta, phi, lam))

    def cx(self, control, target): return self.add(GateKind.CNOT, control, target)
    cnot = cx

    def cz(self, q1, q2): return self.add(GateKind.CZ, q1, q2)
    def cp(self, q1, q2, theta): return self.add(GateKind.CP, q1, q2, params=(theta,))
    def swap(self, q1, q2): return self.add(GateKind.SWAP, q1, q2)
    def tof(self, c1, c2, target): return self.add(GateKind.TOFFOLI, c1, c2, target)
    def fred(self, control, q1, q2): return self.add(GateKind.FREDKIN, control, q1, q2)

    def measure(self, qubit: int, clbit: Optional[int] = None, basis: str = "Z") -> "Circuit":
        if clbit is None:
            clbit = len(self.measurements)
        return replace(self, measurements=self.measurements + (Measurement(int(qubit), int(clbit), basis),))

    def measure_all(self, basis: str = "Z") -> "Circuit":
        ms = tuple(Measurement(q, q, basis) for q in range(self.num_qubits))
        return replace(self, measurements=ms)

    ## inspection

    @property
    def gate_count(self) -> int:
        return len(self.gates)

    @property
    def num_clbits(self) -> int:
        if not self.measurements:
            return 0
        return max(m.clbit for m in self.measurements) + 1

    def depth(self) -> int:
        level = [0] * self.num_qubits
        for g in self.gates:
            d = max(level[q] for q in g.qubits) + 1
            for q in g.qubits:
                level[q] = d
        return max(level) if level else 0

    def __str__(self):
        lines = [f"{self.name or 'circuit'} ({self.num_qubits} qubits)"]
        lines.extend(f"  {g}" for g in self.gates)
        for m in self.measurements:
            lines.append(f"  measure[{m.basis}] q[{m.qubit}] -> c[{m.clbit}]")
        return "\n".join(lines)


def validate_circuit(circuit: Circuit, config: SimulatorConfig = DEFAULT_CONFIG) -> None:
    """Reject a circuit the engine cannot run. Never touches amplitudes."""
    n = circuit.num_qubits
    if n > config.max_qubits:
        raise CircuitTooLargeError(n, config.max_qubits)

    for g in circuit.gates:
        for q in g.qubits:
            if q >= n:
                raise InvalidQubitIndexError(q, n, f"{g}: qubit index {q} out of range for num_qubits={n}")

    clbits = set()
    measured = set()
    for m in circuit.measurements:
        if m.qubit < 0 or m.qubit >= n:
            raise InvalidQubitIndexError(m.qubit, n, f"measurement qubit {m.qubit} out of range for num_qubits={n}")
        # measurements are terminal, one per qubit
        if m.qubit in measured:
            raise MalformedCircuitError(f"qubit {m.qubit} is measured more than once")
        measured.add(m.qubit)
        if m.clbit < 0:
            raise MalformedCircuitError(f"classical bit index must be >= 0, got {m.clbit}")
        if m.clbit in clbits:
            raise MalformedCircuitError(f"classical bit {m.clbit} is written by more than one measurement")
        clbits.add(m.clbit)


# ----------------------------
# Canonical circuit generators
# ----------------------------

def bell_pair(q0: int = 0, q1: int = 1, *, num_qubits: Optional[int] = None) -> Circuit:
    """
    Bell pair on (q0, q1):
      H q0
      CNOT q0 q1
    """
    n = num_qubits if num_qubits is not None else max(q0, q1) + 1
    return Circuit(n, name="bell").h(q0).cx(q0, q1)


def ghz(n: int) -> Circuit:
    """
    GHZ(n):
      H 0
      CNOT 0 1
      CNOT 0 2
      ...
    """
    c = Circuit(n, name="ghz").h(0)
    for t in range(1, n):
        c = c.cx(0, t)
    return c


def uniform_superposition(n: int) -> Circuit:
    c = Circuit(n, name="uniform")
    for q in range(n):
        c = c.h(q)
    return c


def deutsch_jozsa(n: int) -> Circuit:
    """
    Deutsch-Jozsa with query qubits 0..n-2 and ancilla n-1, balanced parity
    oracle f(x) = x_0 xor ... xor x_{n-2} built from CNOTs onto the ancilla.
    """
    if n < 2:
        raise MalformedCircuitError("Deutsch-Jozsa needs at least 2 qubits")
    ancilla = n - 1
    c = Circuit(n, name="deutsch-jozsa").x(ancilla)
    for q in range(n):
        c = c.h(q)
    for q in range(ancilla):
        c = c.cx(q, ancilla)
    for q in range(ancilla):
        c = c.h(q)
    return c


def teleportation() -> Circuit:
    """
    Teleport |+> from q0 to q2 up to the Bell-measurement step:
      H 0           (|+> on q0)
      H 1, CNOT 1 2 (Bell pair q1-q2)
      CNOT 0 1, H 0
    """
    return Circuit(3, name="teleportation").h(0).h(1).cx(1, 2).cx(0, 1).h(0)


def superdense(message: str = "11") -> Circuit:
    """
    Superdense coding of a two-bit message written as bitstring "q1q0":
    the X bit ends up on q1 and the Z bit on q0, so the decoded basis index
    is int(message, 2).
    """
    if len(message) != 2 or set(message) - {"0", "1"}:
        raise MalformedCircuitError(f"message must be two bits, got {message!r}")
    c = Circuit(2, name="superdense").h(0).cx(0, 1)
    if message[0] == "1":
        c = c.x(0)
    if message[1] == "1":
        c = c.z(0)
    return c.cx(0, 1).h(0)


def qft(n: int, *, swaps: bool = True) -> Circuit:
    """
    Textbook QFT: on qubit j (most significant first) H then controlled phases
    pi/2**k from the lower qubits, followed by the bit-reversal swaps.
    """
    c = Circuit(n, name="qft")
    for j in reversed(range(n)):
        c = c.h(j)
        for k, ctrl in enumerate(reversed(range(j)), start=1):
            c = c.cp(ctrl, j, math.pi / (2 ** k))
    if swaps:
        for q in range(n // 2):
            c = c.swap(q, n - 1 - q)
    return c


def random_circuit(seed: int, *, num_qubits: int = 3, depth: int = 12) -> Circuit:
    """
    Random circuit over every gate kind that fits num_qubits. Not a uniform
    sampler of anything; meant for invariant checks.
    """
    if num_qubits <= 0:
        raise ValueError("num_qubits must be positive")
    if depth <= 0:
        raise ValueError("depth must be positive")

    rng = np.random.default_rng(int(seed))
    kinds = [k for k in GateKind if k.arity <= num_qubits]
    c = Circuit(num_qubits, name=f"random-{seed}")

    for _ in range(depth):
        kind = kinds[int(rng.integers(0, len(kinds)))]
        qubits = rng.choice(num_qubits, size=kind.arity, replace=False)
        params = rng.uniform(-math.pi, math.pi, size=kind.num_params)
        c = c.add(kind, *(int(q) for q in qubits), params=tuple(float(p) for p in params))

    return c
