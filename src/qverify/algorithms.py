from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from . import circuit as builders
from .circuit import Circuit
from .config import DEFAULT_CONFIG, SimulatorConfig
from .fidelity import fidelity as score
from .gates import X, Z
from .measurement import probabilities, register_nonzero_probability, sample_classical_counts, sample_counts
from .noise import NoiseModel, apply_noise, gate_error_hook
from .state import StateVector, norm_squared

logger = logging.getLogger(__name__)


class Algorithm(Enum):
    BELL = ("bell", "Bell State")
    GHZ = ("ghz", "GHZ State")
    DEUTSCH_JOZSA = ("deutsch-jozsa", "Deutsch-Jozsa")
    TELEPORTATION = ("teleportation", "Quantum Teleportation")
    SUPERDENSE = ("superdense", "Superdense Coding")
    GROVER = ("grover", "Grover Search")
    QFT = ("qft", "Quantum Fourier Transform")
    GENERIC = ("generic", "Generic Circuit")

    def __init__(self, key: str, title: str):
        self.key = key
        self.title = title

    @classmethod
    def detect(cls, name) -> "Algorithm":
        """Map a free-text algorithm or circuit name onto a known algorithm."""
        if isinstance(name, cls):
            return name
        if not name:
            return cls.GENERIC

        text = str(name).strip().lower()
        for alg in cls:
            if text == alg.key or text == alg.name.lower():
                return alg

        for keywords, alg in _KEYWORDS:
            if any(k in text for k in keywords):
                return alg
        return cls.GENERIC


# checked in order, first hit wins
_KEYWORDS = (
    (("bell",), Algorithm.BELL),
    (("ghz",), Algorithm.GHZ),
    (("deutsch", "jozsa"), Algorithm.DEUTSCH_JOZSA),
    (("teleport",), Algorithm.TELEPORTATION),
    (("superdense", "dense"), Algorithm.SUPERDENSE),
    (("grover", "search"), Algorithm.GROVER),
    (("qft", "fourier"), Algorithm.QFT),
)

THRESHOLDS = {
    Algorithm.BELL: 0.95,
    Algorithm.GHZ: 0.95,
    Algorithm.DEUTSCH_JOZSA: 0.90,
    Algorithm.TELEPORTATION: 0.90,
    Algorithm.SUPERDENSE: 0.95,
    Algorithm.GROVER: 0.90,
    Algorithm.QFT: 0.95,
}

TELEPORT_AMPLITUDE = 1 / math.sqrt(8)


def _frozen(a) -> np.ndarray:
    out = np.array(a, dtype=complex, copy=True)
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class SimulationResult:
    algorithm: str
    fidelity: float
    expected_state: np.ndarray
    actual_state: np.ndarray
    is_valid: bool
    quantum_advantage: float
    error_rate: float
    recommendations: tuple[str, ...] = ()
    kind: Algorithm = Algorithm.GENERIC
    num_qubits: int = 0
    gate_count: int = 0
    circuit_depth: int = 0
    counts: Optional[dict] = None
    execution_time: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "expected_state", _frozen(self.expected_state))
        object.__setattr__(self, "actual_state", _frozen(self.actual_state))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        if self.counts is not None:
            object.__setattr__(self, "counts", dict(self.counts))

    def probabilities(self) -> np.ndarray:
        return probabilities(self.actual_state)

    def to_dict(self) -> dict:
        def _amps(v):
            return [[float(a.real), float(a.imag)] for a in v]

        return {
            "algorithm": self.algorithm,
            "kind": self.kind.key,
            "fidelity": self.fidelity,
            "expected_state": _amps(self.expected_state),
            "actual_state": _amps(self.actual_state),
            "is_valid": self.is_valid,
            "quantum_advantage": self.quantum_advantage,
            "error_rate": self.error_rate,
            "recommendations": list(self.recommendations),
            "num_qubits": self.num_qubits,
            "gate_count": self.gate_count,
            "circuit_depth": self.circuit_depth,
            "counts": None if self.counts is None else dict(self.counts),
            "execution_time": self.execution_time,
        }


@dataclass(frozen=True)
class RunContext:
    """Everything one validator call needs besides the circuit."""

    rng: np.random.Generator
    config: SimulatorConfig = DEFAULT_CONFIG
    noise: Optional[NoiseModel] = None
    shots: Optional[int] = None

    def fidelity(self, expected, actual) -> float:
        return score(expected, actual, self.config.fidelity_method)


def recommendations(algorithm: Algorithm, fidelity: float, noise: Optional[NoiseModel]) -> list[str]:
    recs: list[str] = []

    if fidelity < 0.95:
        recs.append("Consider error correction codes")
        recs.append("Optimize gate sequence for noise resilience")

    if noise is not None:
        if noise.gate_error > 0.01:
            recs.append("High gate error rate detected - calibrate hardware")
        if noise.depolarizing > 0.05:
            recs.append("Depolarizing noise is high - shorten the circuit or use dynamical decoupling")
        if noise.amplitude_damping > 0.05:
            recs.append("Amplitude damping is high - check T1 relaxation times")
        if noise.phase_damping > 0.05:
            recs.append("Phase damping is high - check T2 coherence times")

    if algorithm is Algorithm.BELL and fidelity < 0.98:
        recs.append("Bell state fidelity low - check CNOT gate calibration")
    elif algorithm is Algorithm.GHZ:
        recs.append("Multi-qubit entanglement sensitive to decoherence")
    elif algorithm is Algorithm.DEUTSCH_JOZSA:
        recs.append("Ensure oracle implementation matches problem structure")

    return recs


def _execute(prepared: Circuit, ctx: RunContext) -> np.ndarray:
    engine = StateVector(prepared.num_qubits, ctx.config)
    engine.apply_circuit(prepared, after_gate=gate_error_hook(ctx.noise, ctx.rng))
    return apply_noise(engine.amplitudes(), ctx.noise, ctx.rng)


NO_COUNTS_ADVICE = "Noise removed all probability mass - no measurement counts were sampled"


def _counts(actual: np.ndarray, ctx: RunContext, measurements=()) -> Optional[dict]:
    if ctx.shots is None:
        return None
    if norm_squared(actual) <= 0.0:
        logger.warning("Skipping %d shots: noisy state has zero norm", ctx.shots)
        return None
    if measurements:
        return sample_classical_counts(actual, measurements, ctx.shots, ctx.rng)
    return sample_counts(actual, ctx.shots, ctx.rng)


def _result(
    alg: Algorithm,
    prepared: Circuit,
    expected,
    actual,
    fid: float,
    valid: bool,
    advantage: float,
    ctx: RunContext,
    recs: Optional[list[str]] = None,
) -> SimulationResult:
    if recs is None:
        recs = recommendations(alg, fid, ctx.noise)
    counts = _counts(actual, ctx)
    if ctx.shots is not None and counts is None:
        recs = recs + [NO_COUNTS_ADVICE]
    return SimulationResult(
        algorithm=alg.title,
        fidelity=fid,
        expected_state=expected,
        actual_state=actual,
        is_valid=bool(valid),
        quantum_advantage=float(advantage),
        error_rate=1.0 - fid,
        recommendations=tuple(recs),
        kind=alg,
        num_qubits=prepared.num_qubits,
        gate_count=prepared.gate_count,
        circuit_depth=prepared.depth(),
        counts=counts,
    )


## expected states

def bell_expected() -> np.ndarray:
    e = np.zeros(4, dtype=complex)
    e[0] = e[3] = 1 / math.sqrt(2)
    return e


def ghz_expected(n: int) -> np.ndarray:
    e = np.zeros(2 ** n, dtype=complex)
    e[0] = e[-1] = 1 / math.sqrt(2)
    return e


def deutsch_jozsa_expected(n: int) -> np.ndarray:
    # parity oracle => query register ends in |1..1>, ancilla in |->
    s = 2 ** (n - 1) - 1
    e = np.zeros(2 ** n, dtype=complex)
    e[s] = 1 / math.sqrt(2)
    e[s + 2 ** (n - 1)] = -1 / math.sqrt(2)
    return e


def teleportation_expected(psi=None) -> np.ndarray:
    """1/2 sum_{m0,m1} |m0 m1> (x) X^m1 Z^m0 |psi>, with q2 the most significant qubit."""
    if psi is None:
        psi = np.array([1, 1], dtype=complex) / math.sqrt(2)
    psi = np.asarray(psi, dtype=complex)
    e = np.zeros(8, dtype=complex)
    for m0 in (0, 1):
        for m1 in (0, 1):
            out = psi
            if m0:
                out = Z @ out
            if m1:
                out = X @ out
            for b in (0, 1):
                e[m0 + 2 * m1 + 4 * b] = 0.5 * out[b]
    return e


def grover_expected(n: int, target: int, iterations: int) -> np.ndarray:
    N = 2 ** n
    theta = math.asin(1 / math.sqrt(N))
    angle = (2 * iterations + 1) * theta
    e = np.full(N, math.cos(angle) / math.sqrt(N - 1), dtype=complex)
    e[target] = math.sin(angle)
    return e


def qft_expected(n: int, x: int = 1) -> np.ndarray:
    N = 2 ** n
    y = np.arange(N)
    return np.exp(2j * np.pi * x * y / N) / math.sqrt(N)


def grover_iterations(n: int, cap: int) -> tuple[int, int]:
    optimal = int(math.floor(math.pi / 4 * math.sqrt(2 ** n)))
    return optimal, min(optimal, cap)


## validators

def validate_bell(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    prepared = builders.bell_pair()
    expected = bell_expected()
    actual = _execute(prepared, ctx)

    fid = ctx.fidelity(expected, actual)
    valid = fid > THRESHOLDS[Algorithm.BELL]
    return _result(Algorithm.BELL, prepared, expected, actual, fid, valid, 2.0 if valid else 1.0, ctx)


def validate_ghz(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    n = max(3, circuit.num_qubits)
    prepared = builders.ghz(n)
    expected = ghz_expected(n)
    actual = _execute(prepared, ctx)

    fid = ctx.fidelity(expected, actual)
    valid = fid > THRESHOLDS[Algorithm.GHZ]
    return _result(Algorithm.GHZ, prepared, expected, actual, fid, valid, 2.5 if valid else 1.0, ctx)


def validate_deutsch_jozsa(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    n = max(2, circuit.num_qubits)
    prepared = builders.deutsch_jozsa(n)
    expected = deutsch_jozsa_expected(n)
    actual = _execute(prepared, ctx)

    balanced = register_nonzero_probability(actual, range(n - 1))
    fid = ctx.fidelity(expected, actual)
    valid = balanced > 0.9 and fid > THRESHOLDS[Algorithm.DEUTSCH_JOZSA]
    logger.debug("Deutsch-Jozsa balanced mass %.6f", balanced)
    return _result(Algorithm.DEUTSCH_JOZSA, prepared, expected, actual, fid, valid, 3.0 if valid else 1.0, ctx)


def validate_teleportation(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    prepared = builders.teleportation()
    expected = teleportation_expected()
    actual = _execute(prepared, ctx)

    mags = np.abs(actual)
    uniform = bool(np.all((np.abs(mags - TELEPORT_AMPLITUDE) < 0.01) | (mags < 0.01)))
    fid = ctx.fidelity(expected, actual)
    valid = uniform and fid > THRESHOLDS[Algorithm.TELEPORTATION]
    return _result(Algorithm.TELEPORTATION, prepared, expected, actual, fid, valid, 2.2 if valid else 1.0, ctx)


def validate_superdense(circuit: Circuit, ctx: RunContext, *, message: str = "11") -> SimulationResult:
    prepared = builders.superdense(message)
    target = int(message, 2)
    expected = np.zeros(4, dtype=complex)
    expected[target] = 1.0
    actual = _execute(prepared, ctx)

    fid = ctx.fidelity(expected, actual)
    valid = abs(actual[target] - 1.0) < 0.05
    return _result(Algorithm.SUPERDENSE, prepared, expected, actual, fid, valid, 2.0 if valid else 1.0, ctx)


def validate_grover(circuit: Circuit, ctx: RunContext, *, target: Optional[int] = None) -> SimulationResult:
    n = max(2, circuit.num_qubits)
    N = 2 ** n
    if target is None:
        target = N - 1
    if not 0 <= target < N:
        raise ValueError(f"Grover target must be between 0 and {N - 1}, got {target}")

    optimal, iterations = grover_iterations(n, ctx.config.grover_iteration_cap)
    recs_extra = []
    if iterations < optimal:
        logger.warning("Grover on %d qubits capped at %d of %d iterations", n, iterations, optimal)
        recs_extra.append(
            f"Grover iterations capped at {iterations} (optimal {optimal}) - raise grover_iteration_cap for larger searches"
        )

    prepared = builders.uniform_superposition(n)
    engine = StateVector(n, ctx.config)
    engine.apply_circuit(prepared, after_gate=gate_error_hook(ctx.noise, ctx.rng))
    for _ in range(iterations):
        engine.apply_phase_oracle(target)
        engine.apply_diffusion()
    actual = apply_noise(engine.amplitudes(), ctx.noise, ctx.rng)

    p = probabilities(actual)
    target_p = float(p[target])
    others = np.delete(p, target)
    amplified = target_p > float(others.max()) and target_p > 0.5

    expected = grover_expected(n, target, iterations)
    fid = ctx.fidelity(expected, actual)
    valid = amplified and fid > THRESHOLDS[Algorithm.GROVER]
    recs = recommendations(Algorithm.GROVER, fid, ctx.noise) + recs_extra
    return _result(
        Algorithm.GROVER, prepared, expected, actual, fid, valid,
        math.sqrt(N) if valid else 1.0, ctx, recs,
    )


def validate_qft(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    n = max(2, circuit.num_qubits)
    prepared = Circuit(n, name="qft").x(0).compose(builders.qft(n))
    expected = qft_expected(n, 1)
    actual = _execute(prepared, ctx)

    fid = ctx.fidelity(expected, actual)
    valid = fid > THRESHOLDS[Algorithm.QFT]
    return _result(Algorithm.QFT, prepared, expected, actual, fid, valid, 2 ** (n / 3) if valid else 1.0, ctx)


def run_generic(circuit: Circuit, ctx: RunContext) -> SimulationResult:
    """Run the caller's circuit verbatim; only normalisation can be checked."""
    actual = _execute(circuit, ctx)

    norm = math.sqrt(norm_squared(actual))
    normalized = abs(norm - 1.0) < ctx.config.generic_norm_tolerance
    fid = 0.9 if normalized else 0.5

    recs = ["Verify circuit correctness", "Add algorithm-specific validation"]
    recs.extend(recommendations(Algorithm.GENERIC, 1.0, ctx.noise))
    counts = _counts(actual, ctx, circuit.measurements)
    if ctx.shots is not None and counts is None:
        recs.append(NO_COUNTS_ADVICE)

    alg = Algorithm.GENERIC
    return SimulationResult(
        algorithm=alg.title,
        fidelity=fid,
        expected_state=actual,
        actual_state=actual,
        is_valid=normalized,
        quantum_advantage=1.5,
        error_rate=1.0 - fid,
        recommendations=tuple(recs),
        kind=alg,
        num_qubits=circuit.num_qubits,
        gate_count=circuit.gate_count,
        circuit_depth=circuit.depth(),
        counts=counts,
    )


VALIDATORS: dict[Algorithm, Callable[[Circuit, RunContext], SimulationResult]] = {
    Algorithm.BELL: validate_bell,
    Algorithm.GHZ: validate_ghz,
    Algorithm.DEUTSCH_JOZSA: validate_deutsch_jozsa,
    Algorithm.TELEPORTATION: validate_teleportation,
    Algorithm.SUPERDENSE: validate_superdense,
    Algorithm.GROVER: validate_grover,
    Algorithm.QFT: validate_qft,
    Algorithm.GENERIC: run_generic,
}


def run_validator(algorithm: Algorithm, circuit: Circuit, ctx: RunContext) -> SimulationResult:
    return VALIDATORS[algorithm](circuit, ctx)
