from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from .algorithms import Algorithm, RunContext, SimulationResult, run_validator
from .circuit import Circuit, validate_circuit
from .config import DEFAULT_CONFIG, SimulatorConfig
from .errors import CircuitError, InvariantViolation, MalformedCircuitError
from .measurement import sample_classical_counts
from .noise import NoiseLike, apply_noise, gate_error_hook, validate_noise_model
from .state import StateVector, norm_squared

logger = logging.getLogger(__name__)


def _resolve_rng(rng: Optional[np.random.Generator], seed) -> np.random.Generator:
    if rng is not None:
        if not isinstance(rng, np.random.Generator):
            raise TypeError(f"rng must be a numpy Generator, got {type(rng).__name__}")
        return rng
    # fresh generator per call, never numpy's global state
    return np.random.default_rng(seed)


def _check_circuit(circuit, config: SimulatorConfig) -> None:
    if not isinstance(circuit, Circuit):
        raise MalformedCircuitError(f"expected Circuit, got {type(circuit).__name__}")
    validate_circuit(circuit, config)


def _check_shots(shots) -> Optional[int]:
    if shots is None:
        return None
    if isinstance(shots, bool) or not isinstance(shots, (int, np.integer)) or shots <= 0:
        raise MalformedCircuitError(f"shots must be a positive int, got {shots!r}")
    return int(shots)


def run_statevector(circuit: Circuit, *, config: SimulatorConfig = DEFAULT_CONFIG) -> np.ndarray:
    _check_circuit(circuit, config)
    engine = StateVector(circuit.num_qubits, config)
    engine.apply_circuit(circuit)
    return engine.amplitudes()


def run_noisy_statevector(
    circuit: Circuit,
    model: NoiseLike,
    *,
    rng: Optional[np.random.Generator] = None,
    seed=None,
    config: SimulatorConfig = DEFAULT_CONFIG,
) -> np.ndarray:
    """
    Gate errors are injected while the circuit runs; the remaining channels
    act on the final amplitudes. The result is not renormalised.
    """
    _check_circuit(circuit, config)
    model = validate_noise_model(model)
    rng = _resolve_rng(rng, seed)

    engine = StateVector(circuit.num_qubits, config)
    engine.apply_circuit(circuit, after_gate=gate_error_hook(model, rng))
    return apply_noise(engine.amplitudes(), model, rng)


def run_counts_statevector(
    circuit: Circuit,
    shots: Optional[int] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    seed=None,
    noise: NoiseLike = None,
    config: SimulatorConfig = DEFAULT_CONFIG,
) -> dict[str, int]:
    if shots is None:
        shots = config.default_shots
    shots = _check_shots(shots)
    rng = _resolve_rng(rng, seed)

    psi = run_noisy_statevector(circuit, noise, rng=rng, config=config)
    if norm_squared(psi) <= 0.0:
        logger.warning("Skipping %d shots: noisy state has zero norm", shots)
        return {}
    return sample_classical_counts(psi, circuit.measurements, shots, rng)


def simulate(
    circuit: Circuit,
    *,
    algorithm: Union[str, Algorithm, None] = None,
    noise: NoiseLike = None,
    shots: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    seed=None,
    config: Optional[SimulatorConfig] = None,
) -> SimulationResult:
    """
    Validate `circuit` and return a SimulationResult.

    `algorithm` picks the validator; when omitted the circuit name is used, and
    anything unrecognised goes to the generic runner. Every input is checked
    before the first amplitude is allocated.
    """
    config = config or DEFAULT_CONFIG
    start = time.perf_counter()

    try:
        _check_circuit(circuit, config)
        model = validate_noise_model(noise)
        shots = _check_shots(shots)
    except CircuitError as exc:
        logger.warning("Rejected circuit: %s", exc)
        raise
    rng = _resolve_rng(rng, seed)

    kind = Algorithm.detect(algorithm if algorithm is not None else circuit.name)
    logger.info(
        "Simulating quantum circuit: %s (%s, %d qubits, %d gates)",
        circuit.name or "<unnamed>", kind.key, circuit.num_qubits, circuit.gate_count,
    )
    if model is not None and not model.is_ideal:
        logger.debug("Noise model: %s", model)

    ctx = RunContext(rng=rng, config=config, noise=model, shots=shots)
    try:
        result = run_validator(kind, circuit, ctx)
    except InvariantViolation:
        logger.exception("Internal invariant violated while simulating %s", kind.key)
        raise

    result = dataclasses.replace(result, execution_time=time.perf_counter() - start)
    logger.info(
        "Simulation completed: %s (fidelity: %.3f)",
        "VALID" if result.is_valid else "INVALID", result.fidelity,
    )
    return result


@dataclass(frozen=True)
class SimulationRequest:
    circuit: Circuit
    algorithm: Union[str, Algorithm, None] = None
    noise: NoiseLike = None
    shots: Optional[int] = None


@dataclass(frozen=True)
class AdvantageMetrics:
    average: float
    max: float
    algorithms: tuple[str, ...]


class QuantumSimulator:
    """
    Stateful front end: remembers every result it produced and hands each
    simulation its own generator spawned from one seed.

    Results are keyed by circuit name; re-running a named circuit replaces its
    entry. Unnamed circuits get "<algorithm key>-<n>", numbered per simulator.
    """

    def __init__(self, config: Optional[SimulatorConfig] = None, *, seed=None):
        self.config = config or DEFAULT_CONFIG
        self._seeds = np.random.SeedSequence(seed)
        self._results: dict[str, SimulationResult] = {}
        self._unnamed = 0
        self._lock = threading.Lock()
        logger.info("Quantum simulator initialized (max_qubits=%d)", self.config.max_qubits)

    def _spawn(self, count: int) -> list[np.random.Generator]:
        with self._lock:
            children = self._seeds.spawn(count)
        return [np.random.default_rng(s) for s in children]

    def _record(self, request: SimulationRequest, result: SimulationResult) -> str:
        with self._lock:
            key = request.circuit.name
            if not key:
                self._unnamed += 1
                key = f"{result.kind.key}-{self._unnamed}"
            elif key in self._results:
                logger.debug("Replacing ledger entry %r", key)
            self._results[key] = result
        return key

    def _run(self, request: SimulationRequest, rng: np.random.Generator) -> SimulationResult:
        result = simulate(
            request.circuit,
            algorithm=request.algorithm,
            noise=request.noise,
            shots=request.shots,
            rng=rng,
            config=self.config,
        )
        self._record(request, result)
        return result

    def simulate(self, circuit: Circuit, *, algorithm=None, noise: NoiseLike = None, shots: Optional[int] = None) -> SimulationResult:
        request = SimulationRequest(circuit, algorithm, noise, shots)
        return self._run(request, self._spawn(1)[0])

    def simulate_many(
        self,
        requests: Iterable[Union[SimulationRequest, Circuit]],
        *,
        max_workers: Optional[int] = None,
    ) -> list[SimulationResult]:
        """
        Run independent simulations in a thread pool. Generators are spawned
        before any work starts, so results do not depend on scheduling.
        """
        reqs = [r if isinstance(r, SimulationRequest) else SimulationRequest(r) for r in requests]
        if not reqs:
            return []
        rngs = self._spawn(len(reqs))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self._run, reqs, rngs))

    def validate(self, circuit: Circuit, **kwargs) -> bool:
        result = self.simulate(circuit, **kwargs)
        return result.is_valid and result.fidelity > 0.95

    def results(self) -> dict[str, SimulationResult]:
        with self._lock:
            return dict(self._results)

    def advantage_metrics(self) -> AdvantageMetrics:
        results = list(self.results().values())
        if not results:
            return AdvantageMetrics(average=1.0, max=1.0, algorithms=())

        advantages = [r.quantum_advantage for r in results]
        return AdvantageMetrics(
            average=float(sum(advantages) / len(advantages)),
            max=float(max(advantages)),
            algorithms=tuple(r.algorithm for r in results if r.quantum_advantage > 2.0),
        )

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
