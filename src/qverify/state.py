from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from . import apply as kernels
from .circuit import Circuit, validate_circuit
from .config import DEFAULT_CONFIG, SimulatorConfig
from .errors import CircuitTooLargeError, MalformedCircuitError, NormalizationDriftError
from .gates import Gate
from .measurement import sample_counts

logger = logging.getLogger(__name__)


def basis_state(index: int, num_qubits: int) -> np.ndarray:
    dim = 2 ** num_qubits
    if index < 0 or index >= dim:
        raise ValueError(f"index must be between 0 and {dim-1}")

    state = np.zeros(dim, dtype=complex)
    state[index] = 1.0
    return state


def zero_state(num_qubits: int) -> np.ndarray:
    return basis_state(0, num_qubits)


def norm_squared(state: np.ndarray) -> float:
    state = np.asarray(state)
    return float(np.sum(state.real * state.real + state.imag * state.imag))


class StateVector:
    """
    Owns one amplitude buffer for the duration of a single simulation.

    The buffer is never handed out: amplitudes() returns a read-only copy, so
    two simulations can only share a StateVector if the caller shares it.
    """

    def __init__(self, num_qubits: int, config: SimulatorConfig = DEFAULT_CONFIG):
        self.config = config
        self.num_qubits = 0
        self._amps: Optional[np.ndarray] = None
        self.initialize(num_qubits)

    def initialize(self, num_qubits: int) -> None:
        if isinstance(num_qubits, bool) or not isinstance(num_qubits, (int, np.integer)) or num_qubits <= 0:
            raise MalformedCircuitError(f"num_qubits must be a positive int, got {num_qubits!r}")
        if num_qubits > self.config.max_qubits:
            raise CircuitTooLargeError(int(num_qubits), self.config.max_qubits)

        self.num_qubits = int(num_qubits)
        self._amps = zero_state(self.num_qubits)

    @property
    def dim(self) -> int:
        return 2 ** self.num_qubits

    def amplitudes(self) -> np.ndarray:
        out = self._amps.copy()
        out.flags.writeable = False
        return out

    def probabilities(self) -> np.ndarray:
        a = self._amps
        return a.real * a.real + a.imag * a.imag

    def norm(self) -> float:
        return float(np.sqrt(norm_squared(self._amps)))

    def _check_norm(self, context: str) -> None:
        total = norm_squared(self._amps)
        if abs(total - 1.0) > self.config.norm_tolerance:
            logger.error("Normalization drift after %s: sum|a|^2=%r", context, total)
            raise NormalizationDriftError(total, self.config.norm_tolerance, context)

    def apply_gate(self, gate: Gate) -> None:
        kernels.apply_gate(self._amps, gate)
        self._check_norm(str(gate))

    def apply_circuit(self, circuit: Circuit, *, after_gate=None) -> None:
        """
        Run every gate of `circuit`. The whole circuit is validated before the
        first amplitude changes. `after_gate(engine, gate)` runs after each gate
        (the noise simulator hooks gate errors in here).
        """
        if circuit.num_qubits != self.num_qubits:
            raise MalformedCircuitError(
                f"circuit has num_qubits={circuit.num_qubits}, engine holds {self.num_qubits}"
            )
        validate_circuit(circuit, self.config)

        for gate in circuit.gates:
            self.apply_gate(gate)
            if after_gate is not None:
                after_gate(self, gate)

    def apply_phase_oracle(self, index: int) -> None:
        if index < 0 or index >= self.dim:
            raise ValueError(f"oracle index must be between 0 and {self.dim - 1}, got {index}")
        kernels.apply_phase_flip(self._amps, index)
        self._check_norm(f"oracle({index})")

    def apply_diffusion(self) -> None:
        kernels.apply_diffusion(self._amps)
        self._check_norm("diffusion")

    def sample_measurement(self, shots: int, rng: np.random.Generator) -> dict[str, int]:
        return sample_counts(self._amps, shots, rng)

    def __repr__(self):
        return f"StateVector(num_qubits={self.num_qubits}, dim={self.dim})"
