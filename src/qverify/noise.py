"""
Amplitude-level noise.

This is not a density-matrix channel. Every effect below acts directly on a
single state vector and none of them renormalises, so a noisy result usually
has sum|a|^2 < 1. Callers that need a probability distribution normalise
explicitly (sampling in measurement.py does).

  depolarizing p        every amplitude scaled by (1 - p)
  amplitude_damping g   no-jump branch: amplitude scaled by sqrt(1 - g) per excited qubit
  phase_damping l       each qubit gets Z with probability (1 - sqrt(1 - l)) / 2
  gate_error p          after each gate, each target qubit gets X, Y or Z with probability p
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Callable, Mapping, Optional, Union

import numpy as np

from .apply import apply_single_qubit
from .errors import MalformedNoiseModelError
from .gates import Gate, GateKind, Z

logger = logging.getLogger(__name__)

CHANNELS = ("depolarizing", "amplitude_damping", "phase_damping", "gate_error")

_ALIASES = {
    "amplitudeDamping": "amplitude_damping",
    "phaseDamping": "phase_damping",
    "gateError": "gate_error",
}


def _validate_p(p, name: str) -> float:
    if isinstance(p, bool):
        raise MalformedNoiseModelError(name, p)
    try:
        value = float(p)
    except (TypeError, ValueError):
        raise MalformedNoiseModelError(name, p) from None
    if not (0.0 <= value <= 1.0):
        raise MalformedNoiseModelError(name, p)
    return value


@dataclass(frozen=True)
class NoiseModel:
    depolarizing: float = 0.0
    amplitude_damping: float = 0.0
    phase_damping: float = 0.0
    gate_error: float = 0.0

    def __post_init__(self):
        for name in CHANNELS:
            object.__setattr__(self, name, _validate_p(getattr(self, name), name))

    @property
    def is_ideal(self) -> bool:
        return all(getattr(self, name) == 0.0 for name in CHANNELS)

    @classmethod
    def from_dict(cls, values: Mapping) -> "NoiseModel":
        kwargs = {}
        for key, value in values.items():
            name = _ALIASES.get(key, key)
            if name not in CHANNELS:
                raise MalformedNoiseModelError(str(key), value)
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return asdict(self)


NoiseLike = Union[None, NoiseModel, Mapping]


def validate_noise_model(noise: NoiseLike) -> Optional[NoiseModel]:
    if noise is None or isinstance(noise, NoiseModel):
        return noise
    if isinstance(noise, Mapping):
        return NoiseModel.from_dict(noise)
    raise MalformedNoiseModelError("noise", noise)


def _excitations(dim: int) -> np.ndarray:
    idx = np.arange(dim)
    n = dim.bit_length() - 1
    count = np.zeros(dim, dtype=int)
    for q in range(n):
        count += (idx >> q) & 1
    return count


def apply_depolarizing(amplitudes: np.ndarray, p: float) -> np.ndarray:
    p = _validate_p(p, "depolarizing")
    return np.asarray(amplitudes, dtype=complex) * (1.0 - p)


def apply_amplitude_damping(amplitudes: np.ndarray, gamma: float) -> np.ndarray:
    gamma = _validate_p(gamma, "amplitude_damping")
    psi = np.asarray(amplitudes, dtype=complex)
    return psi * np.sqrt(1.0 - gamma) ** _excitations(psi.shape[0])


def apply_phase_damping(amplitudes: np.ndarray, lam: float, rng: np.random.Generator) -> np.ndarray:
    lam = _validate_p(lam, "phase_damping")
    psi = np.array(amplitudes, dtype=complex, copy=True)
    if lam == 0.0:
        return psi
    if rng is None:
        raise ValueError("phase damping needs a numpy Generator")

    flip_p = (1.0 - math.sqrt(1.0 - lam)) / 2.0
    n = psi.shape[0].bit_length() - 1
    for q in range(n):
        if rng.random() < flip_p:
            logger.debug("phase damping: Z on qubit %d", q)
            apply_single_qubit(psi, Z, q)
    return psi


def apply_noise(amplitudes: np.ndarray, model: Optional[NoiseModel], rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Apply the amplitude-level channels of `model` to a copy of `amplitudes`."""
    psi = np.array(amplitudes, dtype=complex, copy=True)
    if model is None:
        return psi

    if model.phase_damping > 0:
        psi = apply_phase_damping(psi, model.phase_damping, rng)
    if model.amplitude_damping > 0:
        psi = apply_amplitude_damping(psi, model.amplitude_damping)
    if model.depolarizing > 0:
        psi = apply_depolarizing(psi, model.depolarizing)
    return psi


_PAULIS = (GateKind.X, GateKind.Y, GateKind.Z)


def gate_error_hook(model: Optional[NoiseModel], rng: Optional[np.random.Generator]) -> Optional[Callable]:
    """
    Callback for StateVector.apply_circuit that injects a random Pauli on each
    target of a gate with probability model.gate_error. None when there is
    nothing to inject.
    """
    if model is None or model.gate_error == 0.0:
        return None
    if rng is None:
        raise ValueError("gate error needs a numpy Generator")

    p = model.gate_error

    def hook(engine, gate: Gate) -> None:
        for q in gate.qubits:
            if rng.random() < p:
                kind = _PAULIS[int(rng.integers(0, 3))]
                logger.debug("gate error after %s: %s on qubit %d", gate, kind.tag, q)
                engine.apply_gate(Gate(kind, (q,)))

    return hook
