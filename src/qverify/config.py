from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace as _dc_replace
from typing import Any, Mapping

logger = logging.getLogger(__name__)

FIDELITY_METHODS = ("overlap", "legacy")


@dataclass(frozen=True)
class SimulatorConfig:
    # 2**24 complex128 amplitudes is 256 MiB
    max_qubits: int = 24
    norm_tolerance: float = 1e-6
    generic_norm_tolerance: float = 0.01
    grover_iteration_cap: int = 3
    fidelity_method: str = "overlap"
    default_shots: int = 1024

    def __post_init__(self):
        if self.max_qubits <= 0:
            raise ValueError("max_qubits must be positive")
        if self.norm_tolerance <= 0 or self.generic_norm_tolerance <= 0:
            raise ValueError("tolerances must be positive")
        if self.grover_iteration_cap < 1:
            raise ValueError("grover_iteration_cap must be at least 1")
        if self.fidelity_method not in FIDELITY_METHODS:
            raise ValueError(f"fidelity_method must be one of {FIDELITY_METHODS}, got {self.fidelity_method!r}")
        if self.default_shots <= 0:
            raise ValueError("default_shots must be positive")

    def replace(self, **changes) -> "SimulatorConfig":
        return _dc_replace(self, **changes)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SimulatorConfig":
        valid = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            if key in valid:
                kwargs[key] = value
            else:
                logger.warning("Ignoring unknown configuration key %r. Valid keys are: %s", key, sorted(valid))
        return cls(**kwargs)


DEFAULT_CONFIG = SimulatorConfig()
