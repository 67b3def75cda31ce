from __future__ import annotations


class QVerifyError(Exception):
    """Base class for everything raised by qverify."""


## caller errors: bad input, fix it and retry

class CircuitError(QVerifyError, ValueError):
    pass


class MalformedCircuitError(CircuitError):
    pass


class InvalidQubitIndexError(CircuitError):
    def __init__(self, qubit: int, num_qubits: int | None = None, message: str | None = None):
        self.qubit = qubit
        self.num_qubits = num_qubits
        if message is None:
            message = f"qubit index {qubit} out of range for num_qubits={num_qubits}"
        super().__init__(message)


class UnsupportedGateError(CircuitError):
    def __init__(self, tag, message: str | None = None):
        self.tag = tag
        if message is None:
            message = f"unsupported gate: {tag!r}"
        super().__init__(message)


class CircuitTooLargeError(CircuitError):
    def __init__(self, num_qubits: int, max_qubits: int):
        self.num_qubits = num_qubits
        self.max_qubits = max_qubits
        super().__init__(
            f"circuit needs {num_qubits} qubits, limit is {max_qubits} "
            f"(state vector would hold 2**{num_qubits} amplitudes)"
        )


class MalformedNoiseModelError(CircuitError):
    def __init__(self, channel: str, value):
        self.channel = channel
        self.value = value
        super().__init__(f"{channel} must be in [0,1], got {value}")


## internal invariant violations: an engine bug, not bad input

class InvariantViolation(QVerifyError, RuntimeError):
    pass


class NormalizationDriftError(InvariantViolation):
    def __init__(self, norm_squared: float, tolerance: float, context: str = ""):
        self.norm_squared = norm_squared
        self.tolerance = tolerance
        where = f" after {context}" if context else ""
        super().__init__(
            f"State norm drifted{where}: sum|a|^2={norm_squared!r} (tolerance {tolerance})"
        )
