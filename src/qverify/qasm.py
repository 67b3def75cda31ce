from __future__ import annotations

import numpy as np

from .circuit import Circuit
from .fidelity import state_fidelity
from .gates import GateKind
from .simulator import run_statevector

# qelib1.inc names. Qiskit is little-endian like us, so qubit indices are
# written out unchanged.
_QASM_NAMES = {
    GateKind.I: "id",
    GateKind.H: "h",
    GateKind.X: "x",
    GateKind.Y: "y",
    GateKind.Z: "z",
    GateKind.S: "s",
    GateKind.T: "t",
    GateKind.RX: "rx",
    GateKind.RY: "ry",
    GateKind.RZ: "rz",
    GateKind.U: "u3",
    GateKind.CNOT: "cx",
    GateKind.CZ: "cz",
    GateKind.CP: "cu1",
    GateKind.SWAP: "swap",
    GateKind.TOFFOLI: "ccx",
    GateKind.FREDKIN: "cswap",
}

# basis change applied before a Z measurement
_BASIS_ROTATION = {
    "Z": (),
    "X": ("h",),
    "Y": ("sdg", "h"),
}


def circuit_to_qasm(c: Circuit, *, measurements: bool = True) -> str:
    """
    Export a Circuit as OpenQASM 2.0.

    Measurements in the X or Y basis are written as the matching basis change
    followed by a plain `measure`. Pass measurements=False for a purely
    unitary program (what a statevector simulator accepts).
    """
    n = int(c.num_qubits)
    lines: list[str] = []
    lines.append('OPENQASM 2.0;')
    lines.append('include "qelib1.inc";')
    lines.append(f"qreg q[{n}];")

    if measurements and c.measurements:
        lines.append(f"creg c[{c.num_clbits}];")

    for g in c.gates:
        name = _QASM_NAMES[g.kind]
        if g.params:
            name += "(" + ",".join(repr(float(p)) for p in g.params) + ")"
        args = ",".join(f"q[{q}]" for q in g.qubits)
        lines.append(f"{name} {args};")

    if measurements:
        for m in c.measurements:
            for op in _BASIS_ROTATION[m.basis]:
                lines.append(f"{op} q[{m.qubit}];")
            lines.append(f"measure q[{m.qubit}] -> c[{m.clbit}];")

    return "\n".join(lines) + "\n"


def circuit_to_qiskit(c: Circuit, *, measurements: bool = True):
    """
    Build a qiskit.QuantumCircuit from our Circuit by going through QASM.
    Requires qiskit to be installed.
    """
    try:
        from qiskit import QuantumCircuit
    except ImportError as e:
        raise ImportError(
            "Qiskit is not installed. Try:\n"
            "  pip install 'qverify[qiskit]'\n"
        ) from e

    return QuantumCircuit.from_qasm_str(circuit_to_qasm(c, measurements=measurements))


def validate_with_qiskit(c: Circuit, *, atol: float = 1e-6) -> dict:
    """
    Compare our ideal statevector against qiskit.quantum_info.Statevector for
    the unitary part of `c` (measurements are ignored).

    Returns a dict with the largest probability difference and the state
    fidelity between the two vectors.
    """
    try:
        from qiskit.quantum_info import Statevector
    except ImportError as e:
        raise ImportError(
            "Qiskit is not installed. Try:\n"
            "  pip install 'qverify[qiskit]'\n"
        ) from e

    qc = circuit_to_qiskit(c, measurements=False)
    theirs = np.asarray(Statevector.from_instruction(qc).data, dtype=complex)
    ours = np.asarray(run_statevector(c), dtype=complex)

    p_ours = np.abs(ours) ** 2
    p_qiskit = np.abs(theirs) ** 2
    prob_diff = float(np.max(np.abs(p_ours - p_qiskit)))
    fid = state_fidelity(theirs, ours)

    ok = prob_diff <= float(atol) and abs(1.0 - fid) <= float(atol)

    return {
        "ok": bool(ok),
        "atol": float(atol),
        "prob_max_abs_diff": prob_diff,
        "fidelity": fid,
        "qasm": circuit_to_qasm(c),
    }
