import numpy as np
import matplotlib.pyplot as plt


def _basis_labels(num_qubits: int) -> list[str]:
    # highest qubit first, same as the sampled bitstrings
    dim = 2 ** num_qubits
    return [format(i, f"0{num_qubits}b") for i in range(dim)]


def _num_qubits(state: np.ndarray) -> int:
    dim = state.shape[0]
    if dim == 0 or dim & (dim - 1):
        raise ValueError(f"state length must be a power of two, got {dim}")
    return dim.bit_length() - 1


def plot_statevector_probs(state: np.ndarray, *, title: str = "Statevector probabilities"):

    state = np.asarray(state, dtype=complex).reshape(-1)
    probs = np.abs(state) ** 2
    labels = _basis_labels(_num_qubits(state))

    fig, ax = plt.subplots()
    ax.bar(range(len(probs)), probs)
    ax.set_xticks(range(len(probs)))
    ax.set_xticklabels(labels, rotation=90)
    ax.set_ylabel("Probability")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_counts(counts: dict[str, int], *, title: str = "Measurement counts", sort: str = "bitstring"):

    if not counts:
        raise ValueError("counts is empty")

    items = list(counts.items())
    if sort == "bitstring":
        items.sort(key=lambda kv: kv[0])
    elif sort == "count":
        items.sort(key=lambda kv: kv[1], reverse=True)
    elif sort == "none":
        pass
    else:
        raise ValueError("sort must be one of: 'bitstring', 'count', 'none'")

    labels = [k for k, _ in items]
    values = [v for _, v in items]

    fig, ax = plt.subplots()
    ax.bar(range(len(values)), values)
    ax.set_xticks(range(len(values)))
    ax.set_xticklabels(labels, rotation=90)
    ax.set_ylabel("Counts")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_result(result, *, title: str = None):
    """Expected vs actual basis probabilities of a SimulationResult, side by side."""
    expected = np.abs(np.asarray(result.expected_state)) ** 2
    actual = np.abs(np.asarray(result.actual_state)) ** 2
    labels = _basis_labels(_num_qubits(actual))
    x = np.arange(len(labels))
    w = 0.4

    fig, ax = plt.subplots()
    ax.bar(x - w / 2, expected, width=w, label="expected")
    ax.bar(x + w / 2, actual, width=w, label="actual")
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=90)
    ax.set_ylabel("Probability")
    status = "valid" if result.is_valid else "invalid"
    ax.set_title(title or f"{result.algorithm}: fidelity {result.fidelity:.3f} ({status})")
    ax.legend()
    fig.tight_layout()
    return fig
