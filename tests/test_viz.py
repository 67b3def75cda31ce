import numpy as np
import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")

import matplotlib.pyplot as plt

from qverify.circuit import Circuit
from qverify.simulator import run_statevector, simulate
from qverify.viz import plot_counts, plot_result, plot_statevector_probs


def test_plot_statevector_probs_labels():
    fig = plot_statevector_probs(run_statevector(Circuit(2).h(0)))
    ax = fig.axes[0]
    assert [t.get_text() for t in ax.get_xticklabels()] == ["00", "01", "10", "11"]
    plt.close(fig)


def test_plot_counts_sorting_and_errors():
    fig = plot_counts({"11": 3, "00": 5}, sort="count")
    assert [t.get_text() for t in fig.axes[0].get_xticklabels()] == ["00", "11"]
    plt.close(fig)

    with pytest.raises(ValueError):
        plot_counts({})
    with pytest.raises(ValueError):
        plot_counts({"0": 1}, sort="random")


def test_plot_result_title():
    result = simulate(Circuit(2, name="bell"), seed=0)
    fig = plot_result(result)
    assert fig.axes[0].get_title().startswith("Bell State: fidelity 1.000")
    plt.close(fig)


def test_non_power_of_two_rejected():
    with pytest.raises(ValueError):
        plot_statevector_probs(np.ones(3))
