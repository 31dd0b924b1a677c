"""
Tests for the plotting module (headless).
"""
import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for testing
import numpy as np
import pandas as pd
import pytest
from matplotlib.figure import Figure

from cablesim.visualization import plotting


@pytest.fixture
def dummy_csv(tmp_path):
    """A log in the CSVLogger layout."""
    fn = tmp_path / "logs" / "simulation.csv"
    fn.parent.mkdir()
    t = np.linspace(0.0, 12.0, 60)
    length = np.minimum(10.0 * t, 100.0)
    data = {
        "t": t,
        "deployed_length": length,
        "active_links": (length / 0.1).astype(int),
        "opposing_force": np.where(length >= 100.0, 1.0, 0.0),
        "tension_max": np.abs(np.sin(t)),
        "tension_mean": 0.5 * np.abs(np.sin(t)),
    }
    for name, offset in (("sat", 0.0), ("mid", 0.5), ("end", 1.0)):
        data[f"{name}.p_x"] = 7672.0 * t
        data[f"{name}.p_y"] = 6.771e6 - offset * length
        data[f"{name}.p_z"] = np.zeros_like(t)
        data[f"{name}.v_x"] = np.full_like(t, 7672.0)
        data[f"{name}.v_y"] = np.full_like(t, -10.0 * offset)
        data[f"{name}.v_z"] = np.zeros_like(t)
    pd.DataFrame(data).to_csv(fn, index=False)
    return fn


def test_plot_deployment(dummy_csv, tmp_path):
    out = tmp_path / "plots" / "deployment.png"
    fig = plotting.plot_deployment(str(dummy_csv), save_path=str(out), show=False)
    assert isinstance(fig, Figure)
    assert len(fig.axes) == 3
    assert out.exists()


@pytest.mark.parametrize("point", ["mid", "end"])
def test_plot_relative_trajectory(dummy_csv, tmp_path, point):
    out = tmp_path / f"{point}.png"
    fig = plotting.plot_relative_trajectory(str(dummy_csv), point=point,
                                            save_path=str(out), show=False)
    assert isinstance(fig, Figure)
    assert out.exists()


def test_plot_relative_trajectory_unknown_point(dummy_csv):
    with pytest.raises(KeyError):
        plotting.plot_relative_trajectory(str(dummy_csv), point="quarter", show=False)


def test_plot_tension_profile(tmp_path):
    out = tmp_path / "tension.png"
    fig = plotting.plot_tension_profile(np.linspace(1.0, 0.0, 50), 2.0,
                                        save_path=str(out), show=False)
    line = fig.axes[0].lines[0]
    assert np.allclose(line.get_xdata()[:2], [1.0, 3.0])
    assert out.exists()


def test_plot_cable_shape_view_range():
    positions = np.zeros((11, 3))
    positions[:, 1] = -np.linspace(0.0, 10.0, 11)
    fig = plotting.plot_cable_shape(positions, show=False)
    ax = fig.axes[0]
    assert ax.get_xlim() == pytest.approx((-15.0, 15.0))
    fig = plotting.plot_cable_shape(positions, view_range=300.0, show=False)
    assert fig.axes[0].get_ylim() == pytest.approx((-300.0, 300.0))


def test_plot_cable_shape_coiled():
    """A cable with every point on the satellite still renders."""
    fig = plotting.plot_cable_shape(np.ones((5, 3)), show=False)
    assert fig.axes[0].get_xlim() == pytest.approx((-1.0, 1.0))
