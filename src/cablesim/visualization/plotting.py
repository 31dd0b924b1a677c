from __future__ import annotations

import os

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from cablesim.utils.io import load_simulation_log


def _finish(fig: Figure, save_path: str | None, show: bool) -> Figure:
    fig.tight_layout()
    if save_path:
        os.makedirs(os.path.dirname(save_path) or ".", exist_ok=True)
        fig.savefig(save_path, dpi=180, bbox_inches="tight")
    if show:
        plt.show()
    return fig


def _point(df, name: str, field: str) -> np.ndarray:
    cols = [f"{name}.{field}_{axis}" for axis in "xyz"]
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise KeyError(f"Columns {missing} not found in CSV.")
    return df[cols].to_numpy()


def plot_deployment(
    csv_path: str,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Plot deployed length, deployment rate and tension against time.

    Parameters
    ----------
    csv_path : str
        Path to logger CSV.
    save_path : str | None
        If given, save the figure to this path (png/svg).
    show : bool
        Whether to call plt.show().

    Returns
    -------
    fig : Figure
    """
    df = load_simulation_log(csv_path)
    t = df["t"].to_numpy()
    length = df["deployed_length"].to_numpy()

    fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)

    axes[0].plot(t, length, color="#1a73e8", lw=2)
    axes[0].set_ylabel("deployed length [m]")
    axes[0].grid(True, alpha=0.3)
    axes[0].set_title("Tether deployment")

    rate = np.gradient(length, t) if len(t) > 1 else np.zeros_like(t)
    axes[1].plot(t, rate, color="#34a853")
    axes[1].set_ylabel("deployment rate [m/s]")
    axes[1].grid(True, alpha=0.3)

    axes[2].plot(t, df["tension_max"], label="max", color="#ea4335")
    axes[2].plot(t, df["tension_mean"], label="mean", color="#fbbc05")
    axes[2].plot(t, df["opposing_force"], label="spool friction", color="#5f6368", ls="--")
    axes[2].set_xlabel("t [s]"); axes[2].set_ylabel("force [N]")
    axes[2].grid(True, alpha=0.3)
    axes[2].legend(loc="best")

    return _finish(fig, save_path, show)


def plot_relative_trajectory(
    csv_path: str,
    point: str = "end",
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Plot a tracked point's path relative to the satellite, in the orbital plane.

    Parameters
    ----------
    csv_path : str
    point : str
        Tracked point name ("mid" or "end")
    save_path : str | None
    show : bool
    """
    df = load_simulation_log(csv_path)
    rel = _point(df, point, "p") - _point(df, "sat", "p")
    dist = np.linalg.norm(rel, axis=1)

    fig, (ax_xy, ax_d) = plt.subplots(1, 2, figsize=(12, 5))
    ax_xy.plot(rel[:, 0], rel[:, 1], color="#1a73e8", lw=2)
    ax_xy.scatter(rel[0, 0], rel[0, 1], color="#34a853", s=40, label="start")
    ax_xy.scatter(rel[-1, 0], rel[-1, 1], color="#ea4335", s=40, label="end")
    ax_xy.scatter(0.0, 0.0, color="k", marker="s", s=30, label="satellite")
    ax_xy.set_xlabel("x - x_sat [m]"); ax_xy.set_ylabel("y - y_sat [m]")
    ax_xy.set_aspect("equal", adjustable="datalim")
    ax_xy.grid(True, alpha=0.3)
    ax_xy.legend(loc="best")
    ax_xy.set_title(f"Trajectory relative to satellite: {point}")

    ax_d.plot(df["t"], dist, color="#1a73e8", label="distance")
    ax_d.plot(df["t"], df["deployed_length"], color="#5f6368", ls="--", label="deployed length")
    ax_d.set_xlabel("t [s]"); ax_d.set_ylabel("[m]")
    ax_d.grid(True, alpha=0.3)
    ax_d.legend(loc="best")

    return _finish(fig, save_path, show)


def plot_tension_profile(
    tensions: np.ndarray,
    segment_length: float,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Plot tension along the cable, link midpoints from the satellite outward.

    Parameters
    ----------
    tensions : (N,) array
        Link tensions [N]
    segment_length : float
        Link rest length [m]
    """
    tensions = np.asarray(tensions, dtype=float)
    s = (np.arange(tensions.size) + 0.5) * segment_length

    fig, ax = plt.subplots(1, 1, figsize=(10, 4))
    ax.plot(s, tensions, color="#ea4335", lw=2)
    ax.set_xlabel("distance from satellite [m]"); ax.set_ylabel("tension [N]")
    ax.grid(True, alpha=0.3)
    ax.set_title("Tension profile")

    return _finish(fig, save_path, show)


def plot_cable_shape(
    positions: np.ndarray,
    view_range: float | None = None,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Draw the cable in the orbital plane, centred on the satellite.

    Parameters
    ----------
    positions : (N+1, 3) array
        Point positions, index 0 = satellite
    view_range : float | None
        Half-width of the view [m]. Defaults to 1.5x the span of the cable.
    """
    positions = np.asarray(positions, dtype=float)
    rel = positions - positions[0]
    if view_range is None:
        span = float(np.abs(rel[:, :2]).max())
        view_range = 1.5 * span if span > 0 else 1.0

    fig, ax = plt.subplots(1, 1, figsize=(6, 6))
    ax.plot(rel[:, 0], rel[:, 1], color="k", lw=1)
    ax.scatter(0.0, 0.0, color="#1a73e8", marker="s", s=40, label="satellite")
    ax.scatter(rel[-1, 0], rel[-1, 1], color="#ea4335", s=30, label="end mass")
    ax.set_xlim(-view_range, view_range)
    ax.set_ylim(-view_range, view_range)
    ax.set_aspect("equal")
    ax.set_xlabel("x [m]"); ax.set_ylabel("y [m]")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    ax.set_title("Cable shape")

    return _finish(fig, save_path, show)
