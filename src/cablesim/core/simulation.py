"""
Frame-based driver for tether deployment runs.

Advances a Cable in bursts of sub-steps per display frame, with optional
logging, progress output and automatic output organization.
"""
from __future__ import annotations

import math
import warnings
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import numpy as np

from cablesim.config import EARTH_RADIUS
from cablesim.core.cable import Cable, CableState
from cablesim.exceptions import ConfigurationError
from cablesim.logger import CSVLogger
from cablesim.utils.io import save_simulation_history
from cablesim.utils.validation import validate_timestep

# Default output directory
DEFAULT_OUTPUT_DIR = Path("output")
DEFAULT_STRETCH_TOLERANCE = 0.1  # Relative link over-extension that triggers a warning


@dataclass(frozen=True)
class Frame:
    """Telemetry read-out after one frame of sub-steps."""
    index: int
    time: float
    deployed_length: float
    mid_altitude: float
    mid_speed: float
    max_tension: float
    active_links: int
    is_fully_deployed: bool

    @classmethod
    def from_cable(cls, index: int, cable: Cable) -> Frame:
        mid = cable.point_count // 2
        tensions = cable.tensions
        return cls(
            index=index,
            time=cable.time,
            deployed_length=cable.deployed_length,
            mid_altitude=float(np.linalg.norm(cable.positions[mid])) - EARTH_RADIUS,
            mid_speed=float(np.linalg.norm(cable.velocities[mid])),
            max_tension=float(tensions.max()),
            active_links=cable.active_link_count,
            is_fully_deployed=cable.is_fully_deployed,
        )

    def hud(self) -> str:
        """One-line heads-up display: altitude, time, speed, length."""
        return (
            f"Height: {self.mid_altitude / 1000.0:.3f} km | "
            f"Time: {self.time:.2f} s | "
            f"Speed: {self.mid_speed:.2f} m/s | "
            f"Length: {self.deployed_length:.2f} m"
        )


class TetherSimulation:
    """
    Orchestrates a tether deployment run.

    Parameters
    ----------
    cable : Cable
        Cable to advance
    timestep : float
        Integration step [s]
    substeps_per_frame : int
        Integration steps per frame. Frames are the unit of logging and
        display.
    simulation_name : str | None
        Name used to organize output files. If None, logging is disabled
        by default. Use enable_logging() to activate.
    output_dir : Path | str | None
        Base directory for all outputs. Defaults to "./output".
        Final structure: output_dir/simulation_name_timestamp/logs/ and /plots/
    auto_timestamp : bool
        If True, append a timestamp to the output folder name.
    auto_save_plots : bool
        If True, generate plots when run() completes. Requires logging.
    stretch_tolerance : float | None
        Warn once when an active link is stretched beyond this fraction of
        its rest length. None disables the check.
    keep_history : bool
        If True, keep a CableState snapshot per frame in ``history`` for
        save_history().

    Attributes
    ----------
    frame_index : int
        Number of frames completed
    stopped : bool
        True once the termination callback has requested a stop
    logger : CSVLogger | None
        Data logger instance, or None if logging disabled
    history : list[CableState]
        Per-frame snapshots, filled only when keep_history is True
    output_path : Path | None
        Path to simulation output directory

    Examples
    --------
    >>> sim = TetherSimulation(Cable.from_config(cfg), cfg.timestep)
    >>> for frame in sim.frames(10):
    ...     print(frame.hud())

    >>> sim = TetherSimulation.with_logging("deploy", cable, 1e-4)
    >>> sim.run(duration=12.0)
    """

    def __init__(
        self,
        cable: Cable,
        timestep: float,
        substeps_per_frame: int = 200,
        simulation_name: str | None = None,
        output_dir: Path | str | None = None,
        auto_timestamp: bool = True,
        auto_save_plots: bool = False,
        stretch_tolerance: float | None = DEFAULT_STRETCH_TOLERANCE,
        keep_history: bool = False,
    ) -> None:
        self.cable = cable
        self.dt = validate_timestep(timestep)
        if int(substeps_per_frame) < 1:
            raise ConfigurationError(f"substeps_per_frame must be >= 1, got {substeps_per_frame}")
        self.substeps_per_frame = int(substeps_per_frame)
        self.stretch_tolerance = stretch_tolerance
        self.frame_index = 0
        self.stopped = False
        self.termination_callback: Callable[[TetherSimulation], bool] | None = None
        self._stretch_warned = False
        self.keep_history = keep_history
        self.history: list[CableState] = []

        # Output configuration
        self._simulation_name = simulation_name
        self._output_dir = Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR
        self._auto_timestamp = auto_timestamp
        self._auto_save_plots = auto_save_plots
        self.output_path: Path | None = None
        self.logger: CSVLogger | None = None

        if simulation_name is not None:
            self.enable_logging(simulation_name)

    @classmethod
    def with_logging(
        cls,
        name: str,
        cable: Cable,
        timestep: float,
        substeps_per_frame: int = 200,
        output_dir: Path | str | None = None,
        auto_save_plots: bool = True,
    ) -> TetherSimulation:
        """Create a simulation with logging pre-enabled."""
        return cls(
            cable,
            timestep,
            substeps_per_frame=substeps_per_frame,
            simulation_name=name,
            output_dir=output_dir,
            auto_timestamp=True,
            auto_save_plots=auto_save_plots,
        )

    @property
    def time(self) -> float:
        return self.cable.time

    def enable_logging(self, name: str | None = None, tension_profile: bool = False) -> Path:
        """
        Enable data logging with automatic output organization.

        Parameters
        ----------
        name : str | None
            Simulation name. If None, uses the name from __init__.
        tension_profile : bool
            Log every link tension, not just max/mean.

        Returns
        -------
        Path
            Path to the created output directory

        Raises
        ------
        ConfigurationError
            If no simulation name is available
        """
        if name is not None:
            self._simulation_name = name

        if self._simulation_name is None:
            raise ConfigurationError(
                "Simulation name required for logging. "
                "Either pass name to __init__ or to enable_logging()."
            )

        if self._auto_timestamp:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            folder_name = f"{self._simulation_name}_{timestamp}"
        else:
            folder_name = self._simulation_name

        self.output_path = self._output_dir / folder_name
        logs_dir = self.output_path / "logs"
        plots_dir = self.output_path / "plots"
        logs_dir.mkdir(parents=True, exist_ok=True)
        plots_dir.mkdir(parents=True, exist_ok=True)

        if self.logger is not None:
            self.logger.close()
        self.logger = CSVLogger(logs_dir / "simulation.csv", tension_profile=tension_profile)

        print(f"[TetherSimulation] Logging enabled: {self.output_path}")
        print(f"        Logs: {logs_dir}")
        print(f"        Plots: {plots_dir}")

        return self.output_path

    def disable_logging(self) -> None:
        """Disable logging and close any open log file."""
        if self.logger is not None:
            self.logger.close()
            self.logger = None
            print("[TetherSimulation] Logging disabled")

    def set_termination_callback(self, fn: Callable[[TetherSimulation], bool]) -> None:
        """
        Set a custom termination condition.

        Parameters
        ----------
        fn : Callable[[TetherSimulation], bool]
            Called after each integration step; return True to stop.

        Examples
        --------
        >>> sim.set_termination_callback(lambda s: s.cable.is_fully_deployed)
        """
        self.termination_callback = fn

    # --- Stepping ---

    def step(self) -> bool:
        """
        Advance the cable by one timestep.

        Returns
        -------
        bool
            True if the termination condition is met
        """
        self.cable.step(self.dt)
        if self.termination_callback is not None and self.termination_callback(self):
            self.stopped = True
        return self.stopped

    def _end_frame(self) -> Frame:
        self.frame_index += 1
        if self.logger is not None:
            self.logger.log(self.cable)
        self._check_stretch()
        if self.keep_history:
            self.history.append(self.cable.snapshot())
        return Frame.from_cable(self.frame_index, self.cable)

    def _check_stretch(self) -> None:
        if self.stretch_tolerance is None or self._stretch_warned:
            return
        stretch = self.cable.max_stretch()
        if stretch > self.stretch_tolerance:
            warnings.warn(
                f"Link stretch {stretch:.1%} exceeds {self.stretch_tolerance:.1%} at "
                f"t={self.cable.time:.4f}s. Consider a smaller timestep or the exact "
                "tension model.",
                RuntimeWarning,
                stacklevel=3
            )
            self._stretch_warned = True

    def advance_frame(self) -> Frame:
        """
        Run one frame of sub-steps and return its telemetry.

        Stops early within the frame if the termination callback fires.
        """
        for _ in range(self.substeps_per_frame):
            if self.step():
                break
        return self._end_frame()

    def frames(self, count: int | None = None) -> Iterator[Frame]:
        """
        Yield frames until ``count`` frames were produced or the run stops.

        Examples
        --------
        >>> for frame in sim.frames():
        ...     if frame.is_fully_deployed:
        ...         break
        """
        produced = 0
        while not self.stopped and (count is None or produced < count):
            yield self.advance_frame()
            produced += 1
        if self.logger is not None:
            self.logger.flush()

    def run(self, duration: float, log_interval: float = 1.0) -> None:
        """
        Run for ``duration`` seconds of simulated time.

        Parameters
        ----------
        duration : float
            Simulation duration [s]
        log_interval : float
            Interval [s] for printing progress. Set to <= 0 to disable.

        Notes
        -----
        - Logs the initial state, then one row per frame
        - Stops early if the termination callback fires
        - Flushes the logger and generates plots (if enabled) when complete
        """
        steps = int(math.ceil(float(duration) / self.dt - 1e-9))
        last_log_time = self.cable.time

        if self.logger is not None:
            self.logger.log(self.cable)

        print(
            f"[TetherSimulation] Starting deployment: {duration}s duration, dt={self.dt}s, "
            f"{self.cable.point_count} links"
        )

        try:
            for i in range(1, steps + 1):
                stop = self.step()
                if stop or i % self.substeps_per_frame == 0 or i == steps:
                    self._end_frame()
                if stop:
                    print(f"[TetherSimulation] Simulation terminated at t={self.cable.time:.6f}s")
                    break

                if log_interval > 0 and (self.cable.time - last_log_time) >= log_interval:
                    print(
                        f"[TetherSimulation] t={self.cable.time:6.2f}s | "
                        f"L={self.cable.deployed_length:8.3f}m, "
                        f"Tmax={self.cable.tensions.max():8.4f}N"
                    )
                    last_log_time = self.cable.time
        finally:
            if self.logger:
                self.logger.flush()

            if self._auto_save_plots and self.logger is not None:
                print("[TetherSimulation] Auto-generating plots...")
                self.save_plots()

    # --- Plotting and Analysis ---

    def save_plots(self, show: bool = False) -> None:
        """
        Generate and save deployment plots from logged data.

        Creates deployment history, end-mass relative trajectory, final
        tension profile and cable shape plots.

        Raises
        ------
        RuntimeError
            If logging is not enabled or nothing has been logged yet
        """
        if self.logger is None or self.output_path is None:
            raise RuntimeError(
                "Logging must be enabled to save plots. "
                "Call enable_logging() or use TetherSimulation.with_logging()."
            )

        from cablesim.visualization.plotting import (
            plot_cable_shape,
            plot_deployment,
            plot_relative_trajectory,
            plot_tension_profile,
        )

        self.logger.flush()
        csv_path = self.output_path / "logs" / "simulation.csv"
        plots_dir = self.output_path / "plots"

        if not csv_path.exists() or self.logger.rows_logged == 0:
            raise RuntimeError(
                f"No log data found at {csv_path}. Has the simulation been run yet?"
            )

        plot_deployment(str(csv_path), save_path=str(plots_dir / "deployment.png"), show=show)
        plot_relative_trajectory(
            str(csv_path), save_path=str(plots_dir / "end_relative_trajectory.png"), show=show
        )
        plot_tension_profile(
            self.cable.tensions, self.cable.segment_length,
            save_path=str(plots_dir / "tension_profile.png"), show=show,
        )
        plot_cable_shape(
            self.cable.positions, save_path=str(plots_dir / "cable_shape.png"), show=show
        )

        print(f"[TetherSimulation] Plots saved to: {plots_dir}")

    def save_history(self, filepath: Path | str | None = None) -> Path:
        """
        Write the recorded per-frame snapshots as a CSV table.

        Parameters
        ----------
        filepath : Path | str | None
            Destination. Defaults to ``logs/history.csv`` in the output folder.

        Raises
        ------
        RuntimeError
            If history was not kept or no frame has run yet
        ConfigurationError
            If no path is given and logging is not enabled
        """
        if not self.history:
            raise RuntimeError(
                "No history recorded. Create the simulation with keep_history=True "
                "and run at least one frame."
            )
        if filepath is None:
            if self.output_path is None:
                raise ConfigurationError(
                    "No output folder; pass a filepath or enable logging first."
                )
            filepath = self.output_path / "logs" / "history.csv"
        return save_simulation_history([state.as_row() for state in self.history], filepath)

    def get_energy(self) -> dict[str, float]:
        """Mechanical energy of the cable, see Cable.energy()."""
        return self.cable.energy()
