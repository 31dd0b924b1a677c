"""
Scenario API: Fluent interface for defining and running deployments.
"""
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from cablesim.config import TetherConfig
from cablesim.core.cable import Cable
from cablesim.core.simulation import TetherSimulation
from cablesim.dynamics.constraints import InextensibleTension, SpringDamperTension, TensionModel
from cablesim.dynamics.forces import ForceField, FrictionModel
from cablesim.exceptions import ConfigurationError

TENSION_PRESETS = {
    "default": {"model": "spring", "stiffness_factor": 0.2, "damping_ratio": 0.3},
    "stiff": {"model": "spring", "stiffness_factor": 0.5, "damping_ratio": 0.5},
    "exact": {"model": "inextensible", "max_iterations": 10},
}

TENSION_MODELS = {
    "spring": SpringDamperTension,
    "inextensible": InextensibleTension,
}


class Scenario:
    """
    Fluent builder for a deployment run.

    Examples
    --------
    >>> result = (
    ...     Scenario("short_tether", output_dir="output")
    ...     .configure(length=20.0, points=50, timestep=1e-3)
    ...     .configure_tension("exact")
    ...     .run()
    ... )
    >>> result.cable.deployed_length
    """

    def __init__(
        self,
        name: str,
        output_dir: str | Path = "output",
        config: TetherConfig | None = None,
        log: bool = True,
    ):
        self.name = name
        self.output_dir = Path(output_dir)
        self.config = config if config is not None else TetherConfig()
        self.log = log
        self.simulation: TetherSimulation | None = None
        self._tension_params = dict(TENSION_PRESETS["default"])
        self._gravity: ForceField | None = None
        self._friction: FrictionModel | None = None
        self._termination: Callable[[TetherSimulation], bool] | None = None
        self._auto_plots = False
        self._show_plots = False

    @property
    def cable(self) -> Cable:
        if self.simulation is None:
            raise RuntimeError("Scenario has not been built yet. Call build() or run().")
        return self.simulation.cable

    def configure(self, **overrides: Any) -> Scenario:
        """Override TetherConfig fields, e.g. configure(length=50.0, points=200)."""
        self.config = self.config.replace(**overrides)
        return self

    def configure_tension(self, preset: str = "default", **kwargs: Any) -> Scenario:
        """
        Select the tension model from a preset, with optional overrides.

        Presets: 'default', 'stiff' (spring-damper links), 'exact'
        (inextensible links). Kwargs are passed to the model constructor.
        """
        if preset not in TENSION_PRESETS:
            raise ConfigurationError(
                f"Unknown tension preset '{preset}'. Options: {sorted(TENSION_PRESETS)}"
            )
        self._tension_params = dict(TENSION_PRESETS[preset])
        self._tension_params.update(kwargs)
        return self

    def with_gravity(self, field: ForceField) -> Scenario:
        """Replace the default central gravity field."""
        self._gravity = field
        return self

    def with_friction(self, model: FrictionModel) -> Scenario:
        """Replace the default spool friction/brake model."""
        self._friction = model
        return self

    def stop_when(self, fn: Callable[[TetherSimulation], bool]) -> Scenario:
        """Stop the run early once ``fn(simulation)`` returns True."""
        self._termination = fn
        return self

    def enable_plotting(self, show: bool = False) -> Scenario:
        """
        Generate plots at the end of the run.

        Parameters
        ----------
        show : bool
            If True, display plots interactively (e.g. in Jupyter notebooks).
        """
        self._auto_plots = True
        self._show_plots = show
        return self

    def _tension_model(self) -> TensionModel:
        params = dict(self._tension_params)
        model = params.pop("model")
        if model not in TENSION_MODELS:
            raise ConfigurationError(
                f"Unknown tension model '{model}'. Options: {sorted(TENSION_MODELS)}"
            )
        return TENSION_MODELS[model](**params)

    def build(self) -> TetherSimulation:
        """Construct the cable and its simulation driver."""
        cable = Cable.from_config(
            self.config,
            tension_model=self._tension_model(),
            gravity=self._gravity,
            friction=self._friction,
        )
        self.simulation = TetherSimulation(
            cable,
            self.config.timestep,
            substeps_per_frame=self.config.substeps_per_frame,
            output_dir=self.output_dir,
        )
        if self.log:
            self.simulation.enable_logging(self.name)
        if self._termination is not None:
            self.simulation.set_termination_callback(self._termination)
        return self.simulation

    def run(self, duration: float | None = None, log_interval: float = 1.0) -> Scenario:
        """
        Build (if needed) and run.

        Parameters
        ----------
        duration : float | None
            Simulated time [s]. Defaults to twice the nominal deployment time.
        log_interval : float
            Progress print interval [s]
        """
        if self.simulation is None:
            self.build()
        if duration is None:
            duration = 2.0 * self.config.deployment_time
            if duration == float("inf"):
                raise ConfigurationError(
                    "Deployment speed is zero; pass an explicit duration."
                )

        print(f"Running Scenario: {self.name}")
        print(f"[Scenario] Tension model: {self._tension_params['model']} "
              f"({type(self.cable.tension_model).__name__})")
        self.simulation.run(duration, log_interval=log_interval)

        if self._auto_plots:
            if self.simulation.logger is None:
                print("[Scenario] Plotting requires logging; skipped.")
            else:
                print("[Scenario] Generating plots...")
                self.simulation.save_plots(show=self._show_plots)

        return self
