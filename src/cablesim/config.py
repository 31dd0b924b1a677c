"""
Tether deployment configuration.

Defaults reproduce the reference deployment: a 100 m, 1 g/m tether paid
out at 10 m/s from a 1.3 kg satellite in a circular orbit of radius
6771 km, with a 1 N brake at full length.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

from cablesim.dynamics.forces import STANDARD_GRAVITATIONAL_PARAMETER
from cablesim.exceptions import ConfigurationError
from cablesim.utils.validation import (
    validate_finite,
    validate_non_negative,
    validate_point_count,
    validate_positive,
    validate_timestep,
)

EARTH_RADIUS = 6.371e6  # [m]
DEFAULT_ORBIT_RADIUS = 6.771e6  # [m], ~400 km altitude
STRAIGHT_DOWN = np.array([0.0, -1.0, 0.0])  # Toward Earth for an anchor on +y


def deployment_direction(angle_x: float = 0.0, angle_y: float = 0.0) -> NDArray[np.float64]:
    """
    Unit deployment direction from two angles.

    Parameters
    ----------
    angle_x : float
        Rotation in the orbital (viewing) plane, about +z [deg]
    angle_y : float
        Rotation out of the plane, about +x [deg]

    Returns
    -------
    NDArray[np.float64]
        Unit vector (3,). (0, 0) is straight down, (0, -1, 0).
    """
    in_plane = Rotation.from_rotvec([0.0, 0.0, validate_finite(angle_x, "Deployment angle x")],
                                    degrees=True)
    out_of_plane = Rotation.from_rotvec([validate_finite(angle_y, "Deployment angle y"), 0.0, 0.0],
                                        degrees=True)
    return (out_of_plane * in_plane).apply(STRAIGHT_DOWN)


def circular_orbit_velocity(radius: float, mu: float = STANDARD_GRAVITATIONAL_PARAMETER) -> float:
    """Circular orbit speed sqrt(µ/r) [m/s]."""
    return float(np.sqrt(validate_non_negative(mu, "Gravitational parameter")
                         / validate_positive(radius, "Orbit radius")))


@dataclass
class TetherConfig:
    """
    Construction parameters for a tether deployment run.

    Attributes
    ----------
    length : float
        Target (fully deployed) tether length [m]
    linear_density : float
        Tether mass per unit length [kg/m]
    timestep : float
        Integration step [s]. Smaller is slower but more accurate.
    points : int
        Number of links. Mass points = points + 1.
    deployment_angle : tuple[float, float]
        (in-plane, out-of-plane) deployment angles [deg]. (0, 0) is straight down.
    deployment_speed : float
        Initial end-mass speed relative to the satellite [m/s]
    end_mass : float
        Deployed end mass [kg]
    sat_mass : float
        Satellite (anchor) mass [kg]
    friction : float
        Spool friction during deployment [N]
    braking_force : float
        Extra brake force once the full length is out [N]
    mu : float
        Gravitational parameter [m³/s²]
    orbit_radius : float
        Initial circular orbit radius of the satellite [m]
    initial_deployed_length : float
        Tether already paid out at t = 0 [m]
    substeps_per_frame : int
        Integration steps between two telemetry frames

    Examples
    --------
    >>> cfg = TetherConfig(length=50.0, points=200)
    >>> cfg.segment_length
    0.25
    """
    length: float = 100.0
    linear_density: float = 1e-3
    timestep: float = 1e-4
    points: int = 1000
    deployment_angle: tuple[float, float] = (0.0, 0.0)
    deployment_speed: float = 10.0
    end_mass: float = 0.05
    sat_mass: float = 1.30
    friction: float = 0.0
    braking_force: float = 1.0
    mu: float = STANDARD_GRAVITATIONAL_PARAMETER
    orbit_radius: float = DEFAULT_ORBIT_RADIUS
    initial_deployed_length: float = 0.0
    substeps_per_frame: int = 200

    def __post_init__(self) -> None:
        self.deployment_angle = tuple(float(a) for a in self.deployment_angle)
        self.validate()

    def validate(self) -> None:
        """
        Check every parameter.

        Raises
        ------
        ConfigurationError
            On the first invalid parameter
        """
        validate_positive(self.length, "Length")
        validate_non_negative(self.linear_density, "Linear density")
        validate_timestep(self.timestep)
        validate_point_count(self.points)
        if len(self.deployment_angle) != 2:
            raise ConfigurationError(
                f"Deployment angle needs two values (x, y), got {self.deployment_angle}"
            )
        validate_non_negative(self.deployment_speed, "Deployment speed")
        validate_non_negative(self.end_mass, "End mass")
        validate_non_negative(self.sat_mass, "Satellite mass")
        validate_non_negative(self.friction, "Friction force")
        validate_non_negative(self.braking_force, "Braking force")
        validate_positive(self.mu, "Gravitational parameter")
        validate_positive(self.orbit_radius, "Orbit radius")
        validate_non_negative(self.initial_deployed_length, "Initial deployed length")
        if self.initial_deployed_length > self.length:
            raise ConfigurationError(
                f"Initial deployed length {self.initial_deployed_length} exceeds "
                f"target length {self.length}"
            )
        if int(self.substeps_per_frame) < 1:
            raise ConfigurationError(
                f"Sub-steps per frame must be >= 1, got {self.substeps_per_frame}"
            )

    @property
    def segment_length(self) -> float:
        """Nominal link length [m]."""
        return self.length / self.points

    @property
    def deployment_direction(self) -> NDArray[np.float64]:
        """Unit deployment direction (3,)."""
        return deployment_direction(*self.deployment_angle)

    def deployment_velocity(self) -> NDArray[np.float64]:
        """End-mass velocity relative to the satellite [m/s] (3,)."""
        return self.deployment_speed * self.deployment_direction

    def anchor_state(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Satellite position and circular-orbit velocity.

        Returns
        -------
        tuple
            (position, velocity): (0, r, 0) and (sqrt(µ/r), 0, 0)
        """
        position = np.array([0.0, self.orbit_radius, 0.0])
        velocity = np.array([circular_orbit_velocity(self.orbit_radius, self.mu), 0.0, 0.0])
        return position, velocity

    @property
    def deployment_time(self) -> float:
        """Nominal time to pay out the full length at constant speed [s]."""
        remaining = self.length - self.initial_deployed_length
        if self.deployment_speed <= 0:
            return float("inf")
        return remaining / self.deployment_speed

    def replace(self, **overrides: Any) -> TetherConfig:
        """Return a validated copy with ``overrides`` applied."""
        unknown = set(overrides) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        out = dataclasses.asdict(self)
        out["deployment_angle"] = list(self.deployment_angle)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TetherConfig:
        """
        Build a config from a plain mapping.

        Raises
        ------
        ConfigurationError
            If the mapping holds keys that are not configuration fields
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> TetherConfig:
        """Load a JSON configuration file."""
        from cablesim.utils.io import load_simulation_config

        return cls.from_dict(load_simulation_config(path))
