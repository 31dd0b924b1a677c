"""
Force field and deployment friction models.

Both capabilities are narrow callables injected into the Cable:

- ``ForceField``: positions -> accelerations, vectorised over points
- ``FrictionModel``: deployed length -> opposing force magnitude

Any plain function with the matching signature works; the classes here are
the defaults.

Physical units:
- Accelerations: meters per second squared [m/s²]
- Forces: Newtons [N]
- Gravitational parameter: [m³/s²]
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from cablesim.exceptions import ConfigurationError
from cablesim.utils.validation import (
    validate_non_negative,
    validate_positive,
    validate_vector3,
)

# Physical constants
STANDARD_GRAVITATIONAL_PARAMETER = 3.986e14  # Earth µ [m³/s²]
EPSILON_DISTANCE = 1e-12  # Minimum radius for the central field [m]


class ForceField(Protocol):
    """Protocol for position-dependent acceleration fields."""
    def __call__(self, positions: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Evaluate field accelerations.

        Parameters
        ----------
        positions : NDArray[np.float64]
            Point positions [m], shape (3,) or (n, 3)

        Returns
        -------
        NDArray[np.float64]
            Accelerations [m/s²], same shape as ``positions``
        """
        ...


class FrictionModel(Protocol):
    """Protocol for deployment resistance as a function of paid-out length."""
    def __call__(self, deployed_length: float) -> float:
        """Return the opposing force magnitude [N], always >= 0."""
        ...


class CentralGravity:
    """
    Newtonian point-mass gravity toward a fixed center.

    Acceleration: a(p) = -µ / |r|² * r̂ with r = p - center

    Parameters
    ----------
    mu : float
        Gravitational parameter [m³/s²]. Earth: 3.986e14
    center : NDArray[np.float64] | None
        Attracting center [m] (3,). Defaults to the origin.

    Notes
    -----
    Undefined at the center itself; radii below EPSILON_DISTANCE are
    clamped, which never happens for an orbiting anchor.

    Examples
    --------
    >>> gravity = CentralGravity(3.986e14)
    >>> a = gravity(np.array([0.0, 6.771e6, 0.0]))
    """
    def __init__(
        self,
        mu: float = STANDARD_GRAVITATIONAL_PARAMETER,
        center: NDArray[np.float64] | None = None,
    ) -> None:
        self.mu = validate_non_negative(mu, "Gravitational parameter")
        self.center = (np.zeros(3, dtype=np.float64) if center is None
                       else validate_vector3(center, "Gravity center"))

    def __call__(self, positions: NDArray[np.float64]) -> NDArray[np.float64]:
        r = np.asarray(positions, dtype=np.float64) - self.center
        r2 = np.maximum(np.sum(r * r, axis=-1, keepdims=True), EPSILON_DISTANCE**2)
        return -self.mu * r / (r2 * np.sqrt(r2))

    def potential(self, positions: NDArray[np.float64]) -> NDArray[np.float64]:
        """Specific potential energy -µ/|r| [J/kg] per point."""
        r = np.asarray(positions, dtype=np.float64) - self.center
        dist = np.maximum(np.linalg.norm(r, axis=-1), EPSILON_DISTANCE)
        return -self.mu / dist

    def circular_speed(self, radius: float) -> float:
        """Circular orbit speed sqrt(µ/r) [m/s] at ``radius``."""
        return float(np.sqrt(self.mu / validate_positive(radius, "Orbit radius")))


class UniformGravity:
    """
    Uniform gravitational field.

    Parameters
    ----------
    g : NDArray[np.float64]
        Gravitational acceleration vector [m/s²] (3,)
        Standard Earth surface gravity: [0, 0, -9.81]

    Examples
    --------
    >>> gravity = UniformGravity(np.array([0.0, -9.81, 0.0]))
    """
    def __init__(self, g: NDArray[np.float64]) -> None:
        self.g = validate_vector3(g, "Gravity vector")

    def __call__(self, positions: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.broadcast_to(self.g, np.shape(positions)).copy()

    def potential(self, positions: NDArray[np.float64]) -> NDArray[np.float64]:
        """Specific potential energy -g·p [J/kg] per point."""
        return -np.asarray(positions, dtype=np.float64) @ self.g


def pointwise(
    fn: Callable[[NDArray[np.float64]], NDArray[np.float64]],
) -> ForceField:
    """
    Lift a single-point acceleration function to the vectorised contract.

    Parameters
    ----------
    fn : Callable
        Function mapping one position (3,) to one acceleration (3,)

    Returns
    -------
    ForceField
        Callable accepting (3,) or (n, 3) positions

    Examples
    --------
    >>> field = pointwise(lambda p: -3.986e14 * p / np.linalg.norm(p)**3)
    """
    if not callable(fn):
        raise ConfigurationError(f"Force field must be callable, got {fn!r}")

    def field(positions: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.apply_along_axis(
            lambda p: np.asarray(fn(p), dtype=np.float64), -1,
            np.asarray(positions, dtype=np.float64),
        )

    return field


class DeploymentFriction:
    """
    Spool resistance with a brake engaged at full length.

    Returns ``friction`` while the deployed length is below the target and
    ``friction + braking_force`` once it has reached it.

    Parameters
    ----------
    target_length : float
        Length at which the brake engages [m]
    friction : float
        Constant deployment friction [N]
    braking_force : float
        Additional brake force at full length [N]

    Examples
    --------
    >>> model = DeploymentFriction(target_length=100.0, friction=0.1, braking_force=1.0)
    >>> model(50.0), model(100.0)
    (0.1, 1.1)
    """
    def __init__(
        self,
        target_length: float,
        friction: float = 0.0,
        braking_force: float = 0.0,
    ) -> None:
        self.target_length = validate_positive(target_length, "Target length")
        self.friction = validate_non_negative(friction, "Friction force")
        self.braking_force = validate_non_negative(braking_force, "Braking force")

    def is_braking(self, deployed_length: float) -> bool:
        """True once the deployed length has reached the target."""
        return deployed_length >= self.target_length

    def __call__(self, deployed_length: float) -> float:
        if deployed_length < 0:
            raise ConfigurationError(f"Deployed length must be non-negative, got {deployed_length}")
        if self.is_braking(deployed_length):
            return self.friction + self.braking_force
        return self.friction


def no_friction(deployed_length: float) -> float:
    """Frictionless spool."""
    return 0.0
