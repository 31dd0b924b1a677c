"""
Lumped-mass chain state with semi-implicit Euler integration.

All physical quantities use SI units:
- Position: meters [m]
- Velocity: meters per second [m/s]
- Mass: kilograms [kg]
"""
from __future__ import annotations

import warnings

import numpy as np
from numpy.typing import NDArray

from cablesim.exceptions import ConfigurationError, SimulationError

# Constants
MIN_MASS = 1e-10  # Minimum inertial mass to avoid division by zero


def readonly(a: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return a non-writeable view of ``a`` (no copy)."""
    view = a.view()
    view.flags.writeable = False
    return view


class PointMassChain:
    """
    Ordered sequence of point masses stored column-wise.

    State Variables
    ---------------
    - p : NDArray[np.float64]
        Positions in the inertial frame [m] (n, 3)
    - v : NDArray[np.float64]
        Velocities in the inertial frame [m/s] (n, 3)
    - mass : NDArray[np.float64]
        Point masses [kg] (n,). Fixed after construction.

    Notes
    -----
    Uses __slots__ and flat arrays so a step touches contiguous memory only.
    Index 0 is the anchor, index n-1 the free end.
    """
    __slots__ = ("p", "v", "mass")

    def __init__(
        self,
        positions: NDArray[np.float64],
        velocities: NDArray[np.float64],
        masses: NDArray[np.float64],
    ) -> None:
        """
        Initialize the chain.

        Parameters
        ----------
        positions : NDArray[np.float64]
            Initial positions [m] (n, 3)
        velocities : NDArray[np.float64]
            Initial velocities [m/s] (n, 3)
        masses : NDArray[np.float64]
            Point masses [kg] (n,). Must be non-negative.

        Raises
        ------
        ConfigurationError
            If shapes disagree or a mass is negative.
        """
        p = np.array(positions, dtype=np.float64)
        v = np.array(velocities, dtype=np.float64)
        m = np.array(masses, dtype=np.float64)

        if p.ndim != 2 or p.shape[1] != 3:
            raise ConfigurationError(f"Positions must have shape (n, 3), got {p.shape}")
        if v.shape != p.shape:
            raise ConfigurationError(
                f"Velocities shape {v.shape} does not match positions {p.shape}"
            )
        if m.shape != (p.shape[0],):
            raise ConfigurationError(
                f"Masses must have shape ({p.shape[0]},), got {m.shape}"
            )
        if np.any(m < 0):
            raise ConfigurationError(f"Masses must be non-negative, got min {m.min()}")
        if np.any(m < MIN_MASS):
            warnings.warn(
                f"{int(np.sum(m < MIN_MASS))} point mass(es) below {MIN_MASS} kg; "
                "they are floored for integration.",
                RuntimeWarning, stacklevel=2
            )

        self.p = p
        self.v = v
        self.mass = m

    def __len__(self) -> int:
        return self.p.shape[0]

    def inertial_masses(self) -> NDArray[np.float64]:
        """Masses floored at MIN_MASS, safe to divide by."""
        return np.maximum(self.mass, MIN_MASS)

    def integrate_semi_implicit(
        self,
        dt: float,
        accelerations: NDArray[np.float64],
    ) -> None:
        """
        Semi-implicit (symplectic) Euler integration of every point.

        Parameters
        ----------
        dt : float
            Time step [s]
        accelerations : NDArray[np.float64]
            Accelerations [m/s²] (n, 3)

        Raises
        ------
        SimulationError
            If the update is non-finite. The chain is left untouched.

        Notes
        -----
        Integration order (symplectic):
        1. v_{n+1} = v_n + a * dt
        2. p_{n+1} = p_n + v_{n+1} * dt

        This ordering keeps orbital energy bounded where explicit Euler drifts.
        """
        v_new = self.v + accelerations * dt
        p_new = self.p + v_new * dt

        if not (np.all(np.isfinite(v_new)) and np.all(np.isfinite(p_new))):
            bad = np.flatnonzero(~np.all(np.isfinite(p_new) & np.isfinite(v_new), axis=1))
            raise SimulationError(
                f"Non-finite state at point(s) {bad[:10].tolist()} after dt={dt}. "
                "Reduce the timestep or the link stiffness."
            )

        self.v = v_new
        self.p = p_new

    def hold(self, indices: slice, source: int) -> None:
        """Make the points in ``indices`` coincide with point ``source``."""
        self.p[indices] = self.p[source]
        self.v[indices] = self.v[source]

    def merge_velocities(self, i: int, j: int) -> None:
        """
        Give points ``i`` and ``j`` their common centre-of-mass velocity.

        A perfectly inelastic capture: momentum is kept, kinetic energy can
        only drop.
        """
        m_i, m_j = np.maximum(self.mass[[i, j]], MIN_MASS)
        v = (m_i * self.v[i] + m_j * self.v[j]) / (m_i + m_j)
        self.v[i] = v
        self.v[j] = v

    def kinetic_energy(self) -> float:
        """
        Compute total kinetic energy.

        Returns
        -------
        float
            Kinetic energy [J] = 0.5 * sum(m * |v|²)
        """
        return float(0.5 * np.sum(self.mass * np.einsum("ij,ij->i", self.v, self.v)))

    def momentum(self) -> NDArray[np.float64]:
        """Total linear momentum [kg·m/s] (3,)."""
        return (self.mass[:, None] * self.v).sum(axis=0)
