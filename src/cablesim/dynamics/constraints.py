"""
Unilateral rope links between consecutive chain points.

A rope link can pull but never push. Two tension models share one
interface and are interchangeable on a Cable:

- ``SpringDamperTension``: stiff one-sided Kelvin-Voigt link, explicit and
  O(n). Adequate at small timesteps with many sub-steps per frame.
- ``InextensibleTension``: Lagrange multipliers for an inextensible rope,
  solved as a tridiagonal system with an active set that releases links
  which would otherwise push.

Link ``j`` connects points ``j`` and ``j + 1``. Only the first
``count`` links are evaluated; the caller guarantees they are contiguous
from the anchor.
"""
from __future__ import annotations

from typing import Protocol

import numpy as np
import scipy.linalg
from numpy.typing import NDArray

from cablesim.exceptions import ConfigurationError, SimulationError
from cablesim.utils.validation import validate_non_negative, validate_positive

Array = NDArray[np.float64]

EPSILON_DISTANCE = 1e-12  # Links shorter than this carry no force [m]
DEFAULT_STIFFNESS_FACTOR = 0.2  # k = factor * m_min / dt², keeps ω·dt ≈ 0.9 on the stiffest mode
DEFAULT_DAMPING_RATIO = 0.3
DEFAULT_SLACK_TOLERANCE = 1e-6  # Relative length below which a link is slack


class TensionModel(Protocol):
    """Protocol for link tension solvers."""
    def solve(
        self,
        positions: Array,
        velocities: Array,
        masses: Array,
        forces: Array,
        rest_length: float,
        count: int,
        dt: float,
    ) -> Array:
        """
        Compute link tensions and add the link forces to ``forces``.

        Parameters
        ----------
        positions, velocities : Array
            Chain state (n, 3)
        masses : Array
            Inertial masses (n,), all > 0
        forces : Array
            External forces (n, 3), updated in place
        rest_length : float
            Nominal link length [m]
        count : int
            Number of active links, counted from the anchor
        dt : float
            Step size [s]

        Returns
        -------
        Array
            Tensions [N] (count,), all >= 0
        """
        ...


def link_geometry(
    positions: Array,
    velocities: Array,
    count: int,
) -> tuple[Array, Array, Array, Array]:
    """
    Separation, length, unit direction and relative velocity per link.

    Returns
    -------
    d : (count, 3)
        p[j+1] - p[j]
    length : (count,)
    unit : (count, 3)
        d / length, zero for degenerate links
    dv : (count, 3)
        v[j+1] - v[j]
    """
    d = positions[1:count + 1] - positions[:count]
    dv = velocities[1:count + 1] - velocities[:count]
    length = np.linalg.norm(d, axis=1)
    safe = np.where(length > EPSILON_DISTANCE, length, 1.0)
    unit = np.where((length > EPSILON_DISTANCE)[:, None], d / safe[:, None], 0.0)
    return d, length, unit, dv


def scatter_link_forces(forces: Array, tensions: Array, unit: Array) -> None:
    """Pull each link's endpoints toward each other with its tension."""
    count = tensions.shape[0]
    pull = tensions[:, None] * unit
    forces[:count] += pull
    forces[1:count + 1] -= pull


class SpringDamperTension:
    """
    One-sided spring-damper rope links.

    Force law for a taut link (length > rest length):
        T = max(0, k * (|d| - L₀) + c * (Δv · d̂))

    Slack links carry no tension regardless of their stretch rate.

    Parameters
    ----------
    stiffness : float | None
        Link stiffness [N/m]. If None, derived per step as
        ``stiffness_factor * m_min / dt²``.
    damping : float | None
        Link damping [N·s/m]. If None, derived as
        ``damping_ratio * 2 * sqrt(k * m_min / 2)``.
    stiffness_factor : float
        Fraction of the explicit stability limit used for derived stiffness.
    damping_ratio : float
        Fraction of critical damping used for derived damping.

    Notes
    -----
    m_min is the smallest inertial mass touched by an active link. Deriving
    k from it keeps the highest chain mode inside the stability region of
    semi-implicit Euler whatever the timestep.

    Examples
    --------
    >>> model = SpringDamperTension()                 # derived from dt
    >>> model = SpringDamperTension(stiffness=5e3, damping=0.5)
    """
    def __init__(
        self,
        stiffness: float | None = None,
        damping: float | None = None,
        stiffness_factor: float = DEFAULT_STIFFNESS_FACTOR,
        damping_ratio: float = DEFAULT_DAMPING_RATIO,
    ) -> None:
        self.stiffness = None if stiffness is None else validate_positive(stiffness, "Link stiffness")
        self.damping = None if damping is None else validate_non_negative(damping, "Link damping")
        self.stiffness_factor = validate_positive(stiffness_factor, "Stiffness factor")
        self.damping_ratio = validate_non_negative(damping_ratio, "Damping ratio")
        if self.stiffness_factor > 1.0:
            raise ConfigurationError(
                f"Stiffness factor above 1.0 is unstable, got {stiffness_factor}"
            )

    def coefficients(self, min_mass: float, dt: float) -> tuple[float, float]:
        """Return (k, c) for the given smallest mass and timestep."""
        k = self.stiffness if self.stiffness is not None else self.stiffness_factor * min_mass / dt**2
        if self.damping is not None:
            c = self.damping
        else:
            c = self.damping_ratio * 2.0 * np.sqrt(k * min_mass / 2.0)
        return float(k), float(c)

    def solve(
        self,
        positions: Array,
        velocities: Array,
        masses: Array,
        forces: Array,
        rest_length: float,
        count: int,
        dt: float,
    ) -> Array:
        if count == 0:
            return np.zeros(0, dtype=np.float64)

        k, c = self.coefficients(float(masses[:count + 1].min()), dt)
        _, length, unit, dv = link_geometry(positions, velocities, count)

        stretch = length - rest_length
        rate = np.einsum("ij,ij->i", dv, unit)
        tensions = np.where(stretch > 0.0, np.maximum(0.0, k * stretch + c * rate), 0.0)

        scatter_link_forces(forces, tensions, unit)
        return tensions


class InextensibleTension:
    """
    Inextensible rope links via an active-set multiplier solve.

    Each taut link enforces C = 0.5 (|d|² - L₀²) = 0 at acceleration level:

        d · Δa = -|Δv|² - β Ċ - α C,   Ċ = d · Δv

    With a = W (F + Jᵀλ) the multipliers solve (J W Jᵀ) λ = b, a
    tridiagonal system for a chain. A link whose multiplier would push
    (λ > 0) is released and the system re-solved.

    Parameters
    ----------
    alpha : float | None
        Baumgarte position gain [1/s²]. If None, (0.1 / dt)².
    beta : float | None
        Baumgarte velocity gain [1/s]. If None, 0.2 / dt.
    max_iterations : int
        Active-set iterations per step.
    slack_tolerance : float
        Links shorter than (1 - tol) * L₀ start the step as slack.

    Notes
    -----
    Tension is recovered from the multiplier as T = -λ |d|.
    """
    def __init__(
        self,
        alpha: float | None = None,
        beta: float | None = None,
        max_iterations: int = 10,
        slack_tolerance: float = DEFAULT_SLACK_TOLERANCE,
    ) -> None:
        self.alpha = None if alpha is None else validate_non_negative(alpha, "Baumgarte alpha")
        self.beta = None if beta is None else validate_non_negative(beta, "Baumgarte beta")
        if int(max_iterations) < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {max_iterations}")
        self.max_iterations = int(max_iterations)
        self.slack_tolerance = validate_non_negative(slack_tolerance, "Slack tolerance")

    def gains(self, dt: float) -> tuple[float, float]:
        alpha = self.alpha if self.alpha is not None else (0.1 / dt) ** 2
        beta = self.beta if self.beta is not None else 0.2 / dt
        return alpha, beta

    def solve(
        self,
        positions: Array,
        velocities: Array,
        masses: Array,
        forces: Array,
        rest_length: float,
        count: int,
        dt: float,
    ) -> Array:
        tensions = np.zeros(count, dtype=np.float64)
        if count == 0:
            return tensions

        alpha, beta = self.gains(dt)
        d, length, unit, dv = link_geometry(positions, velocities, count)
        w = 1.0 / masses[:count + 1]
        a0 = forces[:count + 1] * w[:, None]

        C = 0.5 * (length**2 - rest_length**2)
        Cdot = np.einsum("ij,ij->i", d, dv)
        da0 = a0[1:] - a0[:-1]
        b_full = (-np.einsum("ij,ij->i", dv, dv) - beta * Cdot - alpha * C
                  - np.einsum("ij,ij->i", d, da0))

        diag_full = np.einsum("ij,ij->i", d, d) * (w[:-1] + w[1:])
        # Coupling between link j and j+1 through their shared point j+1
        off_full = -w[1:-1] * np.einsum("ij,ij->i", d[:-1], d[1:])

        active = length >= rest_length * (1.0 - self.slack_tolerance)
        active &= length > EPSILON_DISTANCE
        lam = np.zeros(count, dtype=np.float64)

        for _ in range(self.max_iterations):
            idx = np.flatnonzero(active)
            if idx.size == 0:
                lam[:] = 0.0
                break

            lam_active = self._solve_tridiagonal(idx, diag_full, off_full, b_full)
            lam[:] = 0.0
            lam[idx] = lam_active

            pushing = idx[lam_active > 0.0]
            if pushing.size == 0:
                break
            active[pushing] = False

        tensions = np.maximum(0.0, -lam * length)
        scatter_link_forces(forces, tensions, unit)
        return tensions

    @staticmethod
    def _solve_tridiagonal(idx: Array, diag: Array, off: Array, b: Array) -> Array:
        n = idx.size
        ab = np.zeros((3, n), dtype=np.float64)
        ab[1] = diag[idx]
        if n > 1:
            # Off-diagonal only between links that share a point
            adjacent = np.diff(idx) == 1
            coupling = np.where(adjacent, off[idx[:-1]], 0.0)
            ab[0, 1:] = coupling
            ab[2, :-1] = coupling
        try:
            return scipy.linalg.solve_banded((1, 1), ab, b[idx])
        except (np.linalg.LinAlgError, ValueError) as e:
            raise SimulationError(f"Link constraint system could not be solved: {e}") from e
