"""
Deploying tether modeled as a lumped-mass rope chain.

The cable runs from the satellite (anchor, index 0) to the end mass (free
end, index N). The spool rides on the end mass: cable is paid out at the
free end, so interior points that have not been released yet are stowed,
held coincident with the free end and carried by its inertia.

Each ``step(dt)``:

1. evaluates the force field on every point
2. applies spool friction/braking to the free end
3. solves link tensions for the links active at the start of the step
4. integrates with semi-implicit Euler
5. advances the deployed length from the updated feed rate (free end
   relative to the last paid-out point) and pays out the points reached:
   each is laid one segment (or the remaining gap, if shorter) from its
   predecessor toward the free end and captured inelastically by it
6. exports tensions for telemetry
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from cablesim.config import STRAIGHT_DOWN, TetherConfig
from cablesim.dynamics.chain import PointMassChain, readonly
from cablesim.dynamics.constraints import SpringDamperTension, TensionModel, link_geometry
from cablesim.dynamics.forces import (
    CentralGravity,
    DeploymentFriction,
    ForceField,
    FrictionModel,
)
from cablesim.exceptions import ConfigurationError
from cablesim.utils.validation import (
    validate_non_negative,
    validate_point_count,
    validate_positive,
    validate_timestep,
    validate_vector3,
)

Array = NDArray[np.float64]

EPSILON_VELOCITY = 1e-12  # Below this relative speed the spool does not slip [m/s]
EPSILON_DISTANCE = 1e-12  # Free end and feeding point treated as coincident [m]
RELEASE_TOLERANCE = 1e-9  # Relative slack when comparing cable coordinates


@dataclass(frozen=True)
class CableState:
    """Immutable copy of the cable telemetry at one instant."""
    time: float
    deployed_length: float
    positions: Array
    velocities: Array
    tensions: Array
    released_count: int
    active_link_count: int
    opposing_force: float

    @property
    def sat_position(self) -> Array:
        return self.positions[0]

    @property
    def end_position(self) -> Array:
        return self.positions[-1]

    @property
    def max_tension(self) -> float:
        return float(self.tensions.max()) if self.tensions.size else 0.0

    def as_row(self) -> dict[str, float]:
        """Flat summary for tabular export, time first (CSVLogger column names)."""
        row = {
            "t": self.time,
            "deployed_length": self.deployed_length,
            "released": self.released_count,
            "active_links": self.active_link_count,
            "opposing_force": self.opposing_force,
            "tension_max": self.max_tension,
        }
        for name, point in (("sat", self.sat_position), ("end", self.end_position)):
            for axis, value in zip("xyz", point):
                row[f"{name}.p_{axis}"] = float(value)
        return row


class Cable:
    """
    Tether deployment dynamics engine.

    Parameters
    ----------
    anchor_position : Array
        Satellite position [m] (3,)
    anchor_velocity : Array
        Satellite velocity [m/s] (3,). sqrt(µ/|p|) tangential for a circular orbit.
    sat_mass : float
        Satellite mass [kg]
    end_mass : float
        End mass [kg]
    segment_length : float
        Nominal link length [m]
    linear_density : float
        Tether mass per unit length [kg/m]
    point_count : int
        Number of links N (>= 2). The chain holds N + 1 mass points.
    gravity : ForceField
        Vectorised acceleration field
    deployment_velocity : Array
        End-mass velocity relative to the satellite at t = 0 [m/s] (3,)
    friction : FrictionModel
        Spool resistance as a function of deployed length
    initial_deployed_length : float
        Cable already paid out [m], in [0, N * segment_length]
    tension_model : TensionModel | None
        Link tension solver. Defaults to SpringDamperTension().
    deployment_direction : Array | None
        Unit direction used to lay out the initial cable and to feed while
        the free end still coincides with the last released point. Defaults
        to the deployment velocity direction, else toward the origin, else
        straight down (-y).
    target_length : float | None
        Full cable length [m]. Must agree with point_count * segment_length
        to within rounding; deployment clamps at exactly this value, so pass
        the same number the friction model brakes at.

    Raises
    ------
    ConfigurationError
        If any input is invalid

    Examples
    --------
    >>> cable = Cable.from_config(TetherConfig(points=100))
    >>> for _ in range(200):
    ...     cable.step(1e-4)
    >>> cable.deployed_length, cable.tensions.max()
    """

    def __init__(
        self,
        anchor_position: Array,
        anchor_velocity: Array,
        sat_mass: float,
        end_mass: float,
        segment_length: float,
        linear_density: float,
        point_count: int,
        gravity: ForceField,
        deployment_velocity: Array,
        friction: FrictionModel,
        *,
        initial_deployed_length: float = 0.0,
        tension_model: TensionModel | None = None,
        deployment_direction: Array | None = None,
        target_length: float | None = None,
    ) -> None:
        anchor_p = validate_vector3(anchor_position, "Anchor position")
        anchor_v = validate_vector3(anchor_velocity, "Anchor velocity")
        deploy_v = validate_vector3(deployment_velocity, "Deployment velocity")
        sat_mass = validate_non_negative(sat_mass, "Satellite mass")
        end_mass = validate_non_negative(end_mass, "End mass")
        self._segment_length = validate_positive(segment_length, "Segment length")
        self._density = validate_non_negative(linear_density, "Linear density")
        n = validate_point_count(point_count)
        if not callable(gravity):
            raise ConfigurationError(f"Gravity must be callable, got {gravity!r}")
        if not callable(friction):
            raise ConfigurationError(f"Friction model must be callable, got {friction!r}")

        self._n = n
        self._target_length = n * self._segment_length
        if target_length is not None:
            target = validate_positive(target_length, "Target length")
            if not math.isclose(target, self._target_length, rel_tol=RELEASE_TOLERANCE):
                raise ConfigurationError(
                    f"Target length {target} does not match {n} links of {self._segment_length} m"
                )
            self._target_length = target
        initial = validate_non_negative(initial_deployed_length, "Initial deployed length")
        if initial > self._target_length * (1.0 + RELEASE_TOLERANCE):
            raise ConfigurationError(
                f"Initial deployed length {initial} exceeds target length {self._target_length}"
            )
        self._deployed_length = min(initial, self._target_length)

        self._direction = self._resolve_direction(deployment_direction, deploy_v, anchor_p)
        self.gravity = gravity
        self.friction = friction
        self.tension_model = tension_model if tension_model is not None else SpringDamperTension()

        self.chain = self._build_chain(anchor_p, anchor_v, deploy_v, sat_mass, end_mass)
        self._released = self._released_for(self._deployed_length)

        sample = np.asarray(self.gravity(self.chain.p), dtype=np.float64)
        if sample.shape != self.chain.p.shape:
            raise ConfigurationError(
                f"Force field returned shape {sample.shape} for positions {self.chain.p.shape}; "
                "wrap single-point functions with cablesim.dynamics.forces.pointwise()"
            )

        self._tensions = np.zeros(n, dtype=np.float64)
        self._time = 0.0
        self._steps = 0
        self._opposing_force = 0.0

    @classmethod
    def from_config(
        cls,
        config: TetherConfig,
        tension_model: TensionModel | None = None,
        gravity: ForceField | None = None,
        friction: FrictionModel | None = None,
    ) -> Cable:
        """
        Build a cable on a circular orbit from a TetherConfig.

        Gravity defaults to CentralGravity(config.mu) and friction to
        DeploymentFriction(config.length, config.friction, config.braking_force).
        """
        position, velocity = config.anchor_state()
        return cls(
            anchor_position=position,
            anchor_velocity=velocity,
            sat_mass=config.sat_mass,
            end_mass=config.end_mass,
            segment_length=config.segment_length,
            linear_density=config.linear_density,
            point_count=config.points,
            gravity=gravity if gravity is not None else CentralGravity(config.mu),
            deployment_velocity=config.deployment_velocity(),
            friction=friction if friction is not None else DeploymentFriction(
                config.length, config.friction, config.braking_force
            ),
            initial_deployed_length=config.initial_deployed_length,
            tension_model=tension_model,
            deployment_direction=config.deployment_direction,
            target_length=config.length,
        )

    # --- Construction helpers ---

    @staticmethod
    def _resolve_direction(direction: Array | None, deploy_v: Array, anchor_p: Array) -> Array:
        if direction is not None:
            d = validate_vector3(direction, "Deployment direction")
        elif np.linalg.norm(deploy_v) > EPSILON_VELOCITY:
            d = deploy_v
        elif np.linalg.norm(anchor_p) > EPSILON_DISTANCE:
            d = -anchor_p
        else:
            d = STRAIGHT_DOWN
        norm = np.linalg.norm(d)
        if norm < EPSILON_DISTANCE:
            raise ConfigurationError("Deployment direction is undefined (zero vector)")
        return d / norm

    def _build_chain(
        self,
        anchor_p: Array,
        anchor_v: Array,
        deploy_v: Array,
        sat_mass: float,
        end_mass: float,
    ) -> PointMassChain:
        n = self._n
        released = self._released_for(self._deployed_length)

        # Cable coordinate of each point: released ones on the grid, the rest at the front
        s = np.full(n + 1, self._deployed_length)
        s[:released + 1] = np.arange(released + 1) * self._segment_length
        s[-1] = self._deployed_length

        positions = anchor_p + s[:, None] * self._direction
        fraction = s / self._deployed_length if self._deployed_length > 0 else np.ones(n + 1)
        fraction[0] = 0.0
        velocities = anchor_v + fraction[:, None] * deploy_v

        masses = np.full(n + 1, self._segment_length * self._density)
        masses[0] = sat_mass
        masses[-1] = end_mass
        return PointMassChain(positions, velocities, masses)

    def _released_for(self, deployed_length: float) -> int:
        """Interior points paid out at ``deployed_length``."""
        count = math.floor(deployed_length / self._segment_length + RELEASE_TOLERANCE)
        return int(min(max(count, 0), self._n - 1))

    # --- Integration ---

    def step(self, dt: float) -> None:
        """
        Advance the cable by exactly ``dt`` of simulated time.

        Parameters
        ----------
        dt : float
            Time step [s], > 0

        Raises
        ------
        ConfigurationError
            If dt is not a positive finite number. State is unchanged.
        SimulationError
            If the integration becomes non-finite. State is unchanged.
        """
        dt = validate_timestep(dt)
        chain = self.chain
        n = self._n
        current = self._released
        active_links = self.active_link_count

        # 1) External field, independent per point
        accel = np.asarray(self.gravity(chain.p), dtype=np.float64)
        masses = self._inertial_masses(current)
        forces = masses[:, None] * accel

        # 2) Spool friction / brake on the free end
        opposing = self._apply_friction(forces, masses, self._deployed_length, current, dt)

        # 3) Link tensions
        tensions = self.tension_model.solve(
            chain.p, chain.v, masses, forces, self._segment_length, active_links, dt
        )

        # 4) Symplectic update; stowed points ride with the free end
        acc = forces / masses[:, None]
        acc[current + 1:n] = acc[n]
        chain.integrate_semi_implicit(dt, acc)
        if current + 1 < n:
            chain.hold(slice(current + 1, n), n)

        # 5) Deployment advance from the updated state, then pay out
        deployed, released = self._advance_deployment(dt)
        for index in range(current + 1, released + 1):
            self._pay_out(index)

        # 6) Commit
        self._deployed_length = deployed
        self._released = released
        self._tensions.fill(0.0)
        self._tensions[:active_links] = tensions
        self._opposing_force = opposing
        self._time += dt
        self._steps += 1

    def _feed_direction(self, released: int) -> Array:
        """Unit vector from the last paid-out point to the free end."""
        d = self.chain.p[self._n] - self.chain.p[released]
        norm = np.linalg.norm(d)
        if norm < EPSILON_DISTANCE:
            return self._direction
        return d / norm

    def _feed_rate(self, direction: Array, released: int) -> float:
        """Free-end speed relative to the last paid-out point along ``direction``."""
        return float(np.dot(self.chain.v[self._n] - self.chain.v[released], direction))

    def _advance_deployment(self, dt: float) -> tuple[float, int]:
        # Post-update velocities and direction: the gap to the free end can
        # grow by at most the length added here
        deployed = self._deployed_length
        if deployed < self._target_length:
            released = self._released
            rate = self._feed_rate(self._feed_direction(released), released)
            deployed = min(self._target_length, deployed + max(0.0, rate) * dt)
        return deployed, self._released_for(deployed)

    def _pay_out(self, index: int) -> None:
        """
        Release stowed point ``index`` behind its predecessor.

        The point is laid toward the free end at no more than one segment
        from the predecessor, so the new link starts slack or at rest length
        and stores no elastic energy. Its velocity is then shared with the
        predecessor (inelastic capture): momentum is kept and kinetic energy
        only drops.
        """
        chain = self.chain
        previous = index - 1
        offset = chain.p[self._n] - chain.p[previous]
        gap = float(np.linalg.norm(offset))
        direction = offset / gap if gap >= EPSILON_DISTANCE else self._direction
        chain.p[index] = chain.p[previous] + min(self._segment_length, gap) * direction
        chain.merge_velocities(index, previous)

    def _inertial_masses(self, released: int) -> Array:
        masses = self.chain.inertial_masses()
        stowed = self.chain.mass[released + 1:self._n].sum()
        masses[self._n] += stowed
        return masses

    def _apply_friction(
        self,
        forces: Array,
        masses: Array,
        deployed: float,
        released: int,
        dt: float,
    ) -> float:
        magnitude = float(self.friction(deployed))
        if magnitude < 0 or not math.isfinite(magnitude):
            raise ConfigurationError(
                f"Friction model must return a finite value >= 0, got {magnitude}"
            )
        if magnitude == 0.0:
            return 0.0

        # Tangent toward the neighbor is -direction; friction opposes the feed
        direction = self._feed_direction(released)
        rate = self._feed_rate(direction, released)
        if abs(rate) < EPSILON_VELOCITY:
            return 0.0

        # Coulomb clamp: at most stop the relative motion within this step
        applied = min(magnitude, masses[self._n] * abs(rate) / dt)
        forces[self._n] -= math.copysign(applied, rate) * direction
        return applied

    # --- Telemetry ---

    @property
    def positions(self) -> Array:
        """Point positions [m] (N+1, 3), index 0 = satellite. Read-only."""
        return readonly(self.chain.p)

    @property
    def velocities(self) -> Array:
        """Point velocities [m/s] (N+1, 3). Read-only."""
        return readonly(self.chain.v)

    @property
    def tensions(self) -> Array:
        """Link tensions [N] (N,), all >= 0. Read-only."""
        return readonly(self._tensions)

    @property
    def masses(self) -> Array:
        """Point masses [kg] (N+1,). Read-only."""
        return readonly(self.chain.mass)

    @property
    def deployed_length(self) -> float:
        return self._deployed_length

    @property
    def time(self) -> float:
        """Elapsed simulated time [s]."""
        return self._time

    @property
    def step_count(self) -> int:
        return self._steps

    @property
    def target_length(self) -> float:
        return self._target_length

    @property
    def segment_length(self) -> float:
        return self._segment_length

    @property
    def point_count(self) -> int:
        """Number of links N; the chain holds N + 1 mass points."""
        return self._n

    @property
    def released_count(self) -> int:
        """Interior points paid out so far."""
        return self._released

    @property
    def active_link_count(self) -> int:
        return self._n if self.is_fully_deployed else self._released

    @property
    def is_fully_deployed(self) -> bool:
        return self._deployed_length >= self._target_length

    @property
    def opposing_force(self) -> float:
        """Friction force applied to the free end during the last step [N]."""
        return self._opposing_force

    @property
    def sat_position(self) -> Array:
        return readonly(self.chain.p[0])

    @property
    def sat_velocity(self) -> Array:
        return readonly(self.chain.v[0])

    @property
    def end_position(self) -> Array:
        return readonly(self.chain.p[self._n])

    @property
    def end_velocity(self) -> Array:
        return readonly(self.chain.v[self._n])

    def max_stretch(self) -> float:
        """Largest relative over-extension of an active link (0 if none stretched)."""
        count = self.active_link_count
        if count == 0:
            return 0.0
        _, length, _, _ = link_geometry(self.chain.p, self.chain.v, count)
        return float(max(0.0, (length.max() - self._segment_length) / self._segment_length))

    def snapshot(self) -> CableState:
        """Copy the current telemetry into an immutable CableState."""
        return CableState(
            time=self._time,
            deployed_length=self._deployed_length,
            positions=self.chain.p.copy(),
            velocities=self.chain.v.copy(),
            tensions=self._tensions.copy(),
            released_count=self._released,
            active_link_count=self.active_link_count,
            opposing_force=self._opposing_force,
        )

    def energy(self) -> dict[str, float]:
        """
        Compute mechanical energy (diagnostic).

        Returns
        -------
        dict[str, float]
            'kinetic', 'potential' (0 if the field has no ``potential``)
            and 'total' [J]

        Notes
        -----
        Link elastic energy is not included.
        """
        kinetic = self.chain.kinetic_energy()
        potential = 0.0
        if hasattr(self.gravity, "potential"):
            potential = float(np.sum(self.chain.mass * self.gravity.potential(self.chain.p)))
        return {
            "kinetic": kinetic,
            "potential": potential,
            "total": kinetic + potential,
        }
