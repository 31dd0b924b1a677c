"""
Verification Test Suite for CableSim.

These tests compare simulation results against analytical expectations
to validate the deployment engine.

Test Categories:
- Orbit: free flight of a coiled cable on a circular orbit
- Deployment: paid-out length, clamping, brake engagement
- Chain: tension sign, continuity, determinism
- Energy: conservation in orbit, dissipation during deployment
"""

import numpy as np
import pytest

from cablesim.config import TetherConfig
from cablesim.core.cable import Cable
from cablesim.dynamics.forces import UniformGravity, no_friction


# -----------------------------------------------------------------------------
# Common Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def reference_config():
    """Reference deployment: 100 m, 1 g/m, 10 m/s straight down, no friction."""
    return TetherConfig(friction=0.0, braking_force=0.0)


@pytest.fixture
def fast_config(reference_config):
    """Reference deployment at reduced resolution (100 links, dt = 1 ms)."""
    return reference_config.replace(points=100, timestep=1e-3, substeps_per_frame=20)


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------

def make_free_space_cable(point_count=20, segment_length=0.5, speed=10.0, **kwargs) -> Cable:
    """Cable deploying along +x in zero gravity from an anchor at rest."""
    return Cable(
        anchor_position=np.zeros(3),
        anchor_velocity=np.zeros(3),
        sat_mass=kwargs.pop("sat_mass", 1.0),
        end_mass=kwargs.pop("end_mass", 0.1),
        segment_length=segment_length,
        linear_density=kwargs.pop("linear_density", 0.01),
        point_count=point_count,
        gravity=UniformGravity(np.zeros(3)),
        deployment_velocity=np.array([speed, 0.0, 0.0]),
        friction=kwargs.pop("friction", no_friction),
        **kwargs,
    )


@pytest.fixture
def free_space_cable():
    """Factory for zero-gravity deployment cables."""
    return make_free_space_cable
