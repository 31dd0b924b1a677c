"""
CableSim - Lumped-mass simulator for tether deployment in orbit.

Core Components
---------------
Cable : Deploying tether dynamics engine
TetherSimulation : Frame-based run driver with logging and plots
TetherConfig : Run parameters with the reference deployment defaults

Models
------
CentralGravity, UniformGravity : Force fields
DeploymentFriction : Spool friction with brake at full length
SpringDamperTension, InextensibleTension : Link tension solvers

Examples
--------
>>> from cablesim import Cable, TetherConfig, TetherSimulation
>>> cfg = TetherConfig(points=200)
>>> sim = TetherSimulation(Cable.from_config(cfg), cfg.timestep)
>>> for frame in sim.frames(50):
...     print(frame.hud())
"""

__version__ = "0.1.0"

from cablesim.config import TetherConfig
from cablesim.core.cable import Cable, CableState
from cablesim.core.simulation import Frame, TetherSimulation

# Constraints
from cablesim.dynamics.constraints import InextensibleTension, SpringDamperTension

# Forces
from cablesim.dynamics.forces import (
    CentralGravity,
    DeploymentFriction,
    UniformGravity,
    no_friction,
    pointwise,
)
from cablesim.exceptions import CableSimError, ConfigurationError, SimulationError

# Logging
from cablesim.logger import CSVLogger
from cablesim.api.scenario import Scenario

__all__ = [
    # Version
    "__version__",
    # Core
    "Cable",
    "CableState",
    "TetherConfig",
    "TetherSimulation",
    "Frame",
    # Forces
    "CentralGravity",
    "UniformGravity",
    "DeploymentFriction",
    "no_friction",
    "pointwise",
    # Constraints
    "SpringDamperTension",
    "InextensibleTension",
    # Errors
    "CableSimError",
    "ConfigurationError",
    "SimulationError",
    # Logging
    "CSVLogger",
    # API
    "Scenario",
]
