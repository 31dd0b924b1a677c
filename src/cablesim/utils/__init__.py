"""Utility functions for CableSim simulations."""

from .io import load_simulation_config, load_simulation_log, save_simulation_history
from .validation import (
    validate_finite,
    validate_non_negative,
    validate_point_count,
    validate_positive,
    validate_timestep,
    validate_vector3,
)

__all__ = [
    "save_simulation_history",
    "load_simulation_log",
    "load_simulation_config",
    "validate_finite",
    "validate_positive",
    "validate_non_negative",
    "validate_point_count",
    "validate_vector3",
    "validate_timestep",
]
