"""
Exception hierarchy for cablesim.

Configuration problems and numerical failures are kept apart: the first
means the inputs are wrong, the second means the timestep/stiffness pairing
could not keep the integration finite.
"""
from __future__ import annotations


class CableSimError(Exception):
    """Base class for all cablesim errors."""


class ConfigurationError(CableSimError, ValueError):
    """Invalid construction parameter or call argument."""


class SimulationError(CableSimError, RuntimeError):
    """
    Integration produced a non-finite or unsolvable state.

    Usually a sign that the timestep is too large for the chosen link
    stiffness. The cable state is left as it was before the failing step.
    """
