"""
Validation utilities for physical parameters and state variables.

Every helper raises :class:`~cablesim.exceptions.ConfigurationError` so
callers can tell bad input apart from numerical failure.
"""
from __future__ import annotations

import math
import warnings

import numpy as np
from numpy.typing import NDArray

from cablesim.exceptions import ConfigurationError


def validate_finite(value: float, name: str) -> float:
    """Return ``value`` as float, rejecting NaN and infinities."""
    try:
        out = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(out):
        raise ConfigurationError(f"{name} must be finite, got {value}")
    return out


def validate_positive(value: float, name: str, strict: bool = True) -> float:
    """
    Validate that a scalar value is positive.

    Parameters
    ----------
    value : float
        Value to validate
    name : str
        Parameter name for error messages
    strict : bool
        If True, raise ConfigurationError. If False, issue warning.

    Returns
    -------
    float
        The validated value

    Raises
    ------
    ConfigurationError
        If strict=True and value <= 0
    """
    out = validate_finite(value, name)
    if out <= 0:
        msg = f"{name} must be positive, got {value}"
        if strict:
            raise ConfigurationError(msg)
        warnings.warn(msg, RuntimeWarning, stacklevel=2)
    return out


def validate_non_negative(value: float, name: str) -> float:
    """Validate that a value is non-negative."""
    out = validate_finite(value, name)
    if out < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return out


def validate_point_count(count: int, minimum: int = 2) -> int:
    """Validate the number of cable links."""
    if isinstance(count, bool) or int(count) != count:
        raise ConfigurationError(f"Point count must be an integer, got {count!r}")
    if count < minimum:
        raise ConfigurationError(f"Point count must be at least {minimum}, got {count}")
    return int(count)


def validate_vector3(v, name: str) -> NDArray[np.float64]:
    """
    Validate and copy a 3-vector.

    Raises
    ------
    ConfigurationError
        If the input is not shape (3,) or holds non-finite entries
    """
    try:
        arr = np.array(v, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a 3-vector, got {v!r}") from e
    if arr.shape != (3,):
        raise ConfigurationError(f"{name} must have shape (3,), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} must be finite, got {arr}")
    return arr


def validate_timestep(dt: float, max_dt: float = 1.0) -> float:
    """
    Validate timestep is positive and reasonable.

    Parameters
    ----------
    dt : float
        Time step [s]
    max_dt : float
        Maximum reasonable timestep [s]

    Raises
    ------
    ConfigurationError
        If timestep is not a positive finite number
    """
    out = validate_finite(dt, "Timestep")
    if out <= 0:
        raise ConfigurationError(f"Timestep must be positive, got {dt}")
    if out > max_dt:
        warnings.warn(
            f"Large timestep {dt}s may cause instability. "
            f"Consider using dt < {max_dt}s.",
            RuntimeWarning,
            stacklevel=2
        )
    return out
