"""Simulation history and configuration I/O."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from cablesim.exceptions import ConfigurationError


def save_simulation_history(history: list[dict[str, Any]], filepath: str | Path) -> Path:
    """
    Save a list of state dictionaries to a CSV file.

    Args:
        history: List of dicts, e.g. [{'t': 0.1, 'deployed_length': 1.0}, ...]
        filepath: Destination path (e.g. 'results/run1.csv')

    Returns:
        The written path
    """
    if not history:
        raise ValueError("Simulation history is empty. Nothing to save.")

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame(history)
    df.to_csv(path, index=False)
    print(f"Simulation results saved to {path.absolute()}")
    return path


def load_simulation_log(filepath: str | Path) -> pd.DataFrame:
    """
    Load a CSV written by CSVLogger.

    Raises:
        ValueError: if the first column is not time 't'
    """
    df = pd.read_csv(filepath)
    if df.columns.empty or df.columns[0] != "t":
        raise ValueError("First column must be time 't'.")
    return df


def tension_profile(df: pd.DataFrame) -> pd.DataFrame:
    """Per-link tension columns (T_0, T_1, ...) of a logged run, in link order."""
    cols = [c for c in df.columns if c.startswith("T_")]
    if not cols:
        raise KeyError("Log has no tension profile. Enable it with tension_profile=True.")
    return df[sorted(cols, key=lambda c: int(c[2:]))]


def load_simulation_config(filepath: str | Path) -> dict[str, Any]:
    """
    Load simulation settings from a JSON file.

    The file holds one object whose keys are TetherConfig fields.

    Raises:
        ConfigurationError: if the file is missing, malformed, or not an object
    """
    path = Path(filepath)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must hold a JSON object")
    return data
