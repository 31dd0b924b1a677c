"""
CSV logging for tether telemetry.

Buffers rows in memory and writes them in batches. Implements the context
manager protocol for safe resource handling.
"""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, TextIO

from cablesim.core.cable import Cable

# Tracked points and how to locate them in the chain
TRACKED_POINTS = {
    "sat": lambda cable: 0,
    "mid": lambda cable: cable.point_count // 2,
    "end": lambda cable: cable.point_count,
}
VALID_FIELDS = {"p", "v"}


class CSVLogger:
    """
    Buffered CSV logger for cable telemetry.

    One row per call to :meth:`log`:

    ``t, deployed_length, active_links, opposing_force, tension_max,
    tension_mean, <point>.<field>_<x|y|z>...[, T_0 ... T_{N-1}]``

    Parameters
    ----------
    filepath : str | Path
        Output CSV file path
    buffer_size : int
        Rows buffered before writing. Higher = fewer writes but more memory.
    fields : list[str] | None
        Per-point fields. Default ["p", "v"]. Options: "p" (position),
        "v" (velocity).
    points : list[str] | None
        Tracked points. Default ["sat", "mid", "end"].
    tension_profile : bool
        If True, append the tension of every link to each row.

    Examples
    --------
    >>> with CSVLogger("deploy.csv") as logger:
    ...     for _ in range(100):
    ...         cable.step(1e-4)
    ...         logger.log(cable)

    >>> logger = CSVLogger("profile.csv", tension_profile=True)
    >>> logger.log(cable)
    >>> logger.close()  # Important!
    """

    def __init__(
        self,
        filepath: str | Path,
        buffer_size: int = 1000,
        fields: list[str] | None = None,
        points: list[str] | None = None,
        tension_profile: bool = False,
    ) -> None:
        self.filepath = Path(filepath)
        self.buffer_size = int(buffer_size)
        self.fields = fields if fields is not None else ["p", "v"]
        self.points = points if points is not None else list(TRACKED_POINTS)
        self.tension_profile = tension_profile

        invalid = set(self.fields) - VALID_FIELDS
        if invalid:
            raise ValueError(f"Invalid fields: {invalid}. Valid options: {VALID_FIELDS}")
        invalid = set(self.points) - set(TRACKED_POINTS)
        if invalid:
            raise ValueError(
                f"Invalid points: {invalid}. Valid options: {set(TRACKED_POINTS)}"
            )

        self._buffer: list[list[str]] = []
        self._file: TextIO | None = None
        self._writer: Any = None
        self._header_written = False
        self.rows_logged = 0

        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def __enter__(self) -> CSVLogger:
        """Open file for writing."""
        self._file = open(self.filepath, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close file, flushing any remaining data."""
        self.close()

    def header(self, cable: Cable) -> list[str]:
        """Column names for ``cable``."""
        hdr = ["t", "deployed_length", "active_links", "opposing_force",
               "tension_max", "tension_mean"]
        for name in self.points:
            for field in self.fields:
                hdr.extend(f"{name}.{field}_{axis}" for axis in "xyz")
        if self.tension_profile:
            hdr.extend(f"T_{j}" for j in range(cable.point_count))
        return hdr

    def _write_header(self, cable: Cable) -> None:
        self._writer.writerow(self.header(cable))
        self._file.flush()
        self._header_written = True

    def log(self, cable: Cable) -> None:
        """
        Append the current cable state to the buffer.

        Notes
        -----
        Opens the file on first call if not used as a context manager.
        Writes to disk when the buffer is full.
        """
        if self._file is None:
            self.__enter__()

        if not self._header_written:
            self._write_header(cable)

        tensions = cable.tensions
        row = [
            f"{cable.time:.10f}",
            f"{cable.deployed_length:.10e}",
            str(cable.active_link_count),
            f"{cable.opposing_force:.10e}",
            f"{tensions.max():.10e}",
            f"{tensions.mean():.10e}",
        ]
        state = {"p": cable.positions, "v": cable.velocities}
        for name in self.points:
            index = TRACKED_POINTS[name](cable)
            for field in self.fields:
                row.extend(f"{x:.10e}" for x in state[field][index])
        if self.tension_profile:
            row.extend(f"{x:.6e}" for x in tensions)

        self._buffer.append(row)
        self.rows_logged += 1

        if len(self._buffer) >= self.buffer_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered data to disk and clear buffer."""
        if self._writer and self._buffer:
            self._writer.writerows(self._buffer)
            if self._file:
                self._file.flush()
            self._buffer.clear()

    def close(self) -> None:
        """Flush remaining data and close file."""
        self.flush()
        if self._file:
            self._file.close()
            self._file = None
            self._writer = None
