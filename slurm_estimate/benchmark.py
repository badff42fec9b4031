"""Benchmark observations.

A benchmark is a handful of runs of the same workload at reduced input
sizes (for example 1%, 5% and 10% of the full dataset) with the measured
wall time of each run.  :class:`BenchmarkSeries` holds those measurements
sorted by size and knows how to read them from the places they usually
live: a plain ``size=<pct> wall=<H:MM:SS>`` log, or a :mod:`pandas`
DataFrame such as one assembled from ``sacct`` output.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import InsufficientDataError
from .walltime import format_walltime, parse_walltime

_TOKEN_PATTERN = re.compile(r"(\w+)=(\S+)")
_SIZE_KEYS = ("input_size", "size")
_WALL_KEYS = ("wall_time", "wall", "elapsed")


def _parse_size(value: object) -> float:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    return float(value)  # type: ignore[arg-type]


def _first_key(spec: Mapping[str, object], keys: Sequence[str], label: str) -> object:
    for key in keys:
        if key in spec:
            return spec[key]
    raise ValueError(f"mapping observation specifications must define one of {', '.join(keys)} ({label})")


@dataclass(frozen=True)
class Observation:
    """A single benchmark measurement.

    Parameters
    ----------
    input_size:
        Size of the benchmarked input, in whatever unit the caller uses for
        the target (percent of the full dataset, number of grid points, ...).
    wall_time:
        Measured wall-clock time in seconds.
    """

    input_size: float
    wall_time: float

    def __post_init__(self) -> None:
        for name in ("input_size", "wall_time"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")

    @classmethod
    def from_spec(cls, spec: "Observation | Mapping[str, object] | Sequence[object]") -> "Observation":
        """Normalise an arbitrary spec into :class:`Observation`.

        * ``Observation`` instances are returned as-is.
        * ``Mapping`` needs a size (``size`` or ``input_size``) and a time
          (``wall``, ``wall_time`` or ``elapsed``).
        * ``Sequence`` of two items is read as ``(size, wall)``.

        Wall times may be seconds or duration strings such as ``"0:45:00"``.
        """

        if isinstance(spec, Observation):
            return spec
        if isinstance(spec, Mapping):
            size = _first_key(spec, _SIZE_KEYS, "size")
            wall = _first_key(spec, _WALL_KEYS, "wall time")
            return cls(input_size=_parse_size(size), wall_time=parse_walltime(wall))  # type: ignore[arg-type]
        if isinstance(spec, Sequence) and not isinstance(spec, str):
            if len(spec) != 2:
                raise ValueError("sequence observation specifications must be (size, wall) pairs")
            size, wall = spec
            return cls(input_size=_parse_size(size), wall_time=parse_walltime(wall))  # type: ignore[arg-type]
        raise TypeError(f"Unsupported observation specification type: {type(spec)!r}")


@dataclass(frozen=True, init=False)
class BenchmarkSeries:
    """Observations of one workload, sorted by input size.

    Instances are immutable and hashable so fitted models can be cached per
    series.  Repeated measurements at the same size are kept.
    """

    observations: Tuple[Observation, ...]

    def __init__(self, observations: Iterable["Observation | Mapping[str, object] | Sequence[object]"]) -> None:
        normalised = sorted(
            (Observation.from_spec(spec) for spec in observations),
            key=lambda obs: (obs.input_size, obs.wall_time),
        )
        if not normalised:
            raise InsufficientDataError("a benchmark series needs at least one observation")
        object.__setattr__(self, "observations", tuple(normalised))

    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    @property
    def sizes(self) -> np.ndarray:
        return np.array([obs.input_size for obs in self.observations], dtype=float)

    @property
    def wall_times(self) -> np.ndarray:
        return np.array([obs.wall_time for obs in self.observations], dtype=float)

    @property
    def min_size(self) -> float:
        return self.observations[0].input_size

    @property
    def max_size(self) -> float:
        return self.observations[-1].input_size

    # ------------------------------------------------------------------
    @classmethod
    def from_log(cls, text: str) -> "BenchmarkSeries":
        """Parse ``size=<pct> wall=<H:MM:SS>`` lines, see :func:`parse_log`."""

        return cls(parse_log(text))

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        size_column: str = "input_size",
        time_column: str = "wall_time",
    ) -> "BenchmarkSeries":
        """Build a series from two DataFrame columns.

        ``time_column`` may hold seconds or duration strings, which covers the
        ``Elapsed`` column of ``sacct`` output.
        """

        missing = [column for column in (size_column, time_column) if column not in frame.columns]
        if missing:
            raise ValueError(f"frame is missing column(s): {', '.join(missing)}")
        subset = frame[[size_column, time_column]].dropna()
        return cls(
            Observation(input_size=_parse_size(size), wall_time=parse_walltime(wall))
            for size, wall in subset.itertuples(index=False, name=None)
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "input_size": self.sizes,
                "wall_time": self.wall_times,
                "wall_time_hms": [format_walltime(obs.wall_time) for obs in self.observations],
            }
        )


def parse_log(text: str) -> List[Observation]:
    """Observations from ``size=<pct> wall=<H:MM:SS>`` lines.

    Blank lines, ``#`` comments and lines without a ``size=`` token are
    skipped; other ``key=value`` tokens on a line are ignored.  A log with no
    ``size=`` lines gives an empty list.
    """

    observations: List[Observation] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.split("#", 1)[0].strip()
        if not line:
            continue
        tokens = dict(_TOKEN_PATTERN.findall(line))
        if "size" not in tokens:
            continue
        try:
            observations.append(Observation.from_spec(tokens))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"line {lineno}: {exc}") from exc
    return observations


def as_series(
    data: "BenchmarkSeries | Iterable[Observation | Mapping[str, object] | Sequence[object]]",
) -> BenchmarkSeries:
    """Return ``data`` as a :class:`BenchmarkSeries`, building one if needed."""

    if isinstance(data, BenchmarkSeries):
        return data
    return BenchmarkSeries(data)


__all__ = ["Observation", "BenchmarkSeries", "as_series", "parse_log"]
