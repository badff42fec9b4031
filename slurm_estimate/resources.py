"""Hardware profiles and safety factors."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Mapping, Sequence, Union


@dataclass(frozen=True)
class HardwareProfile:
    """Resources a single production run will be given.

    Parameters
    ----------
    core_count:
        Number of CPU cores allocated to each run.
    parallel_efficiency:
        Observed speedup divided by core count, in ``(0, 1]``.  Only used
        when converting a runtime measured on a different number of cores,
        see :meth:`scale_wall_time`.
    """

    core_count: int
    parallel_efficiency: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.core_count, bool) or not isinstance(self.core_count, numbers.Integral):
            raise TypeError(f"core_count must be an integer, got {self.core_count!r}")
        if self.core_count < 1:
            raise ValueError(f"core_count must be positive, got {self.core_count}")
        if not 0.0 < self.parallel_efficiency <= 1.0:
            raise ValueError(f"parallel_efficiency must be in (0, 1], got {self.parallel_efficiency}")

    def scale_wall_time(self, wall_time: float, benchmark_cores: int) -> float:
        """Convert a wall time measured on ``benchmark_cores`` to this profile.

        Assumes the benchmark itself ran at full efficiency, so the work is
        ``wall_time * benchmark_cores`` core-seconds spread over
        ``core_count`` cores at ``parallel_efficiency``.
        """
        if benchmark_cores < 1:
            raise ValueError(f"benchmark_cores must be positive, got {benchmark_cores}")
        return wall_time * benchmark_cores / (self.core_count * self.parallel_efficiency)


def parallel_efficiency(serial_time: float, parallel_time: float, cores: int) -> float:
    """Speedup of a parallel run over the serial one, divided by ``cores``."""

    if serial_time <= 0 or parallel_time <= 0:
        raise ValueError("serial_time and parallel_time must be positive")
    if cores < 1:
        raise ValueError(f"cores must be positive, got {cores}")
    return (serial_time / parallel_time) / cores


@dataclass(frozen=True)
class SafetyFactor:
    """Named multiplicative margin, e.g. ``SafetyFactor("failures", 1.4)``.

    Values are not validated here so that a bad factor can still be shown
    in a report; :func:`slurm_estimate.estimator.apply_safety_factors`
    rejects non-positive values.
    """

    name: str
    value: float

    @classmethod
    def parse(cls, text: str) -> "SafetyFactor":
        """Parse ``name=value`` as written on the command line."""
        name, sep, value = text.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"safety factor must look like NAME=VALUE, got {text!r}")
        try:
            return cls(name=name.strip(), value=float(value))
        except ValueError:
            raise ValueError(f"safety factor {name.strip()!r} has a non-numeric value {value!r}") from None

    @classmethod
    def from_spec(
        cls,
        spec: "SafetyFactor | Mapping[str, object] | Sequence[object] | str | float",
        index: int = 0,
    ) -> "SafetyFactor":
        """Normalise an arbitrary spec into :class:`SafetyFactor`.

        * ``SafetyFactor`` instances are returned as-is.
        * ``str`` is parsed as ``name=value``.
        * a bare number becomes ``factor<index>``.
        * ``Mapping`` expects ``name`` and ``value``.
        * ``Sequence`` is read as ``(name, value)``.
        """

        if isinstance(spec, SafetyFactor):
            return spec
        if isinstance(spec, str):
            return cls.parse(spec)
        if isinstance(spec, numbers.Real) and not isinstance(spec, bool):
            return cls(name=f"factor{index}", value=float(spec))
        if isinstance(spec, Mapping):
            if "name" not in spec or "value" not in spec:
                raise ValueError("mapping safety factor specifications must define 'name' and 'value'")
            return cls(name=str(spec["name"]), value=float(spec["value"]))  # type: ignore[arg-type]
        if isinstance(spec, Sequence):
            if len(spec) != 2:
                raise ValueError("sequence safety factor specifications must be (name, value) pairs")
            name, value = spec
            return cls(name=str(name), value=float(value))  # type: ignore[arg-type]
        raise TypeError(f"Unsupported safety factor specification type: {type(spec)!r}")

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.value) and self.value > 0


FactorSpec = Union[SafetyFactor, Mapping[str, object], Sequence[object], str, float]
