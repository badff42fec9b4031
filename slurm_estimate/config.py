"""Estimator settings and YAML estimate-job files.

An estimate job bundles everything needed for one resource request::

    observations:            # or ``log: bench.log`` relative to this file
      - {size: 2, wall: "0:09:00"}
      - {size: 10, wall: "0:45:00"}
    target_size: 50
    hardware:
      cores: 8
      efficiency: 1.0
    runs: 50
    safety_factors:
      failures: 1.4
      development: 2.0
      scaling: 1.2
    estimator:
      r2_threshold: 0.98
      max_degree: 3
      max_extrapolation_ratio: 10
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional, Tuple

import yaml

from .benchmark import BenchmarkSeries
from .resources import HardwareProfile, SafetyFactor
from .scaling import DEFAULT_MAX_EXTRAPOLATION_RATIO, DEFAULT_R2_THRESHOLD, MAX_SUPPORTED_DEGREE


def _read_yaml(path: Path | str) -> dict:
    with open(Path(path).expanduser()) as handle:
        cfg = yaml.load(handle, yaml.SafeLoader)
    cfg = {} if cfg is None else cfg
    if not isinstance(cfg, Mapping):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return dict(cfg)


@dataclass(frozen=True)
class EstimatorConfig:
    """Tunable knobs of the scaling fit and extrapolation check."""

    r2_threshold: float = DEFAULT_R2_THRESHOLD
    max_degree: int = MAX_SUPPORTED_DEGREE
    max_extrapolation_ratio: float = DEFAULT_MAX_EXTRAPOLATION_RATIO

    def __post_init__(self) -> None:
        if not 0.0 < self.r2_threshold <= 1.0:
            raise ValueError(f"r2_threshold must be in (0, 1], got {self.r2_threshold}")
        if isinstance(self.max_degree, bool) or not isinstance(self.max_degree, int):
            raise TypeError(f"max_degree must be an integer, got {self.max_degree!r}")
        if not 0 <= self.max_degree <= MAX_SUPPORTED_DEGREE:
            raise ValueError(f"max_degree must be between 0 and {MAX_SUPPORTED_DEGREE}, got {self.max_degree}")
        if not math.isfinite(self.max_extrapolation_ratio) or self.max_extrapolation_ratio < 1.0:
            raise ValueError(
                f"max_extrapolation_ratio must be a finite number >= 1, got {self.max_extrapolation_ratio}"
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, object] | None) -> "EstimatorConfig":
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"unknown estimator setting(s): {', '.join(unknown)}")
        return cls(**values)  # type: ignore[arg-type]

    @classmethod
    def from_yaml(cls, path: Path | str) -> "EstimatorConfig":
        """Load settings from a YAML file; an ``estimator`` section is honoured if present."""
        cfg = _read_yaml(path)
        return cls.from_mapping(cfg.get("estimator", cfg))


@dataclass(frozen=True)
class EstimateJob:
    """All inputs of one :func:`slurm_estimate.estimator.estimate` call.

    ``config`` is ``None`` when the job file has no ``estimator`` section.
    """

    series: BenchmarkSeries
    target_size: float
    hardware: HardwareProfile
    run_count: int = 1
    factors: Tuple[SafetyFactor, ...] = ()
    benchmark_cores: Optional[int] = None
    config: Optional[EstimatorConfig] = None


def parse_factors(spec: object) -> Tuple[SafetyFactor, ...]:
    """Safety factors from a ``{name: value}`` mapping or a list of specs."""

    if spec is None:
        return ()
    if isinstance(spec, Mapping):
        return tuple(SafetyFactor(name=str(name), value=float(value)) for name, value in spec.items())
    if isinstance(spec, (list, tuple)):
        return tuple(SafetyFactor.from_spec(item, index) for index, item in enumerate(spec, start=1))
    raise ValueError(f"safety_factors must be a mapping or a list, got {type(spec).__name__}")


def _whole_number(value: object, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a whole number, got {value!r}")
    number = float(value)  # type: ignore[arg-type]
    if not number.is_integer():
        raise ValueError(f"{key} must be a whole number, got {value!r}")
    return int(number)


def load_job(path: Path | str) -> EstimateJob:
    """Read an estimate job from YAML."""

    path = Path(path).expanduser()
    cfg = _read_yaml(path)

    if "observations" in cfg:
        series = BenchmarkSeries(cfg["observations"])
    elif "log" in cfg:
        log_path = path.parent / str(cfg["log"])
        series = BenchmarkSeries.from_log(log_path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"{path}: an estimate job needs 'observations' or 'log'")

    for key in ("target_size", "hardware"):
        if key not in cfg:
            raise ValueError(f"{path}: missing required key {key!r}")

    hardware_cfg = cfg["hardware"]
    if not isinstance(hardware_cfg, Mapping) or "cores" not in hardware_cfg:
        raise ValueError(f"{path}: 'hardware' must be a mapping with at least 'cores'")
    hardware = HardwareProfile(
        core_count=_whole_number(hardware_cfg["cores"], "hardware.cores"),
        parallel_efficiency=float(hardware_cfg.get("efficiency", 1.0)),
    )
    benchmark_cores = hardware_cfg.get("benchmark_cores")
    if benchmark_cores is not None:
        benchmark_cores = _whole_number(benchmark_cores, "hardware.benchmark_cores")

    return EstimateJob(
        series=series,
        target_size=float(cfg["target_size"]),
        hardware=hardware,
        run_count=_whole_number(cfg.get("runs", 1), "runs"),
        factors=parse_factors(cfg.get("safety_factors")),
        benchmark_cores=benchmark_cores,
        config=EstimatorConfig.from_mapping(cfg["estimator"]) if "estimator" in cfg else None,
    )


__all__ = ["EstimatorConfig", "EstimateJob", "load_job", "parse_factors"]
