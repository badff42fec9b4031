"""Turn benchmark timings into a core-hour request.

The chain is the one worked through by hand when writing an allocation
proposal::

    fit scaling law -> extrapolate wall time to the full size
    -> core-hours per run -> x number of runs -> x safety factors

Every step is a pure function of its inputs.  :class:`ResourceEstimator`
adds a per-instance cache of fitted models so the same series is not
refitted for every target size or hardware variant.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .benchmark import BenchmarkSeries, as_series
from .config import EstimateJob, EstimatorConfig
from .errors import ExtrapolationRangeError, InvalidFactorError
from .resources import FactorSpec, HardwareProfile, SafetyFactor
from .scaling import ScalingModel, extrapolate, fit_scaling

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ResourceRequest:
    """Result of :func:`estimate`.

    ``full_wall_time`` is in seconds, core-hour fields are in core-hours.
    ``warnings`` holds recoverable problems such as a target size far outside
    the benchmarked range.
    """

    target_size: float
    model: ScalingModel
    hardware: HardwareProfile
    full_wall_time: float
    core_hours_per_run: float
    run_count: int
    factors: Tuple[SafetyFactor, ...]
    safety_multiplier: float
    total_core_hours: float
    warnings: Tuple[str, ...] = ()

    @property
    def full_wall_time_hours(self) -> float:
        return self.full_wall_time / SECONDS_PER_HOUR

    @property
    def base_core_hours(self) -> float:
        """Core-hours for all runs before any safety factor."""
        return self.core_hours_per_run * self.run_count

    def to_dict(self) -> Dict[str, object]:
        return {
            "target_size": self.target_size,
            "model_degree": self.model.degree,
            "model_coefficients": list(self.model.coefficients),
            "model_r_squared": self.model.r_squared,
            "core_count": self.hardware.core_count,
            "parallel_efficiency": self.hardware.parallel_efficiency,
            "full_wall_time_s": self.full_wall_time,
            "full_wall_time_h": self.full_wall_time_hours,
            "core_hours_per_run": self.core_hours_per_run,
            "run_count": self.run_count,
            "base_core_hours": self.base_core_hours,
            "safety_factors": {factor.name: factor.value for factor in self.factors},
            "safety_multiplier": self.safety_multiplier,
            "total_core_hours": self.total_core_hours,
            "warnings": list(self.warnings),
        }


def compute_core_hours(wall_time: float, hw: HardwareProfile) -> float:
    """``wall_time * hw.core_count``.

    The unit follows ``wall_time``: pass hours to get core-hours.  Parallel
    efficiency is not applied here; see
    :meth:`HardwareProfile.scale_wall_time` for an efficiency-adjusted runtime.
    """

    if not math.isfinite(wall_time) or wall_time < 0:
        raise ValueError(f"wall_time must be a non-negative finite number, got {wall_time!r}")
    return wall_time * hw.core_count


def _normalise_factors(factors: Iterable[FactorSpec]) -> Tuple[SafetyFactor, ...]:
    normalised = tuple(SafetyFactor.from_spec(spec, index) for index, spec in enumerate(factors, start=1))
    for factor in normalised:
        if not factor.is_valid:
            raise InvalidFactorError(f"safety factor {factor.name!r} must be a positive number, got {factor.value!r}")
    return normalised


def safety_multiplier(factors: Iterable[FactorSpec]) -> float:
    """Product of all factor values; 1.0 for no factors."""
    return math.prod(factor.value for factor in _normalise_factors(factors))


def apply_safety_factors(base_core_hours: float, factors: Iterable[FactorSpec]) -> float:
    """Multiply ``base_core_hours`` by every factor in ``factors``.

    Factors may be :class:`SafetyFactor` objects, ``name=value`` strings or
    bare numbers.  Raises :class:`InvalidFactorError` if any is not positive.
    """

    return base_core_hours * safety_multiplier(factors)


class ResourceEstimator:
    """Estimate resource requests with a fixed :class:`EstimatorConfig`."""

    def __init__(self, config: Optional[EstimatorConfig] = None) -> None:
        self.config = config or EstimatorConfig()
        self._models: Dict[BenchmarkSeries, ScalingModel] = {}

    def fit(self, series: BenchmarkSeries | Iterable[object]) -> ScalingModel:
        series = as_series(series)  # type: ignore[arg-type]
        model = self._models.get(series)
        if model is not None:
            logger.debug("reusing cached %s model for %d observations", model.kind, len(series))
            return model
        model = fit_scaling(series, max_degree=self.config.max_degree, r2_threshold=self.config.r2_threshold)
        logger.info("fitted %s scaling model (R^2=%.4f): %s", model.kind, model.r_squared, model.describe())
        self._models[series] = model
        return model

    def extrapolate(self, model: ScalingModel, target_size: float) -> float:
        return extrapolate(model, target_size, max_ratio=self.config.max_extrapolation_ratio)

    def estimate(
        self,
        series: BenchmarkSeries | Iterable[object],
        target_size: float,
        hw: HardwareProfile,
        run_count: int = 1,
        factors: Iterable[FactorSpec] = (),
        *,
        benchmark_cores: Optional[int] = None,
    ) -> ResourceRequest:
        if isinstance(run_count, bool) or not isinstance(run_count, numbers.Integral):
            raise TypeError(f"run_count must be an integer, got {run_count!r}")
        if run_count < 1:
            raise ValueError(f"run_count must be at least 1, got {run_count}")
        normalised = _normalise_factors(factors)

        model = self.fit(series)
        warnings: List[str] = []
        try:
            wall_time = self.extrapolate(model, target_size)
        except ExtrapolationRangeError as exc:
            logger.warning("%s", exc)
            warnings.append(str(exc))
            wall_time = exc.wall_time

        if benchmark_cores is not None:
            wall_time = hw.scale_wall_time(wall_time, benchmark_cores)

        per_run = compute_core_hours(wall_time / SECONDS_PER_HOUR, hw)
        base = per_run * run_count
        multiplier = safety_multiplier(normalised)
        total = apply_safety_factors(base, normalised)
        logger.debug(
            "%.4g core-hours/run x %d runs x %.4g safety = %.4g core-hours",
            per_run,
            run_count,
            multiplier,
            total,
        )

        return ResourceRequest(
            target_size=target_size,
            model=model,
            hardware=hw,
            full_wall_time=wall_time,
            core_hours_per_run=per_run,
            run_count=int(run_count),
            factors=normalised,
            safety_multiplier=multiplier,
            total_core_hours=total,
            warnings=tuple(warnings),
        )

    def sweep(
        self,
        series: BenchmarkSeries | Iterable[object],
        target_size: float,
        profiles: Sequence[HardwareProfile],
        run_count: int = 1,
        factors: Iterable[FactorSpec] = (),
        *,
        benchmark_cores: Optional[int] = None,
    ) -> pd.DataFrame:
        """Estimate the same workload on several hardware profiles.

        Returns one row per profile with the flattened :meth:`ResourceRequest.to_dict`
        fields.  The scaling model is fitted once and shared by all rows.
        """

        factors = tuple(factors)
        records = []
        for profile in profiles:
            request = self.estimate(
                series, target_size, profile, run_count, factors, benchmark_cores=benchmark_cores
            )
            record = request.to_dict()
            record.pop("safety_factors")
            record["warnings"] = "; ".join(request.warnings)
            records.append(record)
        return pd.DataFrame(records)


def estimate(
    series: BenchmarkSeries | Iterable[object],
    target_size: float,
    hw: HardwareProfile,
    run_count: int = 1,
    factors: Iterable[FactorSpec] = (),
    *,
    benchmark_cores: Optional[int] = None,
    config: Optional[EstimatorConfig] = None,
) -> ResourceRequest:
    """Convenience wrapper around :class:`ResourceEstimator`.

    A fresh estimator is created for every call, so nothing is cached between
    calls; keep a :class:`ResourceEstimator` around to reuse fitted models.
    """

    estimator = ResourceEstimator(config)
    return estimator.estimate(series, target_size, hw, run_count, factors, benchmark_cores=benchmark_cores)


def estimate_job(job: EstimateJob) -> ResourceRequest:
    """Run :func:`estimate` on a job loaded with :func:`slurm_estimate.config.load_job`."""

    return estimate(
        job.series,
        job.target_size,
        job.hardware,
        job.run_count,
        job.factors,
        benchmark_cores=job.benchmark_cores,
        config=job.config,
    )
