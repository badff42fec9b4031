"""Scaling-law fits for benchmark series.

Wall time is modelled as a polynomial in input size (constant, linear,
quadratic or cubic).  The lowest degree that explains the measurements
well enough wins, so a workload that scales linearly is never extrapolated
with a cubic that happens to thread the points slightly better.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .benchmark import BenchmarkSeries, as_series
from .errors import ExtrapolationRangeError, InsufficientDataError, NonPositiveWallTimeError

logger = logging.getLogger(__name__)

MAX_SUPPORTED_DEGREE = 3
DEFAULT_R2_THRESHOLD = 0.98
DEFAULT_MAX_EXTRAPOLATION_RATIO = 10.0

_DEGREE_NAMES = {0: "constant", 1: "linear", 2: "quadratic", 3: "cubic"}


@dataclass(frozen=True)
class ScalingModel:
    """Polynomial mapping input size to wall time in seconds.

    ``coefficients`` are ordered highest power first, as returned by
    :func:`numpy.polyfit`.
    """

    coefficients: Tuple[float, ...]
    r_squared: float
    min_size: float
    max_size: float
    n_observations: int

    def __post_init__(self) -> None:
        if not self.coefficients:
            raise ValueError("a scaling model needs at least one coefficient")
        if self.degree > MAX_SUPPORTED_DEGREE:
            raise ValueError(f"degree {self.degree} exceeds the supported maximum of {MAX_SUPPORTED_DEGREE}")
        if self.degree >= self.n_observations:
            raise InsufficientDataError(
                f"a degree {self.degree} model needs more than {self.n_observations} observation(s)"
            )

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    @property
    def kind(self) -> str:
        return _DEGREE_NAMES[self.degree]

    def evaluate(self, input_size: float) -> float:
        """Wall time predicted at ``input_size``, without any range checks."""
        return float(np.polyval(self.coefficients, input_size))

    def describe(self) -> str:
        terms = []
        for power, coefficient in zip(range(self.degree, -1, -1), self.coefficients):
            if power == 0:
                terms.append(f"{coefficient:.6g}")
            elif power == 1:
                terms.append(f"{coefficient:.6g}*x")
            else:
                terms.append(f"{coefficient:.6g}*x^{power}")
        return "wall = " + " + ".join(terms)


def _r_squared(wall_times: np.ndarray, fitted: np.ndarray) -> float:
    ss_res = float(np.sum((wall_times - fitted) ** 2))
    ss_tot = float(np.sum((wall_times - wall_times.mean()) ** 2))
    if ss_tot == 0.0:
        # constant measurements: R^2 is undefined, call a residual-free fit perfect
        tolerance = 1e-12 * max(1.0, float(np.sum(wall_times**2)))
        return 1.0 if ss_res <= tolerance else 0.0
    return 1.0 - ss_res / ss_tot


def fit_scaling(
    series: BenchmarkSeries,
    max_degree: int = MAX_SUPPORTED_DEGREE,
    r2_threshold: float = DEFAULT_R2_THRESHOLD,
) -> ScalingModel:
    """Fit the lowest-degree polynomial whose R^2 reaches ``r2_threshold``.

    Degrees are tried in increasing order.  The usable degree is capped by
    ``max_degree`` and by the number of distinct input sizes minus one; if no
    candidate reaches the threshold the highest usable degree is returned.
    ``series`` may also be any iterable accepted by :func:`as_series`.
    """

    series = as_series(series)
    if isinstance(max_degree, bool) or not isinstance(max_degree, int):
        raise TypeError(f"max_degree must be an integer, got {max_degree!r}")
    if not 0 <= max_degree <= MAX_SUPPORTED_DEGREE:
        raise ValueError(f"max_degree must be between 0 and {MAX_SUPPORTED_DEGREE}, got {max_degree}")
    if not 0.0 < r2_threshold <= 1.0:
        raise ValueError(f"r2_threshold must be in (0, 1], got {r2_threshold}")
    if len(series) < 2:
        raise InsufficientDataError(
            f"fitting a scaling model needs at least 2 observations, got {len(series)}"
        )

    sizes = series.sizes
    wall_times = series.wall_times
    distinct_sizes = len(np.unique(sizes))
    degree_cap = min(max_degree, distinct_sizes - 1)

    model = None
    for degree in range(degree_cap + 1):
        coefficients = np.polyfit(sizes, wall_times, degree)
        r_squared = _r_squared(wall_times, np.polyval(coefficients, sizes))
        model = ScalingModel(
            coefficients=tuple(float(c) for c in coefficients),
            r_squared=r_squared,
            min_size=series.min_size,
            max_size=series.max_size,
            n_observations=len(series),
        )
        logger.debug("degree %d fit: R^2=%.6f (threshold %.4f)", degree, r_squared, r2_threshold)
        if r_squared >= r2_threshold:
            break
    else:
        logger.info(
            "no polynomial up to degree %d reached R^2 >= %.4f; using degree %d (R^2=%.4f)",
            degree_cap,
            r2_threshold,
            model.degree,
            model.r_squared,
        )

    return model


def extrapolate(
    model: ScalingModel,
    target_size: float,
    max_ratio: float = DEFAULT_MAX_EXTRAPOLATION_RATIO,
) -> float:
    """Predict the wall time in seconds at ``target_size``.

    Raises :class:`ExtrapolationRangeError` when ``target_size`` is more than
    ``max_ratio`` times the largest benchmarked size; the prediction is
    carried on the exception for callers that choose to proceed.
    """

    if not math.isfinite(target_size) or target_size <= 0:
        raise ValueError(f"target_size must be a positive finite number, got {target_size!r}")
    if not math.isfinite(max_ratio) or max_ratio < 1.0:
        raise ValueError(f"max_ratio must be a finite number >= 1, got {max_ratio!r}")

    wall_time = model.evaluate(target_size)
    if wall_time <= 0:
        raise NonPositiveWallTimeError(
            f"{model.kind} model predicts a wall time of {wall_time:.6g}s at size {target_size:g}"
        )
    if target_size > max_ratio * model.max_size:
        raise ExtrapolationRangeError(target_size, model.max_size, max_ratio, wall_time)
    return wall_time
