"""Turn benchmark timings into HPC core-hour requests."""

__version__ = "0.1.0"

from .benchmark import BenchmarkSeries, Observation
from .config import EstimateJob, EstimatorConfig, load_job
from .errors import (
    EstimationError,
    ExtrapolationRangeError,
    InsufficientDataError,
    InvalidFactorError,
    NonPositiveWallTimeError,
)
from .estimator import (
    ResourceEstimator,
    ResourceRequest,
    apply_safety_factors,
    compute_core_hours,
    estimate,
    estimate_job,
)
from .resources import HardwareProfile, SafetyFactor, parallel_efficiency
from .scaling import ScalingModel, extrapolate, fit_scaling

__all__ = [
    "BenchmarkSeries",
    "EstimateJob",
    "EstimationError",
    "EstimatorConfig",
    "ExtrapolationRangeError",
    "HardwareProfile",
    "InsufficientDataError",
    "InvalidFactorError",
    "NonPositiveWallTimeError",
    "Observation",
    "ResourceEstimator",
    "ResourceRequest",
    "SafetyFactor",
    "ScalingModel",
    "apply_safety_factors",
    "compute_core_hours",
    "estimate",
    "estimate_job",
    "extrapolate",
    "fit_scaling",
    "load_job",
    "parallel_efficiency",
]
