"""Exceptions raised while turning benchmark timings into resource requests."""

from __future__ import annotations


class EstimationError(Exception):
    """Base class for all estimation failures."""


class InsufficientDataError(EstimationError):
    """Too few observations to fit the requested scaling model."""


class InvalidFactorError(EstimationError):
    """A safety factor is zero, negative or not a finite number."""


class NonPositiveWallTimeError(EstimationError):
    """The fitted model predicts a wall time that is zero or negative."""


class ExtrapolationRangeError(EstimationError, UserWarning):
    """Target size lies far outside the benchmarked range.

    This is a warning-level signal: the predicted wall time is attached so
    callers can log the problem and carry on with the estimate.
    """

    def __init__(self, target_size: float, max_size: float, max_ratio: float, wall_time: float) -> None:
        self.target_size = target_size
        self.max_size = max_size
        self.max_ratio = max_ratio
        self.wall_time = wall_time
        super().__init__(
            f"target size {target_size:g} is {self.ratio:.1f}x the largest benchmarked "
            f"size {max_size:g} (limit {max_ratio:g}x); extrapolated wall time is unreliable"
        )

    @property
    def ratio(self) -> float:
        return self.target_size / self.max_size
