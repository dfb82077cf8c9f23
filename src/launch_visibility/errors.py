"""
Error taxonomy for trajectory acquisition and visibility assessment.

Every stage of the engine recovers from these locally; only the engine
facade guarantees a non-raising contract for callers.
"""

from typing import Optional


class TrajectoryError(Exception):
    """Base class for recoverable engine errors."""

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class DataUnavailable(TrajectoryError):
    """Provider returned nothing usable for this launch."""


class ProviderTimeout(DataUnavailable):
    """Provider exceeded its time bound."""


class MalformedResponse(TrajectoryError):
    """Provider data failed validation or a plausibility check."""


class CoordinateUnavailable(TrajectoryError):
    """Launch pad coordinates are missing."""


class ComputeFailure(TrajectoryError):
    """Unexpected failure inside the visibility assessor."""
