"""
Launch Visibility Engine

Decides whether a scheduled rocket launch will be observable from a fixed
remote observation point, in which direction to look and when, using
whatever trajectory data the external providers can supply and falling back
to orbital-mechanics estimates when they cannot.
"""

from .assessor import VisibilityAssessor
from .engine import VisibilityEngine, create_engine
from .geodesy import BERMUDA, ObservationPoint
from .models import (
    Confidence,
    Launch,
    Likelihood,
    TrajectoryDirection,
    TrajectorySource,
    VisibilityAssessment,
)
from .trajectory import TrajectoryData, TrajectoryPoint

__version__ = "0.1.0"
__author__ = "Launch Visibility Team"

__all__ = [
    "BERMUDA",
    "Confidence",
    "Launch",
    "Likelihood",
    "ObservationPoint",
    "TrajectoryData",
    "TrajectoryDirection",
    "TrajectoryPoint",
    "TrajectorySource",
    "VisibilityAssessment",
    "VisibilityAssessor",
    "VisibilityEngine",
    "create_engine",
]
