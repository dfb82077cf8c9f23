"""
Visibility assessment for a normalized trajectory.

One assessor serves every trajectory source; the source tag only changes
the reason text and the inherited confidence. The assessor never raises:
missing pad coordinates give a categorical estimate and any unexpected
failure gives a conservative baseline result.
"""

import logging
from typing import Dict, Mapping, Optional

from .astronomy import TwilightLevel, solar_elevation, twilight_level
from .errors import ComputeFailure, CoordinateUnavailable
from .geodesy import BERMUDA, ObservationPoint, circular_mean_bearing, elevation_angle
from .models import (
    Confidence,
    Launch,
    Likelihood,
    TrajectoryDirection,
    TrajectorySource,
    VisibilityAssessment,
)
from .trajectory import TrajectoryData, VisibilityWindow

logger = logging.getLogger(__name__)

# Distance bands (km, closest visible approach)
CLOSE_RANGE_KM = 500.0
MID_RANGE_KM = 1200.0
MAX_RANGE_KM = 2000.0

# Nautical twilight: a close pass needs this much elevation to stand out
NAUTICAL_MIN_ELEVATION_DEG = 10.0

# Civil twilight: only a plume high enough to catch sunlight shows
SUNLIT_PLUME_ALTITUDE_M = 100000.0

# Baseline answer when the assessment itself fails
DEFAULT_FALLBACK_DIRECTION = TrajectoryDirection.NORTHEAST
DEFAULT_FALLBACK_BEARING = 45.0
DEFAULT_FALLBACK_LIKELIHOOD = Likelihood.MEDIUM
ESTIMATED_TIME_WINDOW = "T+06:00 to T+09:00"
NOT_VISIBLE = "Not visible"

# Where to look from the observer for categorical trajectories
DEFAULT_VIEWING_BEARINGS: Dict[TrajectoryDirection, float] = {
    TrajectoryDirection.NORTHEAST: 225.0,
    TrajectoryDirection.EAST_NORTHEAST: 240.0,
    TrajectoryDirection.EAST: 270.0,
    TrajectoryDirection.EAST_SOUTHEAST: 280.0,
    TrajectoryDirection.SOUTHEAST: 300.0,
}
DEFAULT_VIEWING_BEARING = 225.0

# Categorical likelihood by twilight: (southeast tracks, everything else)
CATEGORICAL_TABLE: Dict[TwilightLevel, tuple] = {
    TwilightLevel.NIGHT: (Likelihood.HIGH, Likelihood.MEDIUM),
    TwilightLevel.ASTRONOMICAL: (Likelihood.MEDIUM, Likelihood.LOW),
    TwilightLevel.NAUTICAL: (Likelihood.LOW, Likelihood.NONE),
    TwilightLevel.CIVIL: (Likelihood.NONE, Likelihood.NONE),
    TwilightLevel.DAY: (Likelihood.NONE, Likelihood.NONE),
}


def format_mission_time(seconds: float) -> str:
    """
    Format seconds after liftoff as ``T+mm:ss``.

    Args:
        seconds: Non-negative offset from liftoff

    Returns:
        Formatted mission time, minutes are not wrapped at 60
    """
    total = max(0, int(round(seconds)))
    minutes, secs = divmod(total, 60)
    return f"T+{minutes:02d}:{secs:02d}"


def reduce_confidence(confidence: Confidence) -> Confidence:
    """One step down the confidence ranking, bottoming out at ESTIMATED."""
    if confidence is Confidence.CONFIRMED:
        return Confidence.PROJECTED
    return Confidence.ESTIMATED


def classify_pass(
    twilight: TwilightLevel,
    distance_km: float,
    closest_altitude_m: float,
    closest_elevation_deg: float,
) -> Likelihood:
    """
    Likelihood for a pass from twilight and closest visible approach.

    Args:
        twilight: Sky brightness at liftoff
        distance_km: Closest visible ground distance to the observer
        closest_altitude_m: Vehicle altitude at closest approach
        closest_elevation_deg: Elevation angle at closest approach

    Returns:
        Likelihood
    """
    if distance_km > MAX_RANGE_KM:
        return Likelihood.NONE

    close = distance_km < CLOSE_RANGE_KM
    mid = not close and distance_km < MID_RANGE_KM

    if twilight is TwilightLevel.DAY:
        return Likelihood.NONE
    if twilight is TwilightLevel.CIVIL:
        if close and closest_altitude_m >= SUNLIT_PLUME_ALTITUDE_M:
            return Likelihood.LOW
        return Likelihood.NONE
    if twilight is TwilightLevel.NAUTICAL:
        if close:
            if closest_elevation_deg >= NAUTICAL_MIN_ELEVATION_DEG:
                return Likelihood.MEDIUM
            return Likelihood.LOW
        return Likelihood.LOW if mid else Likelihood.NONE
    if twilight is TwilightLevel.ASTRONOMICAL:
        return Likelihood.HIGH if close else Likelihood.MEDIUM

    # Night
    if close:
        return Likelihood.HIGH
    return Likelihood.MEDIUM if mid else Likelihood.LOW


class VisibilityAssessor:
    """
    Turns a TrajectoryData into a VisibilityAssessment for one observer.

    Args:
        observer: Observation point
        viewing_bearings: Direction -> viewing bearing for categorical results
        fallback_direction: Direction reported by the baseline result
        fallback_bearing: Bearing reported by the baseline result
    """

    def __init__(
        self,
        observer: ObservationPoint = BERMUDA,
        viewing_bearings: Optional[Mapping[TrajectoryDirection, float]] = None,
        fallback_direction: TrajectoryDirection = DEFAULT_FALLBACK_DIRECTION,
        fallback_bearing: float = DEFAULT_FALLBACK_BEARING,
    ) -> None:
        if not 0 <= fallback_bearing < 360:
            raise ValueError(f"fallback_bearing must be in [0, 360), got {fallback_bearing}")
        self.observer = observer
        self.viewing_bearings = dict(DEFAULT_VIEWING_BEARINGS)
        if viewing_bearings:
            self.viewing_bearings.update(viewing_bearings)
        self.fallback_direction = fallback_direction
        self.fallback_bearing = fallback_bearing

    def viewing_bearing(self, direction: TrajectoryDirection) -> float:
        return self.viewing_bearings.get(direction, DEFAULT_VIEWING_BEARING)

    def assess(self, trajectory: TrajectoryData, launch: Launch) -> VisibilityAssessment:
        """
        Assess visibility of a launch from the observer. Never raises.

        Args:
            trajectory: Normalized trajectory (overrides already applied)
            launch: Launch the trajectory belongs to

        Returns:
            VisibilityAssessment
        """
        try:
            return self._assess(trajectory, launch)
        except CoordinateUnavailable as e:
            logger.info(f"{launch.id}: {e}; using categorical estimate")
            return self._categorical(trajectory, launch)
        except Exception as e:
            failure = ComputeFailure(f"{type(e).__name__}: {e}", stage="assessor")
            logger.error(f"Assessment failed for {launch.id}: {failure}", exc_info=True)
            return self.baseline(trajectory)

    def _assess(self, trajectory: TrajectoryData, launch: Launch) -> VisibilityAssessment:
        if not trajectory.points and not launch.pad.has_coordinates:
            raise CoordinateUnavailable(
                f"Pad '{launch.pad.name}' has no coordinates", stage="assessor"
            )

        sun_elevation = solar_elevation(
            launch.net, self.observer.latitude, self.observer.longitude
        )
        twilight = twilight_level(sun_elevation)

        window = trajectory.visibility_window
        if window is None:
            return self._below_horizon(trajectory, twilight, sun_elevation)

        closest = window.closest_point
        closest_elevation = elevation_angle(closest.distance, closest.altitude / 1000.0)
        likelihood = classify_pass(
            twilight, window.closest_approach_km, closest.altitude, closest_elevation
        )
        bearing = circular_mean_bearing([window.start_bearing, window.end_bearing])

        logger.debug(
            f"{launch.id}: {twilight.value}, closest {window.closest_approach_km:.0f} km, "
            f"elevation {closest_elevation:.1f}°, likelihood {likelihood.value}"
        )

        return VisibilityAssessment(
            likelihood=likelihood,
            reason=self._pass_reason(likelihood, twilight, window, trajectory),
            bearing_degrees=bearing,
            trajectory_direction=trajectory.trajectory_direction,
            estimated_time_visible=(
                f"{format_mission_time(window.start_time)} to "
                f"{format_mission_time(window.end_time)}"
            ),
            confidence=trajectory.confidence,
            source=trajectory.source,
            window_start_s=window.start_time,
            window_end_s=window.end_time,
            twilight=twilight.value,
            solar_elevation_deg=sun_elevation,
            closest_approach_km=window.closest_approach_km,
        )

    def _pass_reason(
        self,
        likelihood: Likelihood,
        twilight: TwilightLevel,
        window: VisibilityWindow,
        trajectory: TrajectoryData,
    ) -> str:
        distance = f"{window.closest_approach_km:.0f} km"
        if likelihood is Likelihood.NONE:
            if window.closest_approach_km > MAX_RANGE_KM:
                summary = f"Closest approach of {distance} is too far to see"
            else:
                summary = f"{twilight.label} sky washes out the rocket at {distance}"
        elif likelihood is Likelihood.HIGH:
            summary = f"{twilight.label} launch passing within {distance}, should be clearly visible"
        elif likelihood is Likelihood.MEDIUM:
            summary = f"{twilight.label} launch passing within {distance}, likely visible"
        else:
            summary = f"{twilight.label} launch passing within {distance}, may be faintly visible"
        return f"{summary} ({trajectory.source.basis})."

    def _below_horizon(
        self, trajectory: TrajectoryData, twilight: TwilightLevel, sun_elevation: float
    ) -> VisibilityAssessment:
        return VisibilityAssessment(
            likelihood=Likelihood.NONE,
            reason=(
                f"Trajectory never rises above the local horizon from "
                f"{self.observer.name} ({trajectory.source.basis})."
            ),
            bearing_degrees=None,
            trajectory_direction=trajectory.trajectory_direction,
            estimated_time_visible=NOT_VISIBLE,
            confidence=trajectory.confidence,
            source=trajectory.source,
            twilight=twilight.value,
            solar_elevation_deg=sun_elevation,
        )

    def _categorical(self, trajectory: TrajectoryData, launch: Launch) -> VisibilityAssessment:
        """Estimate from twilight and direction alone (no pad coordinates)."""
        try:
            sun_elevation = solar_elevation(
                launch.net, self.observer.latitude, self.observer.longitude
            )
            twilight = twilight_level(sun_elevation)
            direction = trajectory.trajectory_direction
            southeast, other = CATEGORICAL_TABLE[twilight]
            likelihood = southeast if direction is TrajectoryDirection.SOUTHEAST else other
        except Exception as e:
            logger.error(f"Categorical estimate failed for {launch.id}: {e}", exc_info=True)
            return self.baseline(trajectory)

        if likelihood is Likelihood.NONE:
            summary = f"{twilight.label} at launch time, unlikely to be visible"
            estimate = NOT_VISIBLE
        else:
            summary = f"{twilight.label} {direction.value.lower()} launch may be visible"
            estimate = ESTIMATED_TIME_WINDOW

        return VisibilityAssessment(
            likelihood=likelihood,
            reason=(
                f"{summary}; pad location unknown so this is a general estimate "
                f"({trajectory.source.basis})."
            ),
            bearing_degrees=self.viewing_bearing(direction),
            trajectory_direction=direction,
            estimated_time_visible=estimate,
            confidence=reduce_confidence(trajectory.confidence),
            source=trajectory.source,
            twilight=twilight.value,
            solar_elevation_deg=sun_elevation,
            degraded=True,
        )

    def baseline(self, trajectory: Optional[TrajectoryData] = None) -> VisibilityAssessment:
        """Conservative generic result used when assessment cannot complete."""
        source = trajectory.source if trajectory is not None else TrajectorySource.NONE
        return VisibilityAssessment(
            likelihood=DEFAULT_FALLBACK_LIKELIHOOD,
            reason=(
                "Visibility could not be calculated; showing a general estimate "
                f"({source.basis})."
            ),
            bearing_degrees=self.fallback_bearing,
            trajectory_direction=self.fallback_direction,
            estimated_time_visible=ESTIMATED_TIME_WINDOW,
            confidence=Confidence.ESTIMATED,
            source=source,
            degraded=True,
        )
