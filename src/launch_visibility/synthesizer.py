"""
Heuristic trajectory synthesis.

Produces a plausible ground track when no external trajectory exists. This
is a coarse ascent model (constant average ground speed, linear climb after
a fixed delay); it is not an orbital propagator.
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from .errors import CoordinateUnavailable
from .geodesy import ObservationPoint, destination_point
from .mission_profiles import OrbitProfile, classify_mission
from .models import Launch
from .trajectory import TrajectoryPoint, build_points

logger = logging.getLogger(__name__)

# Sampling window
SYNTH_DURATION_S = 600
SYNTH_STEP_S = 30

# Ascent model
AVERAGE_GROUND_SPEED_KMS = 8.0
ALTITUDE_ONSET_S = 120.0  # altitude stays at 0 until here
CLIMB_RATE_MS = 300.0

# Retrograde / sun-synchronous flights leave the coast heading southeast
RETROGRADE_SAFETY_AZIMUTH = 140.0
DEFAULT_LAUNCH_LATITUDE = 28.5


def launch_azimuth(
    inclination_deg: float, launch_latitude_deg: float = DEFAULT_LAUNCH_LATITUDE
) -> float:
    """
    Launch azimuth needed to reach an orbital inclination.

    Args:
        inclination_deg: Target orbital inclination
        launch_latitude_deg: Latitude of the launch site

    Returns:
        Azimuth in degrees. Retrograde targets (i >= 90) get the fixed
        safety azimuth; inclinations that cannot be reached directly fall
        back to a minimum-energy heading (90 if i < latitude, else 45).
    """
    if inclination_deg >= 90:
        return RETROGRADE_SAFETY_AZIMUTH

    cos_lat = math.cos(math.radians(launch_latitude_deg))
    if cos_lat == 0:
        return 90.0 if inclination_deg < abs(launch_latitude_deg) else 45.0

    ratio = math.cos(math.radians(inclination_deg)) / cos_lat
    if abs(ratio) > 1:
        return 90.0 if inclination_deg < abs(launch_latitude_deg) else 45.0

    return math.degrees(math.acos(ratio))


def altitude_at(t: float) -> float:
    """Model altitude (meters) at t seconds after liftoff."""
    return max(0.0, (t - ALTITUDE_ONSET_S) * CLIMB_RATE_MS)


def synthesize_samples(
    pad_lat: float,
    pad_lng: float,
    azimuth: float,
    duration_s: int = SYNTH_DURATION_S,
    step_s: int = SYNTH_STEP_S,
) -> List[Tuple[float, float, float, float]]:
    """
    Raw (time, lat, lng, altitude_m) samples along the launch azimuth.
    """
    if step_s <= 0:
        raise ValueError(f"step_s must be > 0, got {step_s}")
    if duration_s < 0:
        raise ValueError(f"duration_s must be >= 0, got {duration_s}")

    samples = []
    for t in np.arange(0, duration_s + step_s, step_s):
        t = float(t)
        if t > duration_s:
            break
        lat, lng = destination_point(pad_lat, pad_lng, azimuth, AVERAGE_GROUND_SPEED_KMS * t)
        samples.append((t, lat, lng, altitude_at(t)))
    return samples


def synthesize_trajectory(
    pad_lat: float,
    pad_lng: float,
    azimuth: float,
    observer: ObservationPoint,
    duration_s: int = SYNTH_DURATION_S,
    step_s: int = SYNTH_STEP_S,
) -> List[TrajectoryPoint]:
    """
    Generate observer-relative trajectory points from a pad and azimuth.

    Args:
        pad_lat, pad_lng: Launch pad coordinates
        azimuth: Launch heading in degrees
        observer: Observation point
        duration_s: Sampling window length
        step_s: Sample spacing

    Returns:
        Points ordered by time
    """
    points = build_points(
        synthesize_samples(pad_lat, pad_lng, azimuth, duration_s, step_s), observer
    )
    logger.debug(
        f"Synthesized {len(points)} points at azimuth {azimuth:.1f}°, "
        f"{sum(1 for p in points if p.visible)} visible from {observer.name}"
    )
    return points


def azimuth_for_launch(launch: Launch, profile: Optional[OrbitProfile] = None) -> float:
    """Azimuth implied by the launch's mission archetype."""
    profile = profile or classify_mission(launch)
    latitude = (
        launch.pad.latitude if launch.pad.latitude is not None else DEFAULT_LAUNCH_LATITUDE
    )
    return launch_azimuth(profile.inclination_deg, latitude)


def synthesize_for_launch(
    launch: Launch,
    observer: ObservationPoint,
    azimuth: Optional[float] = None,
) -> List[TrajectoryPoint]:
    """
    Synthesize a trajectory for a launch.

    Raises:
        CoordinateUnavailable: If the pad has no coordinates
    """
    if not launch.pad.has_coordinates:
        raise CoordinateUnavailable(
            f"Pad '{launch.pad.name}' has no coordinates", stage="synthesizer"
        )
    if azimuth is None:
        azimuth = azimuth_for_launch(launch)
    return synthesize_trajectory(
        launch.pad.latitude, launch.pad.longitude, azimuth, observer
    )
