"""
Geodesy helpers for line-of-sight visibility.

Pure functions over a spherical Earth: great-circle distance and bearing,
great-circle projection, horizon visibility radius and elevation angle.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

# Earth parameters
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class ObservationPoint:
    """Fixed ground location the engine evaluates visibility for."""

    name: str
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(
                f"longitude must be in [-180, 180], got {self.longitude}"
            )


BERMUDA = ObservationPoint(name="Bermuda", latitude=32.3078, longitude=-64.7505)


def great_circle_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))

    return EARTH_RADIUS_KM * c


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the initial bearing from the first point to the second.

    Args:
        lat1, lon1: Origin coordinates (degrees)
        lat2, lon2: Destination coordinates (degrees)

    Returns:
        Bearing in degrees, clockwise from north, in [0, 360)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)

    y = math.sin(dlon) * math.cos(lat2_rad)
    x = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon))

    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 and float rounding can land exactly on 360
    return 0.0 if bearing >= 360.0 else bearing


def destination_point(
    lat: float, lon: float, bearing_deg: float, distance_km: float
) -> Tuple[float, float]:
    """
    Project a point along a great circle.

    Args:
        lat, lon: Start coordinates (degrees)
        bearing_deg: Initial bearing (degrees)
        distance_km: Distance travelled along the surface

    Returns:
        Tuple of (latitude, longitude) in degrees, longitude in [-180, 180)
    """
    angular = distance_km / EARTH_RADIUS_KM
    bearing_rad = math.radians(bearing_deg)
    lat1 = math.radians(lat)
    lon1 = math.radians(lon)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular) +
        math.cos(lat1) * math.sin(angular) * math.cos(bearing_rad)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2),
    )

    lon_deg = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
    return math.degrees(lat2), lon_deg


def horizon_radius(altitude_m: float) -> float:
    """
    Maximum ground distance at which an object at the given altitude is
    above the geometric horizon for a sea-level observer.

    Uses cos(theta) = R / (R + h).

    Args:
        altitude_m: Object altitude in meters (negative values count as 0)

    Returns:
        Arc length in kilometers
    """
    altitude_km = max(0.0, altitude_m) / 1000.0
    theta = math.acos(EARTH_RADIUS_KM / (EARTH_RADIUS_KM + altitude_km))
    return EARTH_RADIUS_KM * theta


def elevation_angle(distance_km: float, altitude_km: float) -> float:
    """
    Approximate elevation of an object above the observer's horizon.

    The Earth-curvature drop d^2 / 2R is subtracted from the altitude before
    taking the angle, so distant objects can come out negative.

    Args:
        distance_km: Ground distance from the observer
        altitude_km: Object altitude in kilometers

    Returns:
        Elevation angle in degrees
    """
    curvature_drop = distance_km ** 2 / (2 * EARTH_RADIUS_KM)
    adjusted_altitude = altitude_km - curvature_drop
    return math.degrees(math.atan2(adjusted_altitude, distance_km))


def circular_mean_bearing(bearings: Iterable[float]) -> float:
    """
    Average a set of bearings on the circle (350 and 10 average to 0).

    Raises:
        ValueError: If no bearings are given
    """
    values = list(bearings)
    if not values:
        raise ValueError("circular_mean_bearing() requires at least one bearing")

    sin_sum = sum(math.sin(math.radians(b)) for b in values)
    cos_sum = sum(math.cos(math.radians(b)) for b in values)
    if abs(sin_sum) < 1e-12 and abs(cos_sum) < 1e-12:
        # Opposite bearings have no defined mean
        return values[0] % 360.0

    mean = math.degrees(math.atan2(sin_sum, cos_sum)) % 360.0
    return 0.0 if mean >= 360.0 else mean
