"""
Solar position and twilight classification.

This module provides a low-precision solar ephemeris (good to about a
degree) which is enough to tell daylight from the civil, nautical and
astronomical twilight bands at the observation point.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple

import numpy as np

# Constants
J2000_JULIAN_DAY = 2451545.0
UNIX_EPOCH_JULIAN_DAY = 2440587.5
OBLIQUITY_DEG = 23.439

# Twilight thresholds (sun elevation, degrees)
CIVIL_TWILIGHT_DEG = -6.0
NAUTICAL_TWILIGHT_DEG = -12.0
ASTRONOMICAL_TWILIGHT_DEG = -18.0


class TwilightLevel(Enum):
    """Sky brightness band at the observer."""
    DAY = "day"
    CIVIL = "civil"
    NAUTICAL = "nautical"
    ASTRONOMICAL = "astronomical"
    NIGHT = "night"

    @property
    def label(self) -> str:
        return {
            TwilightLevel.DAY: "Daytime",
            TwilightLevel.CIVIL: "Civil twilight",
            TwilightLevel.NAUTICAL: "Nautical twilight",
            TwilightLevel.ASTRONOMICAL: "Astronomical twilight",
            TwilightLevel.NIGHT: "Night",
        }[self]


def _as_utc(timestamp: datetime) -> datetime:
    # Naive datetimes are taken to be UTC already
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def julian_day(timestamp: datetime) -> float:
    """
    Convert a datetime to a Julian day number.

    Args:
        timestamp: UTC datetime (naive values are treated as UTC)

    Returns:
        Julian day as a float, no leap-second correction
    """
    return _as_utc(timestamp).timestamp() / 86400.0 + UNIX_EPOCH_JULIAN_DAY


def calculate_gmst(timestamp: datetime) -> float:
    """
    Calculate Greenwich Mean Sidereal Time (GMST) in degrees.

    Args:
        timestamp: UTC datetime

    Returns:
        GMST in degrees
    """
    days = julian_day(timestamp) - J2000_JULIAN_DAY
    T = days / 36525.0  # Julian centuries
    gmst = 280.46061837 + 360.98564736629 * days + 0.000387933 * T * T

    return gmst % 360.0


def solar_position(timestamp: datetime) -> Tuple[float, float]:
    """
    Calculate the sun's equatorial coordinates.

    Uses the mean longitude, mean anomaly and ecliptic longitude of the sun
    from the standard low-precision almanac formulas.

    Args:
        timestamp: UTC datetime

    Returns:
        Tuple of (declination_deg, right_ascension_deg)
    """
    n = julian_day(timestamp) - J2000_JULIAN_DAY

    # Mean longitude and mean anomaly
    L = (280.460 + 0.9856474 * n) % 360.0
    g = math.radians((357.528 + 0.9856003 * n) % 360.0)

    # Ecliptic longitude
    lambda_sun = math.radians(L + 1.915 * math.sin(g) + 0.020 * math.sin(2 * g))
    epsilon = math.radians(OBLIQUITY_DEG)

    declination = math.asin(math.sin(epsilon) * math.sin(lambda_sun))
    right_ascension = math.atan2(
        math.cos(epsilon) * math.sin(lambda_sun), math.cos(lambda_sun)
    )

    return math.degrees(declination), math.degrees(right_ascension) % 360.0


def solar_elevation(timestamp: datetime, latitude: float, longitude: float) -> float:
    """
    Get the sun elevation angle at a ground location.

    Args:
        timestamp: UTC datetime
        latitude: Observer latitude in degrees
        longitude: Observer longitude in degrees (east positive)

    Returns:
        Sun elevation angle in degrees (positive = above horizon, negative = below)
    """
    declination, right_ascension = solar_position(timestamp)
    dec_rad = math.radians(declination)
    ra_rad = math.radians(right_ascension)

    # Sun direction in the equatorial frame
    sun_unit = np.array([
        math.cos(dec_rad) * math.cos(ra_rad),
        math.cos(dec_rad) * math.sin(ra_rad),
        math.sin(dec_rad),
    ])

    # Local up vector, rotated by sidereal time
    local_sidereal = math.radians(calculate_gmst(timestamp) + longitude)
    lat_rad = math.radians(latitude)
    up_vec = np.array([
        math.cos(lat_rad) * math.cos(local_sidereal),
        math.cos(lat_rad) * math.sin(local_sidereal),
        math.sin(lat_rad),
    ])

    sin_elevation = float(np.dot(sun_unit, up_vec))
    return math.degrees(math.asin(max(-1.0, min(1.0, sin_elevation))))


def twilight_level(elevation_deg: float) -> TwilightLevel:
    """
    Classify sky brightness from the sun's elevation.

    Args:
        elevation_deg: Sun elevation in degrees

    Returns:
        TwilightLevel band (0, -6, -12, -18 degree thresholds)
    """
    if elevation_deg > 0:
        return TwilightLevel.DAY
    if elevation_deg > CIVIL_TWILIGHT_DEG:
        return TwilightLevel.CIVIL
    if elevation_deg > NAUTICAL_TWILIGHT_DEG:
        return TwilightLevel.NAUTICAL
    if elevation_deg > ASTRONOMICAL_TWILIGHT_DEG:
        return TwilightLevel.ASTRONOMICAL
    return TwilightLevel.NIGHT
