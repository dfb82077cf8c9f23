"""
Mission archetypes used when a trajectory has to be inferred.

Each archetype carries a typical orbital inclination and altitude plus the
minimum apogee a real flight of that class must reach, which is what the
telemetry plausibility check compares against. Mission families whose
heading is on record (Starlink shells, USSF geosynchronous flights, Earth
observation SSO missions) are looked up before any archetype is used.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .models import Launch, TrajectoryDirection

logger = logging.getLogger(__name__)

# Orbital flights must clear the Karman line
ORBITAL_MIN_APOGEE_KM = 100.0


@dataclass(frozen=True)
class OrbitProfile:
    """Typical orbital parameters for a class of missions."""

    key: str
    inclination_deg: float
    apogee_km: float
    perigee_km: float
    orbit_type: str
    min_plausible_apogee_km: float = ORBITAL_MIN_APOGEE_KM

    def __post_init__(self) -> None:
        if not 0 <= self.inclination_deg <= 180:
            raise ValueError(
                f"inclination_deg must be in [0, 180], got {self.inclination_deg}"
            )
        if self.perigee_km > self.apogee_km:
            raise ValueError(
                f"perigee_km ({self.perigee_km}) exceeds apogee_km ({self.apogee_km})"
            )


ISS_PROFILE = OrbitProfile("iss", 51.64, 420.0, 420.0, "LEO")
STARLINK_PROFILE = OrbitProfile("starlink", 53.2, 550.0, 550.0, "LEO")
GTO_PROFILE = OrbitProfile("gto", 27.0, 35786.0, 200.0, "GTO")
GEO_PROFILE = OrbitProfile("geo", 0.0, 35786.0, 35786.0, "GEO")
SSO_PROFILE = OrbitProfile("sso", 98.0, 800.0, 800.0, "SSO")
POLAR_PROFILE = OrbitProfile("polar", 90.0, 800.0, 800.0, "Polar")
DEFAULT_PROFILE = OrbitProfile("default", 45.0, 400.0, 400.0, "LEO")

# (profile, orbit-name keywords, mission-name keywords), checked in order.
# GTO precedes GEO so "geosynchronous transfer" is not read as GEO, and
# SSO precedes GEO so "sun-synchronous" is not either.
PROFILE_RULES: Tuple[Tuple[OrbitProfile, Tuple[str, ...], Tuple[str, ...]], ...] = (
    (GTO_PROFILE, ("gto", "transfer"), ()),
    (
        SSO_PROFILE,
        ("sso", "sun-synchronous", "sun synchronous"),
        ("kompsat", "earth observation", "earth imaging", "surveillance"),
    ),
    (GEO_PROFILE, ("geo", "synchronous", "geostationary"), ()),
    (ISS_PROFILE, ("iss", "station"), ("dragon", "crew", "cygnus", "crs-")),
    (STARLINK_PROFILE, ("starlink",), ("starlink",)),
    (POLAR_PROFILE, ("polar",), ()),
)


def classify_mission(launch: Launch) -> OrbitProfile:
    """
    Pick the mission archetype for a launch from its orbit and mission names.

    Args:
        launch: Launch to classify

    Returns:
        Matching OrbitProfile, DEFAULT_PROFILE when nothing matches
    """
    return match_profile(launch.orbit, launch.mission_name)


def match_profile(orbit_name: Optional[str], mission_name: Optional[str]) -> OrbitProfile:
    orbit = (orbit_name or "").lower()
    mission = (mission_name or "").lower()

    for profile, orbit_keywords, mission_keywords in PROFILE_RULES:
        if any(k in orbit for k in orbit_keywords) or any(
            k in mission for k in mission_keywords
        ):
            logger.debug(f"Mission '{mission_name}' classified as {profile.key}")
            return profile

    return DEFAULT_PROFILE


@dataclass(frozen=True)
class KnownMission:
    """
    Recorded launch heading for a named mission family.

    ``key`` is compared against the normalized mission name: an exact match
    or a prefix followed by ``-`` (so ``landsat`` covers ``landsat-9``).
    When ``orbit_keywords`` is set the orbit name must also contain one.
    """

    key: str
    azimuth_deg: float
    direction: TrajectoryDirection
    orbit_keywords: Tuple[str, ...] = ()

    def matches(self, mission_key: str, orbit_name: str) -> bool:
        if mission_key != self.key and not mission_key.startswith(f"{self.key}-"):
            return False
        return not self.orbit_keywords or any(k in orbit_name for k in self.orbit_keywords)


@dataclass(frozen=True)
class StarlinkShell:
    """Heading shared by a contiguous range of Starlink group numbers."""

    first_group: int
    last_group: int
    azimuth_deg: float
    direction: TrajectoryDirection

    @property
    def key(self) -> str:
        return f"starlink-group-{self.first_group}-{self.last_group}"


# Checked in order, before any archetype inclination
KNOWN_MISSIONS: Tuple[KnownMission, ...] = (
    KnownMission("iss-crew", 51.0, TrajectoryDirection.NORTHEAST),
    KnownMission("dragon-crew", 51.0, TrajectoryDirection.NORTHEAST),
    KnownMission("cygnus-cargo", 51.0, TrajectoryDirection.NORTHEAST),
    KnownMission("ussf-gto", 130.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("ussf-geo", 135.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("ussf", 130.0, TrajectoryDirection.SOUTHEAST, ("gto", "transfer")),
    KnownMission("ussf", 135.0, TrajectoryDirection.SOUTHEAST, ("geo", "synchronous")),
    KnownMission("commercial-gto", 125.0, TrajectoryDirection.EAST_SOUTHEAST),
    KnownMission("polar-orbit", 180.0, TrajectoryDirection.SOUTH),
    KnownMission("sso-mission", 140.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("kompsat", 140.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("earth-observation", 140.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("landsat", 140.0, TrajectoryDirection.SOUTHEAST),
    KnownMission("sentinel", 140.0, TrajectoryDirection.SOUTHEAST),
)

STARLINK_SHELLS: Tuple[StarlinkShell, ...] = (
    StarlinkShell(1, 5, 53.0, TrajectoryDirection.NORTHEAST),
    StarlinkShell(6, 9, 130.0, TrajectoryDirection.SOUTHEAST),
)
# Groups outside every listed shell
STARLINK_DEFAULT_SHELL = StarlinkShell(10, 99, 50.0, TrajectoryDirection.NORTHEAST)

_STARLINK_GROUP = re.compile(r"starlink-group-(\d+)")


def mission_key(mission_name: Optional[str]) -> str:
    """Normalize a mission name: lowercase, spaces to ``-``, punctuation dropped."""
    key = re.sub(r"\s+", "-", (mission_name or "").strip().lower())
    return re.sub(r"[^\w-]", "", key)


def match_known_mission(
    launch: Launch,
) -> Optional[Union[KnownMission, StarlinkShell]]:
    """
    Recorded heading for a launch's mission family.

    Args:
        launch: Launch to look up

    Returns:
        The first matching KnownMission or StarlinkShell, None when the
        mission is not on record
    """
    key = mission_key(launch.mission_name)
    orbit = (launch.orbit or "").lower()

    for entry in KNOWN_MISSIONS:
        if entry.matches(key, orbit):
            logger.debug(f"Mission '{launch.mission_name}' found as {entry.key}")
            return entry

    match = _STARLINK_GROUP.search(key)
    if match:
        group = int(match.group(1))
        for shell in STARLINK_SHELLS:
            if shell.first_group <= group <= shell.last_group:
                return shell
        return STARLINK_DEFAULT_SHELL

    return None
