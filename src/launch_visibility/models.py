"""
Core data model for launches and visibility results.

Launches are immutable once built from the catalog descriptor; their
fingerprint feeds every cache key downstream.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, Mapping, Optional

from .schemas import LaunchDescriptor


class Likelihood(Enum):
    """How likely the launch is to be seen from the observer."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@total_ordering
class Confidence(Enum):
    """Trust ranking of trajectory data (CONFIRMED > PROJECTED > ESTIMATED)."""
    CONFIRMED = "confirmed"
    PROJECTED = "projected"
    ESTIMATED = "estimated"

    @property
    def rank(self) -> int:
        return {"confirmed": 3, "projected": 2, "estimated": 1}[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank


class TrajectorySource(Enum):
    """Where a trajectory came from."""
    TELEMETRY = "telemetry"
    IMAGE_ANALYSIS = "image_analysis"
    ORBITAL_MECHANICS = "orbital_mechanics"
    NONE = "none"

    @property
    def basis(self) -> str:
        """Short phrase describing the data basis, for reason text."""
        return {
            TrajectorySource.TELEMETRY: "confirmed telemetry",
            TrajectorySource.IMAGE_ANALYSIS: "projected from trajectory image",
            TrajectorySource.ORBITAL_MECHANICS: "estimated from orbital mechanics",
            TrajectorySource.NONE: "estimated from mission profile (no external data)",
        }[self]


class TrajectoryDirection(Enum):
    """Compass bucket of the launch ground track."""
    NORTHEAST = "Northeast"
    EAST_NORTHEAST = "East-Northeast"
    EAST = "East"
    EAST_SOUTHEAST = "East-Southeast"
    SOUTHEAST = "Southeast"
    NORTH = "North"
    SOUTH = "South"
    UNKNOWN = "Unknown"

    @classmethod
    def from_text(cls, text: Optional[str]) -> "TrajectoryDirection":
        """
        Parse a loosely formatted direction ("north-east", "NE", "East").

        Returns UNKNOWN for anything unrecognised.
        """
        if not text:
            return cls.UNKNOWN
        key = text.strip().lower().replace("_", "-").replace(" ", "-")
        aliases = {
            "ne": cls.NORTHEAST,
            "north-east": cls.NORTHEAST,
            "northeast": cls.NORTHEAST,
            "ene": cls.EAST_NORTHEAST,
            "east-northeast": cls.EAST_NORTHEAST,
            "e": cls.EAST,
            "east": cls.EAST,
            "ese": cls.EAST_SOUTHEAST,
            "east-southeast": cls.EAST_SOUTHEAST,
            "se": cls.SOUTHEAST,
            "south-east": cls.SOUTHEAST,
            "southeast": cls.SOUTHEAST,
            "n": cls.NORTH,
            "north": cls.NORTH,
            "s": cls.SOUTH,
            "south": cls.SOUTH,
        }
        return aliases.get(key, cls.UNKNOWN)


@dataclass(frozen=True)
class PadLocation:
    """Launch pad; coordinates are optional in catalog data."""

    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class Launch:
    """A scheduled launch as fetched from the external catalog."""

    id: str
    name: str
    mission_name: str
    net: datetime  # scheduled liftoff, UTC
    pad: PadLocation
    orbit: Optional[str] = None
    mission_ref: Optional[str] = None  # external trajectory-provider id

    def __post_init__(self) -> None:
        if self.net.tzinfo is None:
            object.__setattr__(self, "net", self.net.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, "net", self.net.astimezone(timezone.utc))

    @classmethod
    def from_descriptor(cls, payload: Mapping[str, Any]) -> "Launch":
        """
        Build a Launch from a catalog descriptor.

        Args:
            payload: ``{id, name, mission: {name, orbit?}, pad: {name, lat?, lng?}, net}``

        Returns:
            Launch instance

        Raises:
            ValueError: If the descriptor is invalid (pydantic ValidationError)
        """
        descriptor = LaunchDescriptor.model_validate(payload)
        return cls(
            id=descriptor.id,
            name=descriptor.name,
            mission_name=descriptor.mission.name,
            net=descriptor.net,
            pad=PadLocation(
                name=descriptor.pad.name,
                latitude=descriptor.pad.lat,
                longitude=descriptor.pad.lng,
            ),
            orbit=descriptor.mission.orbit,
            mission_ref=descriptor.mission_ref,
        )

    @property
    def resolved_mission_ref(self) -> str:
        """Identifier used for telemetry lookup (Launch Library id fallback)."""
        return self.mission_ref or self.id

    def fingerprint(self) -> str:
        """Content hash of the inputs that can change after first fetch."""
        material = json.dumps(
            [
                self.net.isoformat(),
                self.pad.latitude,
                self.pad.longitude,
                self.mission_ref,
            ]
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()[:16]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mission": {"name": self.mission_name, "orbit": self.orbit},
            "pad": {
                "name": self.pad.name,
                "lat": self.pad.latitude,
                "lng": self.pad.longitude,
            },
            "net": self.net.isoformat(),
            "missionRef": self.mission_ref,
        }


@dataclass(frozen=True)
class VisibilityAssessment:
    """Final classification handed to presentation and notification layers."""

    likelihood: Likelihood
    reason: str
    bearing_degrees: Optional[float]
    trajectory_direction: TrajectoryDirection
    estimated_time_visible: str
    confidence: Confidence
    source: TrajectorySource = TrajectorySource.NONE
    window_start_s: Optional[float] = None
    window_end_s: Optional[float] = None
    twilight: Optional[str] = None
    solar_elevation_deg: Optional[float] = None
    closest_approach_km: Optional[float] = None
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Full-precision form, the inverse of from_dict."""
        result: Dict[str, Any] = {
            "likelihood": self.likelihood.value,
            "reason": self.reason,
            "bearingDegrees": self.bearing_degrees,
            "trajectoryDirection": self.trajectory_direction.value,
            "estimatedTimeVisible": self.estimated_time_visible,
            "confidence": self.confidence.value,
            "source": self.source.value,
            "degraded": self.degraded,
        }
        if self.window_start_s is not None and self.window_end_s is not None:
            result["visibleWindow"] = {
                "startSeconds": self.window_start_s,
                "endSeconds": self.window_end_s,
            }
        if self.twilight is not None:
            result["twilight"] = self.twilight
        if self.solar_elevation_deg is not None:
            result["solarElevationDegrees"] = self.solar_elevation_deg
        if self.closest_approach_km is not None:
            result["closestApproachKm"] = self.closest_approach_km
        return result

    def to_summary(self) -> Dict[str, Any]:
        """to_dict with angles and distances rounded for display."""
        result = self.to_dict()
        if self.bearing_degrees is not None:
            result["bearingDegrees"] = round(self.bearing_degrees, 1)
        if self.solar_elevation_deg is not None:
            result["solarElevationDegrees"] = round(self.solar_elevation_deg, 2)
        if self.closest_approach_km is not None:
            result["closestApproachKm"] = round(self.closest_approach_km, 1)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VisibilityAssessment":
        window = data.get("visibleWindow") or {}
        return cls(
            likelihood=Likelihood(data["likelihood"]),
            reason=data["reason"],
            bearing_degrees=data.get("bearingDegrees"),
            trajectory_direction=TrajectoryDirection(data["trajectoryDirection"]),
            estimated_time_visible=data["estimatedTimeVisible"],
            confidence=Confidence(data["confidence"]),
            source=TrajectorySource(data.get("source", "none")),
            window_start_s=window.get("startSeconds"),
            window_end_s=window.get("endSeconds"),
            twilight=data.get("twilight"),
            solar_elevation_deg=data.get("solarElevationDegrees"),
            closest_approach_km=data.get("closestApproachKm"),
            degraded=bool(data.get("degraded", False)),
        )
