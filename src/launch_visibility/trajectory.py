"""
Trajectory records and their normalization.

Every trajectory, whatever its source, is turned into observer-relative
points here so the assessor only ever sees one record shape.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .geodesy import (
    ObservationPoint,
    great_circle_distance,
    horizon_radius,
    initial_bearing,
)
from .models import Confidence, TrajectoryDirection, TrajectorySource

# Launch heading (degrees) for each direction bucket
DIRECTION_AZIMUTHS: Dict[TrajectoryDirection, float] = {
    TrajectoryDirection.NORTHEAST: 45.0,
    TrajectoryDirection.EAST_NORTHEAST: 67.0,
    TrajectoryDirection.EAST: 90.0,
    TrajectoryDirection.EAST_SOUTHEAST: 112.0,
    TrajectoryDirection.SOUTHEAST: 140.0,
    TrajectoryDirection.NORTH: 0.0,
    TrajectoryDirection.SOUTH: 180.0,
    TrajectoryDirection.UNKNOWN: 50.0,
}


def azimuth_to_direction(azimuth: float) -> TrajectoryDirection:
    """
    Bucket a launch azimuth into a compass direction.

    Args:
        azimuth: Heading in degrees

    Returns:
        TrajectoryDirection; westward headings map to UNKNOWN
    """
    azimuth = azimuth % 360.0
    if 15 <= azimuth <= 45:
        return TrajectoryDirection.NORTHEAST
    if 45 < azimuth <= 75:
        return TrajectoryDirection.EAST_NORTHEAST
    if 75 < azimuth <= 105:
        return TrajectoryDirection.EAST
    if 105 < azimuth <= 135:
        return TrajectoryDirection.EAST_SOUTHEAST
    if 135 < azimuth <= 165:
        return TrajectoryDirection.SOUTHEAST
    if 165 < azimuth <= 195:
        return TrajectoryDirection.SOUTH
    if azimuth < 15 or azimuth >= 345:
        return TrajectoryDirection.NORTH
    return TrajectoryDirection.UNKNOWN


def direction_to_azimuth(direction: TrajectoryDirection) -> float:
    return DIRECTION_AZIMUTHS[direction]


@dataclass(frozen=True)
class TrajectoryPoint:
    """A trajectory sample as seen from the observation point."""

    time: float  # seconds from liftoff
    latitude: float
    longitude: float
    altitude: float  # meters
    distance: float  # km from observer
    bearing: float  # degrees from observer
    visible: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "distance": self.distance,
            "bearing": self.bearing,
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrajectoryPoint":
        return cls(
            time=float(data["time"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=float(data["altitude"]),
            distance=float(data["distance"]),
            bearing=float(data["bearing"]),
            visible=bool(data["visible"]),
        )


def build_point(
    time: float,
    latitude: float,
    longitude: float,
    altitude_m: float,
    observer: ObservationPoint,
) -> TrajectoryPoint:
    """Fill in distance, bearing and line-of-sight for a raw sample."""
    altitude_m = max(0.0, altitude_m)
    distance = great_circle_distance(
        observer.latitude, observer.longitude, latitude, longitude
    )
    bearing = initial_bearing(observer.latitude, observer.longitude, latitude, longitude)
    return TrajectoryPoint(
        time=float(time),
        latitude=latitude,
        longitude=longitude,
        altitude=altitude_m,
        distance=distance,
        bearing=bearing,
        visible=distance <= horizon_radius(altitude_m),
    )


def build_points(
    samples: Iterable[Tuple[float, float, float, float]],
    observer: ObservationPoint,
) -> List[TrajectoryPoint]:
    """
    Normalize raw (time, lat, lng, altitude_m) samples, sorted by time.
    """
    points = [build_point(t, lat, lng, alt, observer) for t, lat, lng, alt in samples]
    points.sort(key=lambda p: p.time)
    return points


def derive_direction(points: Sequence[TrajectoryPoint]) -> TrajectoryDirection:
    """Overall heading from the first to the last point of a trajectory."""
    if len(points) < 2:
        return TrajectoryDirection.UNKNOWN

    start, end = points[0], points[-1]
    if (start.latitude, start.longitude) == (end.latitude, end.longitude):
        return TrajectoryDirection.UNKNOWN
    overall = initial_bearing(start.latitude, start.longitude, end.latitude, end.longitude)
    return azimuth_to_direction(overall)


@dataclass(frozen=True)
class VisibilityWindow:
    """Visible segment of a trajectory."""

    start_time: float
    end_time: float
    start_bearing: float
    end_bearing: float
    closest_approach_km: float
    closest_point: TrajectoryPoint

    @property
    def duration_s(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start_bearing": round(self.start_bearing, 2),
            "end_bearing": round(self.end_bearing, 2),
            "closest_approach_km": round(self.closest_approach_km, 2),
        }


def calculate_visibility_window(
    points: Sequence[TrajectoryPoint],
) -> Optional[VisibilityWindow]:
    """First/last visible sample and the closest visible approach, if any."""
    visible = [p for p in points if p.visible]
    if not visible:
        return None

    closest = min(visible, key=lambda p: p.distance)
    return VisibilityWindow(
        start_time=visible[0].time,
        end_time=visible[-1].time,
        start_bearing=visible[0].bearing,
        end_bearing=visible[-1].bearing,
        closest_approach_km=closest.distance,
        closest_point=closest,
    )


@dataclass(frozen=True)
class TrajectoryData:
    """
    Normalized trajectory for one launch.

    Built fresh for every acquisition attempt and replaced wholesale
    (``dataclasses.replace``) rather than edited.
    """

    launch_id: str
    source: TrajectorySource
    points: Tuple[TrajectoryPoint, ...]
    confidence: Confidence
    trajectory_direction: TrajectoryDirection = TrajectoryDirection.UNKNOWN
    image_ref: Optional[str] = None
    mission_ref: Optional[str] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))
        object.__setattr__(self, "notes", tuple(self.notes))
        for earlier, later in zip(self.points, self.points[1:]):
            if later.time < earlier.time:
                raise ValueError(
                    f"Trajectory points for {self.launch_id} are not ordered by time "
                    f"({earlier.time} > {later.time})"
                )

    @classmethod
    def create(
        cls,
        launch_id: str,
        source: TrajectorySource,
        points: Sequence[TrajectoryPoint],
        confidence: Confidence,
        direction: Optional[TrajectoryDirection] = None,
        **kwargs: Any,
    ) -> "TrajectoryData":
        """Build a record, deriving the direction from the points when not given."""
        ordered = sorted(points, key=lambda p: p.time)
        if direction is None or direction is TrajectoryDirection.UNKNOWN:
            direction = derive_direction(ordered)
        return cls(
            launch_id=launch_id,
            source=source,
            points=tuple(ordered),
            confidence=confidence,
            trajectory_direction=direction,
            **kwargs,
        )

    @property
    def visibility_window(self) -> Optional[VisibilityWindow]:
        return calculate_visibility_window(self.points)

    @property
    def has_visible_points(self) -> bool:
        return any(p.visible for p in self.points)

    def to_dict(self) -> Dict[str, Any]:
        window = self.visibility_window
        return {
            "launch_id": self.launch_id,
            "source": self.source.value,
            "confidence": self.confidence.value,
            "trajectory_direction": self.trajectory_direction.value,
            "image_ref": self.image_ref,
            "mission_ref": self.mission_ref,
            "notes": list(self.notes),
            "points": [p.to_dict() for p in self.points],
            "visibility_window": window.to_dict() if window else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrajectoryData":
        return cls(
            launch_id=data["launch_id"],
            source=TrajectorySource(data["source"]),
            points=tuple(TrajectoryPoint.from_dict(p) for p in data.get("points", [])),
            confidence=Confidence(data["confidence"]),
            trajectory_direction=TrajectoryDirection(
                data.get("trajectory_direction", "Unknown")
            ),
            image_ref=data.get("image_ref"),
            mission_ref=data.get("mission_ref"),
            notes=tuple(data.get("notes", [])),
        )
