"""Pydantic schemas for payloads consumed from external collaborators."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MissionInfo(BaseModel):
    name: str
    orbit: Optional[str] = None

    @field_validator("orbit", mode="before")
    @classmethod
    def flatten_orbit(cls, v: Any) -> Optional[str]:
        # Launch Library nests the orbit as {"name": ..., "abbrev": ...}
        if isinstance(v, dict):
            return v.get("name") or v.get("abbrev")
        return v


class PadInfo(BaseModel):
    name: str = "Unknown pad"
    lat: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lat", "latitude")
    )
    lng: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lng", "lon", "longitude")
    )

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("lat")
    @classmethod
    def validate_lat(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not -90 <= v <= 90:
            raise ValueError(f"Pad latitude out of range: {v}")
        return v

    @field_validator("lng")
    @classmethod
    def validate_lng(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not -180 <= v <= 180:
            raise ValueError(f"Pad longitude out of range: {v}")
        return v


class LaunchDescriptor(BaseModel):
    """Launch record as delivered by the external launch catalog."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    mission: MissionInfo
    pad: PadInfo = Field(default_factory=PadInfo)
    net: datetime
    mission_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("missionRef", "mission_ref", "flightClubId"),
    )

    @field_validator("net")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class TelemetryFrame(BaseModel):
    """One sample from a telemetry provider."""

    time: float = Field(ge=0)
    lat: float = Field(ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(
        ge=-180, le=180, validation_alias=AliasChoices("lng", "lon", "longitude")
    )
    altitude_meters: float = Field(
        ge=0, validation_alias=AliasChoices("altitudeMeters", "altitude_meters", "altitude")
    )
    speed: float = Field(default=0.0, ge=0)


class TrajectoryImage(BaseModel):
    """Trajectory image metadata from the image provider."""

    image_ref: str = Field(validation_alias=AliasChoices("imageRef", "image_ref", "imageUrl"))
    direction_hint: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("directionHint", "direction_hint")
    )
