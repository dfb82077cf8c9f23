"""
Provider interfaces consumed by the acquisition pipeline.

Upstream HTTP clients live outside this package; anything with the
matching coroutine methods can be plugged in. The JSON file providers here
serve exported data for offline and command-line use.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from .models import Launch

logger = logging.getLogger(__name__)


class TelemetryProvider(Protocol):
    async def fetch_telemetry(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        """Return ``[{time, lat, lng, altitudeMeters, speed}]`` or None if not found."""
        ...


class ImageMetadataProvider(Protocol):
    async def fetch_trajectory_image(self, launch: Launch) -> Optional[Dict[str, Any]]:
        """Return ``{imageRef, directionHint?}`` or None if not found."""
        ...


class ImageAnalyzer(Protocol):
    async def analyze(self, image_ref: str, launch: Launch) -> List[Tuple[float, float]]:
        """Return the ground track drawn in the image as (lat, lng) pairs."""
        ...


@dataclass(frozen=True)
class Capabilities:
    """
    What the running environment can do, resolved once at startup.

    image_inspection is only True when pixel analysis is both enabled and
    backed by an analyzer.
    """
    image_inspection: bool = False

    @classmethod
    def resolve(
        cls, image_analyzer: Optional[ImageAnalyzer], image_inspection_enabled: bool = True
    ) -> "Capabilities":
        return cls(image_inspection=bool(image_inspection_enabled and image_analyzer))


def _extract_frames(payload: Any) -> Optional[List[Dict[str, Any]]]:
    # Accept a bare list, {"frames": [...]}, or Flight Club style stages
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("frames"), list):
            return payload["frames"]
        for stage in payload.get("stages") or []:
            telemetry = stage.get("telemetry") if isinstance(stage, dict) else None
            if telemetry:
                return telemetry
    return None


class JsonTelemetryProvider:
    """Telemetry read from ``<directory>/<mission_ref>.json``."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _read(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        path = self.directory / f"{mission_ref}.json"
        if not path.exists():
            logger.debug(f"No telemetry file for {mission_ref} in {self.directory}")
            return None
        with open(path, "r") as f:
            return _extract_frames(json.load(f))

    async def fetch_telemetry(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        return await asyncio.to_thread(self._read, mission_ref)


class JsonImageMetadataProvider:
    """Image metadata keyed by launch id in a single JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._entries is None:
            with open(self.path, "r") as f:
                self._entries = json.load(f)
            logger.info(f"Loaded {len(self._entries)} image entries from {self.path}")
        return self._entries

    async def fetch_trajectory_image(self, launch: Launch) -> Optional[Dict[str, Any]]:
        entries = await asyncio.to_thread(self._load)
        return entries.get(launch.id)
