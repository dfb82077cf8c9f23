"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Custom markers for test categorization
- Shared fixtures for launches, trajectories and providers
- Stub providers for exercising the fallback pipeline
"""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from _pytest.config import Config

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from launch_visibility.geodesy import BERMUDA, ObservationPoint  # noqa: E402
from launch_visibility.models import Launch, PadLocation  # noqa: E402


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# =============================================================================
# CONSTANTS
# =============================================================================

# SLC-40, Cape Canaveral
CAPE_LAT = 28.5618
CAPE_LNG = -80.5772

# Bermuda local night (sun far below -18 deg) and local afternoon
NIGHT_NET = datetime(2025, 3, 15, 4, 0, 0, tzinfo=timezone.utc)
DAY_NET = datetime(2025, 6, 21, 16, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# STUB PROVIDERS
# =============================================================================


class StaticTelemetryProvider:
    """Returns fixed frames and records the refs it was asked for."""

    def __init__(self, frames: Optional[List[Dict[str, Any]]]) -> None:
        self.frames = frames
        self.calls: List[str] = []

    async def fetch_telemetry(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        self.calls.append(mission_ref)
        return self.frames


class FailingTelemetryProvider:
    def __init__(self, exc: Exception = ConnectionError("connection refused")) -> None:
        self.exc = exc

    async def fetch_telemetry(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        raise self.exc


class SlowTelemetryProvider:
    def __init__(self, delay_s: float = 1.0) -> None:
        self.delay_s = delay_s

    async def fetch_telemetry(self, mission_ref: str) -> Optional[List[Dict[str, Any]]]:
        await asyncio.sleep(self.delay_s)
        return []


class StaticImageProvider:
    def __init__(self, payload: Optional[Dict[str, Any]]) -> None:
        self.payload = payload

    async def fetch_trajectory_image(self, launch: Launch) -> Optional[Dict[str, Any]]:
        return self.payload


class FailingImageProvider:
    async def fetch_trajectory_image(self, launch: Launch) -> Optional[Dict[str, Any]]:
        raise TimeoutError("image service unavailable")


class StaticImageAnalyzer:
    def __init__(self, track: List[tuple]) -> None:
        self.track = track
        self.calls = 0

    async def analyze(self, image_ref: str, launch: Launch) -> List[tuple]:
        self.calls += 1
        return self.track


def make_launch(
    launch_id: str = "launch-1",
    name: str = "Falcon 9 Block 5 | Starlink Group 10-1",
    mission_name: str = "Starlink Group 10-1",
    net: datetime = NIGHT_NET,
    lat: Optional[float] = CAPE_LAT,
    lng: Optional[float] = CAPE_LNG,
    orbit: Optional[str] = "Low Earth Orbit",
    mission_ref: Optional[str] = None,
) -> Launch:
    return Launch(
        id=launch_id,
        name=name,
        mission_name=mission_name,
        net=net,
        pad=PadLocation(name="SLC-40", latitude=lat, longitude=lng),
        orbit=orbit,
        mission_ref=mission_ref,
    )


def telemetry_frames(count: int = 21, step_s: float = 30.0) -> List[Dict[str, Any]]:
    """Plausible ascent frames from the Cape passing over Bermuda at T+300s."""
    frames = []
    for i in range(count):
        t = i * step_s
        fraction = i / 10.0
        frames.append(
            {
                "time": t,
                "lat": CAPE_LAT + (BERMUDA.latitude - CAPE_LAT) * fraction,
                "lng": CAPE_LNG + (BERMUDA.longitude - CAPE_LNG) * fraction,
                "altitudeMeters": max(0.0, (t - 60) * 400),
                "speed": min(7800.0, 40.0 * t),
            }
        )
    return frames


# =============================================================================
# FIXTURES - Common test setup
# =============================================================================


@pytest.fixture
def observer() -> ObservationPoint:
    return BERMUDA


@pytest.fixture
def starlink_launch() -> Launch:
    """Starlink launch from the Cape during Bermuda night."""
    return make_launch()


@pytest.fixture
def day_launch() -> Launch:
    return make_launch(launch_id="launch-day", net=DAY_NET)


@pytest.fixture
def padless_launch() -> Launch:
    """Launch whose catalog entry has no pad coordinates."""
    return make_launch(launch_id="launch-nopad", lat=None, lng=None)


@pytest.fixture
def x37b_launch() -> Launch:
    return make_launch(
        launch_id="launch-otv",
        name="Falcon Heavy | USSF-52",
        mission_name="USSF-52 (OTV-7)",
        orbit="Geostationary Transfer Orbit",
    )


@pytest.fixture
def launch_descriptor() -> Dict[str, Any]:
    """Catalog descriptor in Launch Library style."""
    return {
        "id": "f1b2c3d4",
        "name": "Falcon 9 Block 5 | Crew-10",
        "mission": {"name": "Crew-10", "orbit": {"name": "Low Earth Orbit", "abbrev": "LEO"}},
        "pad": {"name": "LC-39A", "latitude": "28.60822681", "longitude": "-80.60428186"},
        "net": "2025-03-14T23:03:00Z",
        "missionRef": "crew-10",
    }


@pytest.fixture
def frames() -> List[Dict[str, Any]]:
    return telemetry_frames()
