"""
Configuration for the visibility engine.

Handles loading and validating settings from a YAML file. Every section is
optional; anything left out keeps the built-in default.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # type: ignore[import-untyped]

from .geodesy import BERMUDA, ObservationPoint
from .models import TrajectoryDirection

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LAUNCH_VISIBILITY_CONFIG"
DEFAULT_CONFIG_NAME = "visibility.yaml"

CACHE_BACKENDS = ("memory", "sqlite")


@dataclass
class ObserverConfig:
    """Fixed observation point."""

    name: str = BERMUDA.name
    latitude: float = BERMUDA.latitude
    longitude: float = BERMUDA.longitude

    def to_observation_point(self) -> ObservationPoint:
        return ObservationPoint(
            name=self.name, latitude=float(self.latitude), longitude=float(self.longitude)
        )


@dataclass
class ProviderConfig:
    """External trajectory provider settings."""

    timeout_seconds: float = 12.0
    image_inspection: bool = True
    telemetry_dir: Optional[str] = None
    images_file: Optional[str] = None

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")


@dataclass
class CacheConfig:
    """Cache backend selection."""

    backend: str = "memory"
    path: str = "data/visibility_cache.db"

    def __post_init__(self) -> None:
        if self.backend not in CACHE_BACKENDS:
            raise ValueError(
                f"cache backend must be one of {', '.join(CACHE_BACKENDS)}, got '{self.backend}'"
            )


@dataclass
class FallbackConfig:
    """Baseline answer used when an assessment cannot be computed."""

    direction: str = "Northeast"
    bearing_degrees: float = 45.0

    def __post_init__(self) -> None:
        if TrajectoryDirection.from_text(self.direction) is TrajectoryDirection.UNKNOWN:
            raise ValueError(f"Unknown fallback direction '{self.direction}'")
        if not 0 <= self.bearing_degrees < 360:
            raise ValueError(
                f"bearing_degrees must be in [0, 360), got {self.bearing_degrees}"
            )

    @property
    def trajectory_direction(self) -> TrajectoryDirection:
        return TrajectoryDirection.from_text(self.direction)


@dataclass
class VisibilityConfig:
    """Complete engine configuration."""

    observer: ObserverConfig = field(default_factory=ObserverConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    viewing_bearings: Dict[str, float] = field(default_factory=dict)
    override_rules: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        for direction, bearing in self.viewing_bearings.items():
            if TrajectoryDirection.from_text(direction) is TrajectoryDirection.UNKNOWN:
                raise ValueError(f"Unknown direction '{direction}' in viewing_bearings")
            if not 0 <= float(bearing) < 360:
                raise ValueError(f"Viewing bearing for {direction} out of range: {bearing}")

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "VisibilityConfig":
        raw = raw or {}
        try:
            return cls(
                observer=ObserverConfig(**(raw.get("observer") or {})),
                providers=ProviderConfig(**(raw.get("providers") or {})),
                cache=CacheConfig(**(raw.get("cache") or {})),
                fallback=FallbackConfig(**(raw.get("fallback") or {})),
                viewing_bearings=dict(raw.get("viewing_bearings") or {}),
                override_rules=list(raw.get("override_rules") or []),
            )
        except TypeError as e:
            # Unknown keys in a section
            raise ValueError(f"Invalid configuration: {e}") from e

    def resolved_viewing_bearings(self) -> Dict[TrajectoryDirection, float]:
        return {
            TrajectoryDirection.from_text(name): float(bearing)
            for name, bearing in self.viewing_bearings.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """Locates, loads and validates the YAML configuration."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = (
            config_path or os.environ.get(CONFIG_ENV_VAR) or self._get_default_config_path()
        )
        self.config = VisibilityConfig()
        self._raw_config: Dict[str, Any] = {}

        self.load_config()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path"""
        config_path = Path.cwd() / "config" / DEFAULT_CONFIG_NAME
        if not config_path.exists():
            # Fall back to the project checkout
            project_root = Path(__file__).resolve().parents[2]
            config_path = project_root / "config" / DEFAULT_CONFIG_NAME
        return str(config_path)

    def load_config(self, config_path: Optional[str] = None) -> bool:
        """
        Load configuration from the YAML file.

        Returns:
            True if a file was read, False when defaults are in use

        Raises:
            ValueError: If the file exists but is not valid configuration
        """
        if config_path:
            self.config_path = config_path

        if not os.path.exists(self.config_path):
            logger.warning(f"Configuration file not found: {self.config_path}, using defaults")
            self.config = VisibilityConfig()
            return False

        try:
            with open(self.config_path, "r") as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Cannot parse {self.config_path}: {e}") from e

        if not isinstance(self._raw_config, dict):
            raise ValueError(f"{self.config_path} must contain a mapping at the top level")

        self.config = VisibilityConfig.from_dict(self._raw_config)
        logger.info(
            f"Loaded configuration from {self.config_path} "
            f"(observer {self.config.observer.name}, cache {self.config.cache.backend})"
        )
        return True
