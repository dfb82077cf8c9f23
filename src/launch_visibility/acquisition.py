"""
Trajectory acquisition pipeline.

Tries trajectory sources in priority order and stops at the first usable
result:

1. Telemetry provider (confirmed)
2. Trajectory image metadata: stated direction hint, pixel analysis when the
   environment supports it, otherwise the image-name heuristic (projected)
3. Mission-archetype synthesis (estimated); pure computation, cannot fail

Each stage returns a StageResult instead of raising, so the fallback order
is just a list and can be tested stage by stage.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .errors import (
    CoordinateUnavailable,
    DataUnavailable,
    MalformedResponse,
    ProviderTimeout,
    TrajectoryError,
)
from .geodesy import BERMUDA, ObservationPoint
from .image_hints import direction_from_image_text
from .mission_profiles import OrbitProfile, classify_mission, match_known_mission
from .models import Confidence, Launch, TrajectoryDirection, TrajectorySource
from .providers import Capabilities, ImageAnalyzer, ImageMetadataProvider, TelemetryProvider
from .schemas import TelemetryFrame, TrajectoryImage
from .synthesizer import azimuth_for_launch, synthesize_for_launch
from .trajectory import (
    TrajectoryData,
    azimuth_to_direction,
    build_points,
    direction_to_azimuth,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_S = 12.0

# Nothing on an ascent trajectory moves faster than escape velocity
MAX_PLAUSIBLE_SPEED_MS = 11500.0

# Ground tracks read off trajectory images carry no altitude
IMAGE_TRACK_ALTITUDE_M = 150000.0
IMAGE_TRACK_STEP_S = 30.0


@dataclass(frozen=True)
class StageResult:
    """Outcome of one pipeline stage."""

    stage: str
    trajectory: Optional[TrajectoryData] = None
    error: Optional[TrajectoryError] = None
    provider_error: bool = False  # failed, as opposed to "nothing found"

    @property
    def ok(self) -> bool:
        return self.trajectory is not None


@dataclass(frozen=True)
class AcquisitionOutcome:
    """Final trajectory plus the record of every stage tried."""

    trajectory: TrajectoryData
    attempts: Tuple[StageResult, ...] = field(default_factory=tuple)

    @property
    def provider_errors(self) -> List[StageResult]:
        return [a for a in self.attempts if a.provider_error]

    @property
    def used_fallback(self) -> bool:
        return self.trajectory.confidence is Confidence.ESTIMATED


def validate_telemetry(
    frames: Sequence[Any], profile: OrbitProfile
) -> List[TelemetryFrame]:
    """
    Validate raw telemetry frames and check they are physically plausible.

    Args:
        frames: Raw frame mappings from the provider
        profile: Mission archetype the flight should match

    Returns:
        Validated frames ordered by time

    Raises:
        MalformedResponse: On schema errors or implausible altitude/speed
    """
    try:
        validated = [TelemetryFrame.model_validate(frame) for frame in frames]
    except ValidationError as e:
        raise MalformedResponse(f"Invalid telemetry frame: {e}", stage="telemetry") from e

    validated.sort(key=lambda f: f.time)

    max_altitude_km = max(f.altitude_meters for f in validated) / 1000.0
    if max_altitude_km < profile.min_plausible_apogee_km:
        raise MalformedResponse(
            f"Telemetry peaks at {max_altitude_km:.1f} km, below the "
            f"{profile.min_plausible_apogee_km:.0f} km expected for a {profile.key} mission",
            stage="telemetry",
        )

    max_speed = max(f.speed for f in validated)
    if max_speed > MAX_PLAUSIBLE_SPEED_MS:
        raise MalformedResponse(
            f"Telemetry speed {max_speed:.0f} m/s is not plausible for an ascent",
            stage="telemetry",
        )

    return validated


class Stage:
    """Base class for pipeline stages."""

    name = "stage"

    def __init__(self, pipeline: "TrajectoryPipeline") -> None:
        self.pipeline = pipeline

    async def attempt(self, launch: Launch) -> TrajectoryData:
        raise NotImplementedError

    async def run(self, launch: Launch) -> StageResult:
        try:
            trajectory = await self.attempt(launch)
            return StageResult(stage=self.name, trajectory=trajectory)
        except ProviderTimeout as e:
            logger.warning(f"[{self.name}] {launch.id}: {e}")
            return StageResult(stage=self.name, error=e, provider_error=True)
        except MalformedResponse as e:
            logger.warning(f"[{self.name}] {launch.id}: discarding data: {e}")
            return StageResult(stage=self.name, error=e, provider_error=True)
        except TrajectoryError as e:
            logger.info(f"[{self.name}] {launch.id}: {e}")
            return StageResult(stage=self.name, error=e)
        except Exception as e:
            logger.warning(f"[{self.name}] {launch.id}: provider failure: {e}")
            error = DataUnavailable(f"{type(e).__name__}: {e}", stage=self.name)
            error.__cause__ = e
            return StageResult(stage=self.name, error=error, provider_error=True)


class TelemetryStage(Stage):
    name = "telemetry"

    async def attempt(self, launch: Launch) -> TrajectoryData:
        provider = self.pipeline.telemetry_provider
        if provider is None:
            raise DataUnavailable("No telemetry provider configured", stage=self.name)

        mission_ref = launch.resolved_mission_ref
        frames = await self.pipeline.call_provider(
            provider.fetch_telemetry(mission_ref), self.name
        )
        if not frames:
            raise DataUnavailable(f"No telemetry for {mission_ref}", stage=self.name)

        validated = validate_telemetry(frames, classify_mission(launch))
        points = build_points(
            ((f.time, f.lat, f.lng, f.altitude_meters) for f in validated),
            self.pipeline.observer,
        )
        logger.info(
            f"[{self.name}] {launch.id}: {len(points)} telemetry points, "
            f"{sum(1 for p in points if p.visible)} visible"
        )
        return TrajectoryData.create(
            launch.id,
            TrajectorySource.TELEMETRY,
            points,
            Confidence.CONFIRMED,
            mission_ref=mission_ref,
        )


class ImageStage(Stage):
    name = "image"

    async def attempt(self, launch: Launch) -> TrajectoryData:
        provider = self.pipeline.image_provider
        if provider is None:
            raise DataUnavailable("No image provider configured", stage=self.name)

        payload = await self.pipeline.call_provider(
            provider.fetch_trajectory_image(launch), self.name
        )
        if not payload:
            raise DataUnavailable(f"No trajectory image for {launch.id}", stage=self.name)
        try:
            image = TrajectoryImage.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponse(f"Invalid image metadata: {e}", stage=self.name) from e

        hint = TrajectoryDirection.from_text(image.direction_hint)
        if hint is not TrajectoryDirection.UNKNOWN:
            return self._along_direction(launch, hint, image.image_ref, "stated direction hint")

        if self.pipeline.capabilities.image_inspection:
            analyzed = await self._inspect(launch, image.image_ref)
            if analyzed is not None:
                return analyzed

        direction = direction_from_image_text(image.image_ref, launch.mission_name)
        if direction is TrajectoryDirection.UNKNOWN:
            raise DataUnavailable(
                f"Image {image.image_ref} gives no trajectory direction", stage=self.name
            )
        return self._along_direction(launch, direction, image.image_ref, "image name")

    async def _inspect(self, launch: Launch, image_ref: str) -> Optional[TrajectoryData]:
        analyzer = self.pipeline.image_analyzer
        try:
            track = await self.pipeline.call_provider(
                analyzer.analyze(image_ref, launch), self.name
            )
        except Exception as e:
            logger.warning(f"[{self.name}] Image analysis failed for {image_ref}: {e}")
            return None

        if not track:
            return None
        points = build_points(
            (
                (i * IMAGE_TRACK_STEP_S, lat, lng, IMAGE_TRACK_ALTITUDE_M)
                for i, (lat, lng) in enumerate(track)
            ),
            self.pipeline.observer,
        )
        return TrajectoryData.create(
            launch.id,
            TrajectorySource.IMAGE_ANALYSIS,
            points,
            Confidence.PROJECTED,
            image_ref=image_ref,
            notes=("analyzed trajectory image",),
        )

    def _along_direction(
        self,
        launch: Launch,
        direction: TrajectoryDirection,
        image_ref: str,
        basis: str,
    ) -> TrajectoryData:
        notes = [f"direction from {basis}"]
        try:
            points = synthesize_for_launch(
                launch, self.pipeline.observer, direction_to_azimuth(direction)
            )
        except CoordinateUnavailable:
            points = []
            notes.append("pad coordinates unavailable")
        logger.info(f"[{self.name}] {launch.id}: {direction.value} trajectory from {basis}")
        return TrajectoryData.create(
            launch.id,
            TrajectorySource.IMAGE_ANALYSIS,
            points,
            Confidence.PROJECTED,
            direction=direction,
            image_ref=image_ref,
            notes=tuple(notes),
        )


class OrbitalMechanicsStage(Stage):
    """Terminal stage: known mission or archetype -> azimuth -> synthesized track."""

    name = "orbital_mechanics"

    async def attempt(self, launch: Launch) -> TrajectoryData:
        return self.generate(launch)

    def generate(self, launch: Launch) -> TrajectoryData:
        known = match_known_mission(launch)
        if known is not None:
            azimuth = known.azimuth_deg
            direction = known.direction
            notes = [f"known mission {known.key}"]
        else:
            profile = classify_mission(launch)
            azimuth = azimuth_for_launch(launch, profile)
            direction = azimuth_to_direction(azimuth)
            notes = [f"{profile.key} profile, {profile.inclination_deg:g}° inclination"]

        try:
            points = synthesize_for_launch(launch, self.pipeline.observer, azimuth)
        except CoordinateUnavailable:
            points = []
            notes.append("pad coordinates unavailable")

        return TrajectoryData.create(
            launch.id,
            self.pipeline.fallback_source,
            points,
            Confidence.ESTIMATED,
            direction=direction,
            notes=tuple(notes),
        )


async def first_success(
    stages: Sequence[Stage], launch: Launch
) -> Tuple[Optional[TrajectoryData], List[StageResult]]:
    """Run stages in order, stopping at the first that produces a trajectory."""
    results: List[StageResult] = []
    for stage in stages:
        result = await stage.run(launch)
        results.append(result)
        if result.ok:
            return result.trajectory, results
    return None, results


class TrajectoryPipeline:
    """
    Ordered trajectory acquisition with a guaranteed result.

    Args:
        observer: Observation point distances and bearings are measured from
        telemetry_provider: Optional telemetry source
        image_provider: Optional trajectory image metadata source
        image_analyzer: Optional pixel-level image analyzer
        capabilities: Environment capabilities; resolved from the analyzer if omitted
        timeout_s: Bound on every provider call
    """

    def __init__(
        self,
        observer: ObservationPoint = BERMUDA,
        telemetry_provider: Optional[TelemetryProvider] = None,
        image_provider: Optional[ImageMetadataProvider] = None,
        image_analyzer: Optional[ImageAnalyzer] = None,
        capabilities: Optional[Capabilities] = None,
        timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {timeout_s}")
        self.observer = observer
        self.telemetry_provider = telemetry_provider
        self.image_provider = image_provider
        self.image_analyzer = image_analyzer
        self.capabilities = capabilities or Capabilities.resolve(image_analyzer)
        if self.capabilities.image_inspection and image_analyzer is None:
            raise ValueError("image_inspection capability requires an image_analyzer")
        self.timeout_s = timeout_s
        self.terminal = OrbitalMechanicsStage(self)
        self.stages: List[Stage] = [TelemetryStage(self), ImageStage(self), self.terminal]

    @property
    def fallback_source(self) -> TrajectorySource:
        # With external providers configured, reaching the last stage means
        # they all came up empty
        if self.telemetry_provider is None and self.image_provider is None:
            return TrajectorySource.ORBITAL_MECHANICS
        return TrajectorySource.NONE

    async def call_provider(self, awaitable: Awaitable[Any], stage: str) -> Any:
        """Await a provider call within the configured time bound."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(
                f"Provider did not answer within {self.timeout_s:g}s", stage=stage
            ) from e

    async def acquire(self, launch: Launch) -> AcquisitionOutcome:
        """
        Acquire a trajectory for a launch. Never raises.

        Args:
            launch: Launch to acquire a trajectory for

        Returns:
            AcquisitionOutcome with the first usable trajectory
        """
        logger.info(f"Acquiring trajectory for {launch.id} ({launch.name})")
        trajectory, results = await first_success(self.stages, launch)

        if trajectory is None:
            logger.error(f"All trajectory stages failed for {launch.id}")
            trajectory = TrajectoryData.create(
                launch.id,
                self.fallback_source,
                [],
                Confidence.ESTIMATED,
                direction=TrajectoryDirection.UNKNOWN,
                notes=("trajectory generation failed",),
            )

        logger.info(
            f"Trajectory for {launch.id}: {trajectory.source.value} source, "
            f"{trajectory.confidence.value} confidence, {len(trajectory.points)} points, "
            f"direction {trajectory.trajectory_direction.value}"
        )
        return AcquisitionOutcome(trajectory=trajectory, attempts=tuple(results))

    async def acquire_trajectory(self, launch: Launch) -> TrajectoryData:
        """Trajectory only, without the per-stage attempt record."""
        return (await self.acquire(launch)).trajectory
