"""
Visibility engine facade.

Wires trajectory acquisition, overrides, assessment and caching behind two
coroutines: ``get_trajectory`` and ``assess``. This is the outermost
boundary: nothing below it reaches a caller as an exception.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .acquisition import TrajectoryPipeline
from .assessor import VisibilityAssessor
from .cache import (
    TTL_FINAL_HOURS_S,
    MemoryBackend,
    ProximityCache,
    SqliteBackend,
    ttl_for_launch,
)
from .config import VisibilityConfig
from .models import Launch, TrajectorySource, VisibilityAssessment
from .overrides import (
    DEFAULT_OVERRIDE_RULES,
    OverrideRule,
    apply_overrides,
    rules_fingerprint,
    rules_from_config,
)
from .providers import (
    Capabilities,
    ImageAnalyzer,
    ImageMetadataProvider,
    JsonImageMetadataProvider,
    JsonTelemetryProvider,
    TelemetryProvider,
)
from .trajectory import TrajectoryData

logger = logging.getLogger(__name__)

TRAJECTORY_NAMESPACE = "trajectory"
VISIBILITY_NAMESPACE = "visibility"


class VisibilityEngine:
    """
    Trajectory and visibility service for one observer.

    Args:
        pipeline: Trajectory acquisition pipeline
        assessor: Visibility assessor
        cache: Proximity cache shared by trajectories and assessments
        override_rules: Launch-specific direction overrides, checked in order
        clock: Current UTC time, used for TTL selection
    """

    def __init__(
        self,
        pipeline: TrajectoryPipeline,
        assessor: VisibilityAssessor,
        cache: Optional[ProximityCache] = None,
        override_rules: Sequence[OverrideRule] = DEFAULT_OVERRIDE_RULES,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.pipeline = pipeline
        self.assessor = assessor
        self.cache = cache or ProximityCache(MemoryBackend())
        self.override_rules = tuple(override_rules)
        self._rules_fingerprint = rules_fingerprint(self.override_rules)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _key(self, namespace: str, launch: Launch) -> str:
        fingerprint = launch.fingerprint()
        # Assessments are cached after overrides, so the rule table is part of the key
        if namespace == VISIBILITY_NAMESPACE:
            fingerprint = f"{fingerprint}-{self._rules_fingerprint}"
        return self.cache.make_key(namespace, launch.id, fingerprint)

    def _store(self, namespace: str, launch: Launch, key: str, value: Any, ttl: int) -> None:
        """Cache a value and drop entries for the launch's earlier fingerprints."""
        self.cache.set(key, value, ttl)
        self.cache.prune(f"{namespace}:{launch.id}:", keep=key)

    async def _resolve_trajectory(self, launch: Launch) -> Tuple[TrajectoryData, bool]:
        """Pipeline output before overrides, plus whether it is a stale copy."""
        key = self._key(TRAJECTORY_NAMESPACE, launch)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Trajectory cache hit for {launch.id}")
            return TrajectoryData.from_dict(cached), False

        outcome = await self.pipeline.acquire(launch)
        ttl = ttl_for_launch(launch.net, self._clock())

        if outcome.provider_errors and outcome.used_fallback:
            stale = self.cache.get_stale(key)
            if stale is not None:
                logger.warning(
                    f"Providers failed for {launch.id} "
                    f"({', '.join(r.stage for r in outcome.provider_errors)}); "
                    "serving stale trajectory"
                )
                return TrajectoryData.from_dict(stale), True
            # Retry sooner once providers recover
            ttl = min(ttl, TTL_FINAL_HOURS_S)

        self._store(TRAJECTORY_NAMESPACE, launch, key, outcome.trajectory.to_dict(), ttl)
        return outcome.trajectory, False

    async def get_trajectory(self, launch: Launch) -> TrajectoryData:
        """
        Trajectory for a launch with overrides applied.

        Args:
            launch: Launch to look up

        Returns:
            TrajectoryData; never raises
        """
        try:
            trajectory, _ = await self._resolve_trajectory(launch)
        except Exception as e:
            logger.error(f"Trajectory lookup failed for {launch.id}: {e}", exc_info=True)
            trajectory = await self.pipeline.acquire_trajectory(launch)
        return apply_overrides(launch, trajectory, self.override_rules)

    async def assess(self, launch: Launch) -> VisibilityAssessment:
        """
        Visibility assessment for a launch.

        Args:
            launch: Launch to assess

        Returns:
            VisibilityAssessment; never raises
        """
        key = self._key(VISIBILITY_NAMESPACE, launch)
        try:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Visibility cache hit for {launch.id}")
                return VisibilityAssessment.from_dict(cached)

            trajectory, stale = await self._resolve_trajectory(launch)
            trajectory = apply_overrides(launch, trajectory, self.override_rules)
            assessment = self.assessor.assess(trajectory, launch)
            if stale or trajectory.source is TrajectorySource.NONE:
                assessment = replace(assessment, degraded=True)

            ttl = ttl_for_launch(launch.net, self._clock())
            if assessment.degraded:
                ttl = min(ttl, TTL_FINAL_HOURS_S)
            self._store(VISIBILITY_NAMESPACE, launch, key, assessment.to_dict(), ttl)
        except Exception as e:
            logger.error(f"Visibility assessment failed for {launch.id}: {e}", exc_info=True)
            return self.assessor.baseline()

        logger.info(
            f"{launch.id}: {assessment.likelihood.value} visibility "
            f"({assessment.confidence.value}, {assessment.source.value})"
        )
        return assessment

    async def assess_many(self, launches: Iterable[Launch]) -> List[VisibilityAssessment]:
        """Assess independent launches concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.assess(launch) for launch in launches)))

    def clear_cache(self, launch: Optional[Union[Launch, str]] = None) -> int:
        """
        Drop cached trajectories and assessments.

        Args:
            launch: Launch or launch id to clear entries for; everything when None

        Returns:
            Number of entries removed
        """
        if launch is None:
            return self.cache.clear()
        launch_id = launch.id if isinstance(launch, Launch) else launch
        return sum(
            self.cache.clear(f"{namespace}:{launch_id}:")
            for namespace in (TRAJECTORY_NAMESPACE, VISIBILITY_NAMESPACE)
        )


def create_engine(
    config: Optional[VisibilityConfig] = None,
    telemetry_provider: Optional[TelemetryProvider] = None,
    image_provider: Optional[ImageMetadataProvider] = None,
    image_analyzer: Optional[ImageAnalyzer] = None,
    cache: Optional[ProximityCache] = None,
) -> VisibilityEngine:
    """
    Build an engine from configuration.

    Providers passed in win over the JSON file providers named in the
    configuration.

    Args:
        config: Engine configuration, defaults when omitted
        telemetry_provider: Telemetry source
        image_provider: Trajectory image metadata source
        image_analyzer: Pixel-level image analyzer
        cache: Cache to use instead of the configured backend

    Returns:
        VisibilityEngine
    """
    config = config or VisibilityConfig()
    observer = config.observer.to_observation_point()

    if telemetry_provider is None and config.providers.telemetry_dir:
        telemetry_provider = JsonTelemetryProvider(config.providers.telemetry_dir)
    if image_provider is None and config.providers.images_file:
        image_provider = JsonImageMetadataProvider(config.providers.images_file)

    capabilities = Capabilities.resolve(image_analyzer, config.providers.image_inspection)
    pipeline = TrajectoryPipeline(
        observer=observer,
        telemetry_provider=telemetry_provider,
        image_provider=image_provider,
        image_analyzer=image_analyzer,
        capabilities=capabilities,
        timeout_s=config.providers.timeout_seconds,
    )
    assessor = VisibilityAssessor(
        observer=observer,
        viewing_bearings=config.resolved_viewing_bearings(),
        fallback_direction=config.fallback.trajectory_direction,
        fallback_bearing=config.fallback.bearing_degrees,
    )

    if cache is None:
        if config.cache.backend == "sqlite":
            cache = ProximityCache(SqliteBackend(config.cache.path))
        else:
            cache = ProximityCache(MemoryBackend())

    rules = DEFAULT_OVERRIDE_RULES + tuple(rules_from_config(config.override_rules))

    logger.info(
        f"Engine ready for {observer.name}: telemetry={'yes' if telemetry_provider else 'no'}, "
        f"images={'yes' if image_provider else 'no'}, "
        f"image inspection={'yes' if capabilities.image_inspection else 'no'}, "
        f"{len(rules)} override rules"
    )
    return VisibilityEngine(pipeline, assessor, cache, rules)
