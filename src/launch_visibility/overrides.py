"""
Launch-specific trajectory overrides.

Some vehicles have a publicly known trajectory that no generic source gets
right (classified X-37B flights are the standing example). Rules here are
plain data: each names the patterns that select a launch and the direction
to force. Matching rules beat every trajectory source.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Confidence, Launch, TrajectoryDirection
from .trajectory import TrajectoryData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideRule:
    """Force a trajectory direction for launches matching a name pattern."""

    name: str
    mission_patterns: Tuple[str, ...]
    launch_patterns: Tuple[str, ...]
    direction: TrajectoryDirection
    confidence: Confidence = Confidence.CONFIRMED

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "mission_patterns", tuple(p.lower() for p in self.mission_patterns)
        )
        object.__setattr__(
            self, "launch_patterns", tuple(p.lower() for p in self.launch_patterns)
        )
        if not self.mission_patterns and not self.launch_patterns:
            raise ValueError(f"Override rule '{self.name}' has no patterns")
        if self.direction is TrajectoryDirection.UNKNOWN:
            raise ValueError(f"Override rule '{self.name}' cannot force an unknown direction")

    def matches(self, launch: Launch) -> bool:
        mission = (launch.mission_name or "").lower()
        launch_name = (launch.name or "").lower()
        return any(p in mission for p in self.mission_patterns) or any(
            p in launch_name for p in self.launch_patterns
        )


X37B_RULE = OverrideRule(
    name="x-37b",
    mission_patterns=("x-37b", "x37b", "otv-", "otv ", "ussf-36", "ussf 36"),
    launch_patterns=("x-37b", "otv"),
    direction=TrajectoryDirection.NORTHEAST,
)

DEFAULT_OVERRIDE_RULES: Tuple[OverrideRule, ...] = (X37B_RULE,)


def match_override(
    launch: Launch, rules: Sequence[OverrideRule] = DEFAULT_OVERRIDE_RULES
) -> Optional[OverrideRule]:
    """First rule matching the launch, or None."""
    for rule in rules:
        if rule.matches(launch):
            return rule
    return None


def apply_overrides(
    launch: Launch,
    trajectory: TrajectoryData,
    rules: Sequence[OverrideRule] = DEFAULT_OVERRIDE_RULES,
) -> TrajectoryData:
    """
    Apply the first matching override rule to an acquired trajectory.

    Args:
        launch: Launch the trajectory belongs to
        trajectory: Trajectory from the acquisition pipeline
        rules: Override rules, checked in order

    Returns:
        A new TrajectoryData with the forced direction and confidence, or the
        input unchanged when no rule matches
    """
    rule = match_override(launch, rules)
    if rule is None:
        return trajectory

    logger.info(
        f"Override '{rule.name}' applied to {launch.id}: "
        f"{trajectory.trajectory_direction.value} -> {rule.direction.value}"
    )
    return replace(
        trajectory,
        trajectory_direction=rule.direction,
        confidence=rule.confidence,
        notes=trajectory.notes + (f"override: {rule.name}",),
    )


def rules_from_config(entries: Iterable[Mapping[str, Any]]) -> List[OverrideRule]:
    """
    Build override rules from configuration mappings.

    Each entry needs ``name`` and ``direction`` plus at least one of
    ``mission_patterns`` / ``launch_patterns``.

    Raises:
        ValueError: On unknown directions or missing fields
    """
    rules = []
    for entry in entries:
        name = entry.get("name")
        if not name:
            raise ValueError(f"Override rule without a name: {entry}")
        direction = TrajectoryDirection.from_text(entry.get("direction"))
        if direction is TrajectoryDirection.UNKNOWN:
            raise ValueError(
                f"Override rule '{name}' has unknown direction {entry.get('direction')!r}"
            )
        confidence = Confidence(entry.get("confidence", Confidence.CONFIRMED.value))
        rules.append(
            OverrideRule(
                name=name,
                mission_patterns=tuple(entry.get("mission_patterns", ())),
                launch_patterns=tuple(entry.get("launch_patterns", ())),
                direction=direction,
                confidence=confidence,
            )
        )
    return rules


def rules_fingerprint(rules: Sequence[OverrideRule]) -> str:
    """Content hash of a rule table; changes whenever any rule does."""
    material = json.dumps(
        [
            [
                rule.name,
                list(rule.mission_patterns),
                list(rule.launch_patterns),
                rule.direction.value,
                rule.confidence.value,
            ]
            for rule in rules
        ]
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:8]
