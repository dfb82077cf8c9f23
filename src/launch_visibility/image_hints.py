"""
Direction hints from trajectory image references.

When the image itself cannot be inspected, the file name and the mission
name usually still say which way the rocket goes (``..._NE_trajectory.png``,
``rtls``, ``starlink-group-6``).
"""

import logging
import re
from typing import Optional, Tuple

from .models import TrajectoryDirection

logger = logging.getLogger(__name__)

# Explicit direction markers, checked in order. Short tokens need separators
# so "se" inside "ussf" or "ne" inside "launch" never match.
_DIRECTION_PATTERNS: Tuple[Tuple[TrajectoryDirection, re.Pattern], ...] = (
    (
        TrajectoryDirection.NORTHEAST,
        re.compile(r"north[-_ ]?east|(?:^|[-_./])ne(?:[-_.]|$)|rtls"),
    ),
    (
        TrajectoryDirection.SOUTHEAST,
        re.compile(r"south[-_ ]?east|(?:^|[-_./])s?se(?:[-_.]|$)"),
    ),
    (
        TrajectoryDirection.EAST,
        re.compile(r"due[-_ ]?east|(?:^|[-_./])e(?:[-_.]|$)"),
    ),
)

# Mission-type keywords, used when the name carries no explicit direction
_MISSION_PATTERNS: Tuple[Tuple[TrajectoryDirection, re.Pattern], ...] = (
    (TrajectoryDirection.SOUTHEAST, re.compile(r"\bgto\b|\bgeo\b|geosynchronous|geostationary")),
    (TrajectoryDirection.NORTHEAST, re.compile(r"\biss\b|crew|dragon|cygnus")),
    (TrajectoryDirection.NORTHEAST, re.compile(r"starlink")),
)


def _bare_direction(text: str) -> Optional[TrajectoryDirection]:
    # "northwest" and "southwest" have no east-coast counterpart
    if "west" in text:
        return None
    has_north = "north" in text
    has_south = "south" in text
    has_east = "east" in text
    if has_north and not has_east:
        return TrajectoryDirection.NORTHEAST
    if has_south and not has_east:
        return TrajectoryDirection.SOUTHEAST
    if has_east and not has_north and not has_south:
        return TrajectoryDirection.EAST
    return None


def direction_from_image_text(
    image_ref: Optional[str], mission_name: Optional[str] = None
) -> TrajectoryDirection:
    """
    Infer a trajectory direction from an image reference and mission name.

    Args:
        image_ref: Image URL or file name
        mission_name: Free-text mission name

    Returns:
        TrajectoryDirection, UNKNOWN when nothing matched
    """
    ref = (image_ref or "").lower()
    filename = ref.rstrip("/").split("/")[-1]

    for direction, pattern in _DIRECTION_PATTERNS:
        if pattern.search(filename):
            logger.debug(f"Image name '{filename}' indicates {direction.value}")
            return direction

    bare = _bare_direction(filename)
    if bare is not None:
        return bare

    mission = (mission_name or "").lower()
    for direction, pattern in _MISSION_PATTERNS:
        if pattern.search(filename) or pattern.search(mission):
            logger.debug(
                f"Mission keywords in '{filename}' / '{mission_name}' suggest {direction.value}"
            )
            return direction

    return TrajectoryDirection.UNKNOWN
