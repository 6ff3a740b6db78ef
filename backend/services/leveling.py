"""
Pure XP, level and streak rules.

Nothing here touches the database so the rules can be reused by the
services, the seed script and the tests.
"""

from datetime import date, timedelta
from typing import Optional, Tuple

from utils.constants import (
    LEVEL_THRESHOLDS,
    LEVEL_INCREMENT,
    XP_REWARDS,
)

_LAST_TABLE_LEVEL = max(LEVEL_THRESHOLDS)


def xp_threshold(level: int) -> int:
    """Experience at which `level` starts."""
    if level < 1:
        raise ValueError(f"Invalid level: {level}")
    if level in LEVEL_THRESHOLDS:
        return LEVEL_THRESHOLDS[level]
    return LEVEL_THRESHOLDS[_LAST_TABLE_LEVEL] + (level - _LAST_TABLE_LEVEL) * LEVEL_INCREMENT


def derive_level(experience: int) -> int:
    if experience < 0:
        raise ValueError(f"Experience cannot be negative: {experience}")

    top = LEVEL_THRESHOLDS[_LAST_TABLE_LEVEL]
    if experience >= top:
        return _LAST_TABLE_LEVEL + (experience - top) // LEVEL_INCREMENT

    level = 1
    for candidate, threshold in sorted(LEVEL_THRESHOLDS.items()):
        if experience >= threshold:
            level = candidate
    return level


def xp_for_next_level(experience: int, level: int) -> int:
    """XP still missing before `level + 1`."""
    return xp_threshold(level + 1) - experience


def video_xp(percent: int) -> int:
    """1 XP per 10% watched, capped."""
    return min(percent // XP_REWARDS['video_tier_step'], XP_REWARDS['video_tier_cap'])


def next_streak(current: int, longest: int, last_active: Optional[date], today: date) -> Tuple[int, int]:
    """Roll a daily streak forward to `today`. Returns (current, longest)."""
    if last_active is None:
        return 1, max(longest, 1)
    if last_active == today:
        return current, longest
    if last_active == today - timedelta(days=1):
        current += 1
        return current, max(current, longest)
    # Gap of two or more days
    return 1, longest
