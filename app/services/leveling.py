import math
from dataclasses import dataclass

from app.schemas.gamification import LevelConfig, XpRules


@dataclass
class LevelInfo:
    level: int
    xp_progress: int
    xp_needed: int
    xp_percentage: int


@dataclass
class XpAward:
    xp: int
    is_perfect: bool


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def xp_cost_of_level(level: int, level_config: LevelConfig) -> int:
    """XP needed to go from ``level`` to ``level + 1``."""
    return round_half_up(
        level_config.base_xp_per_level * level_config.level_multiplier ** (level - 1)
    )


def calculate_level(total_xp: int, level_config: LevelConfig) -> LevelInfo:
    """Map total XP onto the school's exponential level curve.

    Iteration is bounded by ``max_level``; at the cap ``xp_needed`` is 0 and
    the percentage is reported as 100.
    """
    total_xp = max(total_xp, 0)
    level = 1
    accumulated = 0
    cost = xp_cost_of_level(level, level_config)

    while total_xp >= accumulated + cost and level < level_config.max_level:
        accumulated += cost
        level += 1
        cost = xp_cost_of_level(level, level_config)

    xp_progress = total_xp - accumulated
    xp_needed = 0 if level >= level_config.max_level else cost
    if xp_needed == 0:
        xp_percentage = 100
    else:
        xp_percentage = round_half_up(100 * xp_progress / xp_needed)

    return LevelInfo(
        level=level,
        xp_progress=xp_progress,
        xp_needed=xp_needed,
        xp_percentage=xp_percentage,
    )


def calculate_test_xp(xp_rules: XpRules, score: float, max_score: float) -> XpAward:
    """XP granted for a single graded test at ``score`` out of ``max_score``.

    The score is trusted as already validated by grading.
    """
    is_perfect = max_score > 0 and score == max_score
    xp = xp_rules.test_base_xp + round_half_up(score * xp_rules.test_point_multiplier)
    if is_perfect:
        xp += xp_rules.test_perfect_bonus
    return XpAward(xp=xp, is_perfect=is_perfect)
