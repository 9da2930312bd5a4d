"""
Budget and Goal Metrics

Pure functions over numeric inputs. Every percentage shown to the user is
produced here so rounding and clamping rules exist in exactly one place.

ROUNDING: percentages round half-up toward positive infinity
(floor(x + 0.5)), so 12.5% shows as 13% and -12.5% as -12%.

CLAMPING:
- Goal percent is always clamped to [0, 100].
- Budget percent for a single category is NOT clamped, so overspend
  (e.g. 150%) stays visible.
- The aggregate budget bar is clamped to [0, 100]; its totals stay raw.

This module must not import the models package (models import from here).
"""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Union

Number = Union[Decimal, int, float]

ZERO = Decimal("0")
HUNDRED = Decimal("100")

WARNING_THRESHOLD = 80
OVER_THRESHOLD = 100


class UsageTier(str, Enum):
    """Budget usage tier, inclusive at the lower bound of each tier."""
    OK = "ok"            # < 80%
    WARNING = "warning"  # 80% - 99%
    OVER = "over"        # >= 100%


class GoalStage(str, Enum):
    """Progress stage of a savings goal."""
    STARTED = "started"          # <= 30%
    PROGRESSING = "progressing"  # <= 60%
    ON_TRACK = "on_track"        # < 100%
    COMPLETE = "complete"        # 100%


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return int((_as_decimal(value) + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def clamp_percent(percent: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, percent))


def ratio_percent(ratio: Number) -> int:
    """Convert a usage fraction (0.42) to a whole percentage (42)."""
    return round_half_up(_as_decimal(ratio) * HUNDRED)


def usage_percent(spent: Number, limit: Number) -> int:
    """
    Percentage of a limit that has been used.

    Returns 0 when the limit is not positive. Unclamped: spending 150
    against a limit of 100 yields 150.
    """
    limit_dec = _as_decimal(limit)
    if limit_dec <= ZERO:
        return 0
    return round_half_up(_as_decimal(spent) / limit_dec * HUNDRED)


def remaining_amount(ceiling: Number, used: Number) -> Decimal:
    """Amount left before reaching a ceiling; never negative."""
    return max(ZERO, _as_decimal(ceiling) - _as_decimal(used))


def classify_usage(percent: int) -> UsageTier:
    if percent >= OVER_THRESHOLD:
        return UsageTier.OVER
    if percent >= WARNING_THRESHOLD:
        return UsageTier.WARNING
    return UsageTier.OK


def goal_percent(current: Number, target: Number) -> int:
    """Funding percentage of a goal, clamped to [0, 100]."""
    return clamp_percent(usage_percent(current, target))


def goal_stage(percent: int) -> GoalStage:
    if percent >= 100:
        return GoalStage.COMPLETE
    if percent > 60:
        return GoalStage.ON_TRACK
    if percent > 30:
        return GoalStage.PROGRESSING
    return GoalStage.STARTED
