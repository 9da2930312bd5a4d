"""
Metrics package.

Only the model-free primitives are re-exported here; aggregates over
model instances live in src.metrics.aggregates and balance resolution
in src.metrics.balance.
"""

from src.metrics.engine import (
    GoalStage,
    UsageTier,
    classify_usage,
    clamp_percent,
    goal_percent,
    goal_stage,
    ratio_percent,
    remaining_amount,
    round_half_up,
    usage_percent,
)

__all__ = [
    "GoalStage",
    "UsageTier",
    "classify_usage",
    "clamp_percent",
    "goal_percent",
    "goal_stage",
    "ratio_percent",
    "remaining_amount",
    "round_half_up",
    "usage_percent",
]
