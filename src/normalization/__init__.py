"""Response normalization package."""

from src.normalization.normalizer import (
    MalformedResponseError,
    extract_items,
    extract_pagination,
    normalize_budget_analysis,
    normalize_budget_status,
    normalize_budget_usage,
    normalize_categories,
    normalize_goal,
    normalize_goals,
    normalize_insights,
    normalize_recurrences,
    normalize_subscriptions,
    normalize_summary,
    normalize_tag_list,
    normalize_tags,
    normalize_transaction,
    normalize_transactions,
    parse_kind,
    pick,
    to_decimal,
)

__all__ = [
    "MalformedResponseError",
    "extract_items",
    "extract_pagination",
    "normalize_budget_analysis",
    "normalize_budget_status",
    "normalize_budget_usage",
    "normalize_categories",
    "normalize_goal",
    "normalize_goals",
    "normalize_insights",
    "normalize_recurrences",
    "normalize_subscriptions",
    "normalize_summary",
    "normalize_tag_list",
    "normalize_tags",
    "normalize_transaction",
    "normalize_transactions",
    "parse_kind",
    "pick",
    "to_decimal",
]
