"""
Aggregate Metrics over Normalized Models

Builds the dashboard-level figures (aggregate budget bar, usage ranking,
export totals) from already-normalized models.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from src.metrics.engine import (
    ZERO,
    clamp_percent,
    classify_usage,
    round_half_up,
    usage_percent,
)
from src.models.finance import (
    BudgetOverview,
    BudgetStatus,
    BudgetUsage,
    Transaction,
    TransactionTotals,
)


def aggregate_budgets(usages: Sequence[BudgetUsage]) -> BudgetOverview:
    """
    Combine category budgets into one overview.

    Limits and spending are summed independently and only then divided:
    budgets (100, 50) and (1000, 100) give 150 / 1100 = 14%, not the
    average of 50% and 10%.

    The tier is computed from the unclamped percentage; only the bar
    percentage is clamped to [0, 100].
    """
    if not usages:
        return BudgetOverview()

    total_limit = sum((u.limit for u in usages), ZERO)
    total_spent = sum((u.spent for u in usages), ZERO)
    raw_percent = usage_percent(total_spent, total_limit)

    return BudgetOverview(
        total_limit=total_limit,
        total_spent=total_spent,
        raw_percent=raw_percent,
        percent=clamp_percent(raw_percent),
        tier=classify_usage(raw_percent),
        budget_count=len(usages),
    )


def rank_by_usage(usages: Iterable[BudgetUsage]) -> list[BudgetUsage]:
    """Order budgets by usage percent, highest first. Ties keep input order."""
    return sorted(usages, key=lambda u: u.percent, reverse=True)


def status_percent(status: Optional[BudgetStatus]) -> int:
    """
    Whole, clamped percentage from the budget status endpoint.

    Prefers the server's percentage; otherwise derives it from the
    reported totals. Missing data yields 0.
    """
    if status is None:
        return 0
    if status.percent_used is not None:
        return clamp_percent(round_half_up(status.percent_used))
    if status.total_limit is not None and status.total_spent is not None:
        return clamp_percent(usage_percent(status.total_spent, status.total_limit))
    return 0


def summarize_transactions(transactions: Iterable[Transaction]) -> TransactionTotals:
    """Count and sum income and expense over a sequence of transactions."""
    count = 0
    total_income = Decimal("0")
    total_expense = Decimal("0")

    for transaction in transactions:
        count += 1
        if transaction.is_income:
            total_income += transaction.amount
        else:
            total_expense += transaction.amount

    return TransactionTotals(
        count=count,
        total_income=total_income,
        total_expense=total_expense,
    )
