"""Tests for budget and goal metrics."""

from datetime import datetime
from decimal import Decimal

import pytest

from src.metrics.aggregates import (
    aggregate_budgets,
    rank_by_usage,
    status_percent,
    summarize_transactions,
)
from src.metrics.balance import resolve_balance
from src.metrics.engine import (
    GoalStage,
    UsageTier,
    classify_usage,
    goal_percent,
    goal_stage,
    remaining_amount,
    round_half_up,
    usage_percent,
)
from src.models.finance import (
    BudgetStatus,
    BudgetUsage,
    Goal,
    MonthlySummary,
    Transaction,
    TransactionKind,
)


def usage(limit, spent, name="Categoria") -> BudgetUsage:
    limit = Decimal(str(limit))
    spent = Decimal(str(spent))
    return BudgetUsage(
        category_name=name,
        limit=limit,
        spent=spent,
        usage_ratio=spent / limit if limit else Decimal("0"),
    )


class TestPrimitives:
    """Tests for rounding, percentages and tiers."""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("12.5"), 13),
        (Decimal("12.4"), 12),
        (Decimal("-12.5"), -12),
        (Decimal("99.5"), 100),
        (0, 0),
    ])
    def test_round_half_up(self, value, expected):
        """Halves round toward positive infinity."""
        assert round_half_up(value) == expected

    def test_usage_percent(self):
        """Usage is rounded and unclamped."""
        assert usage_percent(50, 100) == 50
        assert usage_percent(150, 100) == 150
        assert usage_percent(1, 3) == 33

    @pytest.mark.parametrize("limit", [0, -10])
    def test_usage_percent_without_limit(self, limit):
        """A non-positive limit yields 0, never a division error."""
        assert usage_percent(10, limit) == 0

    @pytest.mark.parametrize("percent,tier", [
        (0, UsageTier.OK),
        (79, UsageTier.OK),
        (80, UsageTier.WARNING),
        (99, UsageTier.WARNING),
        (100, UsageTier.OVER),
        (250, UsageTier.OVER),
    ])
    def test_classify_usage(self, percent, tier):
        """Tier boundaries are inclusive at the lower end."""
        assert classify_usage(percent) is tier

    def test_remaining_never_negative(self):
        """Overspend leaves nothing remaining."""
        assert remaining_amount(100, 150) == Decimal("0")
        assert remaining_amount(100, 40) == Decimal("60")


class TestGoals:
    """Tests for goal progress."""

    def test_goal_percent_clamped(self):
        """A goal is never shown as over-funded."""
        assert goal_percent(1500, 1000) == 100
        assert goal_percent(0, 1000) == 0
        assert goal_percent(10, 0) == 0

    @pytest.mark.parametrize("percent,stage", [
        (0, GoalStage.STARTED),
        (30, GoalStage.STARTED),
        (31, GoalStage.PROGRESSING),
        (60, GoalStage.PROGRESSING),
        (61, GoalStage.ON_TRACK),
        (99, GoalStage.ON_TRACK),
        (100, GoalStage.COMPLETE),
    ])
    def test_goal_stage(self, percent, stage):
        """Stages follow the progress thresholds."""
        assert goal_stage(percent) is stage

    def test_goal_model(self):
        """Goal properties use the clamped percent and non-negative remaining."""
        goal = Goal(name="Reserva", target_amount=Decimal("800"), current_amount=Decimal("1000"))
        assert goal.percent == 100
        assert goal.remaining == Decimal("0")
        assert goal.stage is GoalStage.COMPLETE


class TestBudgetAggregation:
    """Tests for the aggregate budget indicator."""

    def test_sums_before_dividing(self):
        """Totals are divided, not per-category percentages averaged."""
        overview = aggregate_budgets([usage(100, 50), usage(1000, 100)])
        assert overview.total_limit == Decimal("1100")
        assert overview.total_spent == Decimal("150")
        assert overview.raw_percent == 14
        assert overview.percent == 14
        assert overview.tier is UsageTier.OK
        assert overview.budget_count == 2

    def test_overspend_is_clamped_for_the_bar(self):
        """The bar stays at 100 while the raw figure shows overspend."""
        overview = aggregate_budgets([usage(100, 150)])
        assert overview.raw_percent == 150
        assert overview.percent == 100
        assert overview.tier is UsageTier.OVER
        assert overview.remaining == Decimal("0")

    def test_empty(self):
        """No budgets gives a zero overview."""
        overview = aggregate_budgets([])
        assert overview.percent == 0
        assert not overview.has_budgets

    def test_category_percent_unclamped(self):
        """A single category keeps its overspend visible."""
        assert usage(200, 300).percent == 150
        assert usage(200, 300).tier is UsageTier.OVER

    def test_rank_by_usage_is_stable(self):
        """Highest usage first; ties keep input order."""
        a = usage(100, 50, "A")
        b = usage(100, 90, "B")
        c = usage(100, 50, "C")
        assert [u.category_name for u in rank_by_usage([a, b, c])] == ["B", "A", "C"]

    def test_status_percent(self):
        """The status percentage is clamped; totals are a fallback."""
        assert status_percent(BudgetStatus(percent_used=Decimal("123.4"))) == 100
        assert status_percent(BudgetStatus(percent_used=Decimal("42.5"))) == 43
        assert status_percent(BudgetStatus(total_limit=Decimal("200"), total_spent=Decimal("50"))) == 25
        assert status_percent(BudgetStatus()) == 0
        assert status_percent(None) == 0


class TestTotalsAndBalance:
    """Tests for export totals and balance resolution."""

    def test_summarize_transactions(self):
        """Income and expense are summed separately."""
        totals = summarize_transactions([
            Transaction(id=1, amount=Decimal("1000"), kind=TransactionKind.INCOME),
            Transaction(id=2, amount=Decimal("250.50"), kind=TransactionKind.EXPENSE),
            Transaction(id=3, amount=Decimal("49.50"), occurred_at=datetime(2024, 5, 1)),
        ])
        assert totals.count == 3
        assert totals.total_income == Decimal("1000")
        assert totals.total_expense == Decimal("300.00")
        assert totals.balance == Decimal("700.00")

    def test_numeric_balance(self):
        """A bare number is used directly."""
        assert resolve_balance(1500.5) == Decimal("1500.5")

    @pytest.mark.parametrize("raw,expected", [
        ({"saldo": 10}, Decimal("10")),
        ({"saldoAtual": "200"}, Decimal("200")),
        ({"saldo": None, "valor": 30}, Decimal("30")),
        ({"balance": -5}, Decimal("-5")),
        ({"Saldo": 7}, Decimal("7")),
    ])
    def test_balance_field_candidates(self, raw, expected):
        """Balance fields are tried in order."""
        assert resolve_balance(raw) == expected

    def test_zero_balance_uses_summary(self):
        """A zero balance is replaced by income minus expense."""
        summary = MonthlySummary(total_income=Decimal("1000"), total_expense=Decimal("400"))
        assert resolve_balance({"saldo": 0}, summary) == Decimal("600")
        assert resolve_balance(None, summary) == Decimal("600")

    def test_nonzero_balance_ignores_summary(self):
        """A real balance is never overridden."""
        summary = MonthlySummary(total_income=Decimal("1000"), total_expense=Decimal("400"))
        assert resolve_balance({"saldo": 50}, summary) == Decimal("50")

    def test_unresolvable_balance(self):
        """Without data and without a summary the balance is 0."""
        assert resolve_balance(None) == Decimal("0")
        assert resolve_balance("erro") == Decimal("0")
        assert resolve_balance(True) == Decimal("0")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
