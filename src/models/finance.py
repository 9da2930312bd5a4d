"""
Canonical Finance Models

Every server payload is normalized into these models before any view,
metric or export touches it. They are designed to:
1. Give downstream code one field name per concept, whatever the server sent
2. Guarantee well-defined arithmetic (amounts are Decimal, never None/NaN)
3. Carry derived metrics as properties so rounding rules stay centralized

DESIGN DECISION: These models hold already-normalized data. Tolerant
parsing lives in src.normalization; the models only enforce invariants
(non-negative amounts, month range) that the normalizer guarantees.

All entities are transient: they live for the duration of a view or query.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.config.settings import get_settings
from src.metrics.engine import (
    GoalStage,
    UsageTier,
    classify_usage,
    goal_percent,
    goal_stage,
    ratio_percent,
    remaining_amount,
)


DEFAULT_CATEGORY_NAME = "Outros"
DEFAULT_BUDGET_CATEGORY_NAME = "Categoria"
DEFAULT_DESCRIPTION = "Sem descrição"


def default_currency() -> str:
    """Currency assumed when a payload omits it."""
    return get_settings().account.default_currency


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    The API encodes kinds as integers: 1 = income (entrada), 2 = expense (saída).
    """
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def api_code(self) -> int:
        return 1 if self is TransactionKind.INCOME else 2

    @property
    def label(self) -> str:
        return "Entrada" if self is TransactionKind.INCOME else "Saída"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger movement.

    `amount` is always a non-negative magnitude; the sign is implied by `kind`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        default=0,
        description="Server-assigned id (0 when the payload carried none)"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Non-negative magnitude"
    )
    kind: TransactionKind = TransactionKind.EXPENSE
    description: str = Field(
        default=DEFAULT_DESCRIPTION,
        min_length=1,
    )
    category_id: Optional[int] = None
    category_name: str = Field(default=DEFAULT_CATEGORY_NAME, min_length=1)
    tags: list[str] = Field(default_factory=list)
    occurred_at: Optional[datetime] = Field(
        default=None,
        description="When the transaction happened (None if unparseable)"
    )
    currency: str = Field(default_factory=default_currency)

    @property
    def is_income(self) -> bool:
        return self.kind is TransactionKind.INCOME

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_income else -self.amount


class TransactionTotals(BaseModel):
    """Aggregate totals over a sequence of transactions (export header)."""

    count: int = Field(default=0, ge=0)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


# =============================================================================
# SUMMARY
# =============================================================================

class MonthlySummary(BaseModel):
    """
    Income/expense totals of one account for one month.

    Recomputed on every period change; never cached across views.
    """

    account_id: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = None
    total_income: Decimal = Field(default=Decimal("0"), ge=0)
    total_expense: Decimal = Field(default=Decimal("0"), ge=0)

    month_balance: Decimal = Decimal("0")
    recurring_income: Decimal = Decimal("0")
    recurring_expense: Decimal = Decimal("0")
    subscriptions_expense: Decimal = Decimal("0")
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    currency: str = Field(default_factory=default_currency)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetUsage(BaseModel):
    """
    Spending against one category budget.

    `percent` is deliberately unclamped so overspend stays visible.
    """

    budget_id: Optional[int] = None
    category_id: Optional[int] = None
    category_name: str = DEFAULT_BUDGET_CATEGORY_NAME
    limit: Decimal = Field(default=Decimal("0"), ge=0)
    spent: Decimal = Field(default=Decimal("0"), ge=0)
    usage_ratio: Decimal = Field(
        default=Decimal("0"),
        description="Fraction of the limit used (source-provided or spent/limit)"
    )

    @property
    def percent(self) -> int:
        return ratio_percent(self.usage_ratio)

    @property
    def remaining(self) -> Decimal:
        return remaining_amount(self.limit, self.spent)

    @property
    def tier(self) -> UsageTier:
        return classify_usage(self.percent)


class BudgetOverview(BaseModel):
    """
    Aggregate budget indicator across all categories.

    Limits and spending are summed independently and then divided, so
    categories with small limits do not dominate the figure.
    """

    total_limit: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    raw_percent: int = Field(default=0, description="Unclamped percentage")
    percent: int = Field(default=0, ge=0, le=100, description="Clamped for bar width")
    tier: UsageTier = UsageTier.OK
    budget_count: int = Field(default=0, ge=0)

    @property
    def has_budgets(self) -> bool:
        return self.budget_count > 0

    @property
    def remaining(self) -> Decimal:
        return remaining_amount(self.total_limit, self.total_spent)


class BudgetAverages(BaseModel):
    """Historical averages reported by the budget analysis endpoint."""

    average_limit: Decimal = Decimal("0")
    average_spent: Decimal = Decimal("0")
    average_usage_ratio: Decimal = Decimal("0")


class DistributionItem(BaseModel):
    """One category slice of the monthly expense distribution."""

    category_id: Optional[int] = None
    category_name: str = DEFAULT_BUDGET_CATEGORY_NAME
    total: Decimal = Decimal("0")
    percent: Decimal = Decimal("0")


class ExpenseDistribution(BaseModel):
    total_expense: Decimal = Decimal("0")
    items: list[DistributionItem] = Field(default_factory=list)


class BudgetAnalysis(BaseModel):
    """Normalized response of the budget analysis endpoint."""

    averages: BudgetAverages = Field(default_factory=BudgetAverages)
    usages: list[BudgetUsage] = Field(default_factory=list)
    distribution: ExpenseDistribution = Field(default_factory=ExpenseDistribution)


class BudgetStatus(BaseModel):
    """Normalized response of the budget status endpoint."""

    percent_used: Optional[Decimal] = None
    total_limit: Optional[Decimal] = None
    total_spent: Optional[Decimal] = None


# =============================================================================
# GOALS
# =============================================================================

class Goal(BaseModel):
    """
    A savings target with its current progress.

    `percent` is clamped to [0, 100]: a goal is never shown as over-funded.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = 0
    name: str = ""
    target_amount: Decimal = Decimal("0")
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None

    @property
    def percent(self) -> int:
        return goal_percent(self.current_amount, self.target_amount)

    @property
    def remaining(self) -> Decimal:
        return remaining_amount(self.target_amount, self.current_amount)

    @property
    def stage(self) -> GoalStage:
        return goal_stage(self.percent)


# =============================================================================
# RECURRING CHARGES, TAGS, CATEGORIES
# =============================================================================

class Recurrence(BaseModel):
    """A template that periodically generates transactions."""

    id: int = 0
    kind: TransactionKind = TransactionKind.EXPENSE
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    description: str = DEFAULT_DESCRIPTION
    category_id: Optional[int] = None
    frequency: str = "Mensal"
    start_date: Optional[datetime] = None
    next_run: Optional[datetime] = None
    active: bool = True
    currency: str = Field(default_factory=default_currency)


class Subscription(BaseModel):
    """A recurring outgoing charge, modeled apart from generic recurrences."""

    id: int = 0
    name: str = ""
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    category_id: Optional[int] = None
    frequency: str = "Mensal"
    start_date: Optional[datetime] = None
    next_charge: Optional[datetime] = None
    active: bool = True
    currency: str = Field(default_factory=default_currency)


class Tag(BaseModel):
    id: int = 0
    name: str = ""


class Category(BaseModel):
    id: int = 0
    name: str = ""


# =============================================================================
# PAGINATION
# =============================================================================

class PaginationQuery(BaseModel):
    """
    Outgoing paging descriptor carrying both conventions.

    Servers honoring page/pageSize and servers honoring limit/offset
    must both behave correctly, so every derivable field is populated.
    """

    page: Optional[int] = None
    page_size: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


class PaginationMeta(BaseModel):
    """Inbound pagination metadata; every field is optional."""

    total_items: Optional[int] = None
    total_pages: Optional[int] = None
    has_next: Optional[bool] = None


class TransactionQuery(BaseModel):
    """Filters and paging inputs for the transaction listing endpoint."""

    account_id: Optional[int] = None
    page: Optional[int] = None
    page_size: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    kind: Optional[TransactionKind] = None
    category_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    description: Optional[str] = None


class TransactionPage(BaseModel):
    """One normalized page of the transaction listing."""

    items: list[Transaction] = Field(default_factory=list)
    meta: PaginationMeta = Field(default_factory=PaginationMeta)
    has_next: bool = False
    requested_page_size: Optional[int] = None
