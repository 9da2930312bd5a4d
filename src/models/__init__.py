"""
Data Models Package

This package contains all Pydantic models used by the finance client.
Server payloads are normalized into the finance models; write operations
go out through the payload models.
"""

from src.models.finance import (
    BudgetAnalysis,
    BudgetAverages,
    BudgetOverview,
    BudgetStatus,
    BudgetUsage,
    Category,
    DistributionItem,
    ExpenseDistribution,
    Goal,
    MonthlySummary,
    PaginationMeta,
    PaginationQuery,
    Recurrence,
    Subscription,
    Tag,
    Transaction,
    TransactionKind,
    TransactionPage,
    TransactionQuery,
    TransactionTotals,
)
from src.models.payloads import (
    AccountPayload,
    BudgetPayload,
    ContributionPayload,
    GoalPayload,
    RecurrencePayload,
    SubscriptionPayload,
    TagLinkPayload,
    TagPayload,
    TransactionPayload,
)

__all__ = [
    # Finance models
    "BudgetAnalysis",
    "BudgetAverages",
    "BudgetOverview",
    "BudgetStatus",
    "BudgetUsage",
    "Category",
    "DistributionItem",
    "ExpenseDistribution",
    "Goal",
    "MonthlySummary",
    "PaginationMeta",
    "PaginationQuery",
    "Recurrence",
    "Subscription",
    "Tag",
    "Transaction",
    "TransactionKind",
    "TransactionPage",
    "TransactionQuery",
    "TransactionTotals",
    # Payloads
    "AccountPayload",
    "BudgetPayload",
    "ContributionPayload",
    "GoalPayload",
    "RecurrencePayload",
    "SubscriptionPayload",
    "TagLinkPayload",
    "TagPayload",
    "TransactionPayload",
]
