"""Query building package: paging reconciliation and account scoping."""

from src.queries.account import ActiveAccountResolver
from src.queries.pagination import build_transaction_params, has_more, reconcile

__all__ = [
    "ActiveAccountResolver",
    "build_transaction_params",
    "has_more",
    "reconcile",
]
