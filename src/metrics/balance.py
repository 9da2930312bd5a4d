"""
Current Balance Resolution

The balance endpoint answers either with a bare number or with an object
whose field name varies between deployments. When it reports 0 (often
meaning "not computed") and the monthly summary is available, the
summary's income minus expense is shown instead.
"""

from decimal import Decimal
from typing import Any, Optional

from src.config.log import get_logger
from src.models.finance import MonthlySummary
from src.normalization.normalizer import pick, to_decimal


logger = get_logger(__name__)

BALANCE_KEYS = ("saldo", "saldoAtual", "valor", "balance", "Saldo")


def resolve_balance(raw: Any, summary: Optional[MonthlySummary] = None) -> Decimal:
    """
    Resolve the current balance from a raw response.

    Order: numeric body -> first present balance field -> summary fallback
    when the resolved value is 0 -> 0.
    """
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        balance = to_decimal(raw)
    else:
        balance = to_decimal(pick(raw, BALANCE_KEYS))

    if balance == 0 and summary is not None:
        logger.debug(
            "balance_from_summary",
            total_income=str(summary.total_income),
            total_expense=str(summary.total_expense),
        )
        return summary.balance

    return balance
