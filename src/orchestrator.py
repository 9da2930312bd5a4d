"""
Main Orchestrator for the Finance Client

This module ties together the API client, normalization and metrics,
and defines the end-to-end flows behind each view:
1. Overview (summary, budgets, recent transactions, balance, insights)
2. Transaction listing and management
3. Budgets
4. Goals

DESIGN DECISION: The orchestrator enforces the boundaries:
- Independent overview queries never block each other: each failure is
  logged and replaced by its default
- Primary actions (loads of a management view, create/update/delete)
  surface failures with a short user-facing message
- Only the most recent refresh may update what is shown (last request wins)
"""

import asyncio
import calendar
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Iterable, Optional, TypeVar

from pydantic import BaseModel, Field

from src.config.log import get_logger
from src.metrics.aggregates import aggregate_budgets, rank_by_usage, status_percent
from src.metrics.balance import resolve_balance
from src.models.finance import (
    BudgetOverview,
    BudgetStatus,
    BudgetUsage,
    Goal,
    MonthlySummary,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from src.models.payloads import (
    BudgetPayload,
    ContributionPayload,
    GoalPayload,
    TagLinkPayload,
    TransactionPayload,
)
from src.services.api import FinanceApi
from src.services.transport.interface import RequestFailedError


logger = get_logger(__name__)

T = TypeVar("T")

RECENT_TRANSACTIONS_LIMIT = 10
BUDGET_ANALYSIS_MONTHS = 1
INSIGHTS_HISTORY_MONTHS = 12

SUMMARY_FAILED_MESSAGE = "Não foi possível carregar o resumo mensal."
TRANSACTIONS_FAILED_MESSAGE = "Não foi possível carregar as transações."
TRANSACTION_SAVE_FAILED_MESSAGE = "Não foi possível salvar a transação."
TRANSACTION_DELETE_FAILED_MESSAGE = "Não foi possível excluir a transação."
BUDGETS_FAILED_MESSAGE = "Falha ao carregar orçamentos."
BUDGET_SAVE_FAILED_MESSAGE = "Não foi possível salvar o orçamento."
BUDGET_DELETE_FAILED_MESSAGE = "Não foi possível excluir o orçamento."
GOALS_FAILED_MESSAGE = "Falha ao carregar metas."
GOAL_SAVE_FAILED_MESSAGE = "Não foi possível salvar a meta."
GOAL_DELETE_FAILED_MESSAGE = "Não foi possível excluir a meta."
GOAL_CONTRIBUTION_FAILED_MESSAGE = "Não foi possível registrar a contribuição."


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    """First instant and last second of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59),
    )


class LatestRequestGuard:
    """
    Issues increasing tokens so only the latest request may apply its result.

    Usage:
        token = guard.begin()
        result = await fetch()
        if guard.is_current(token):
            show(result)
    """

    def __init__(self):
        self._latest = 0

    def begin(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


# =============================================================================
# OVERVIEW
# =============================================================================

class DashboardSnapshot(BaseModel):
    """Everything the overview shows for one account and month."""

    account_id: int
    month: int = Field(..., ge=1, le=12)
    year: int
    summary: Optional[MonthlySummary] = None
    budget_overview: BudgetOverview = Field(default_factory=BudgetOverview)
    ranked_budgets: list[BudgetUsage] = Field(default_factory=list)
    budget_status: Optional[BudgetStatus] = None
    budget_status_percent: int = 0
    recent_transactions: list[Transaction] = Field(default_factory=list)
    balance: Decimal = Decimal("0")
    insights: list[str] = Field(default_factory=list)
    failed_queries: list[str] = Field(default_factory=list)
    error_message: Optional[str] = None


class OverviewFlow:
    """
    Orchestrates the overview refresh.

    Flow:
    1. Take a request token
    2. Issue summary, budget analysis, budget status, recent transactions,
       balance and insights concurrently
    3. Default every failed query independently
    4. If a newer refresh started meanwhile, discard everything
    5. Derive metrics and publish the snapshot
    """

    def __init__(self, api: FinanceApi, guard: Optional[LatestRequestGuard] = None):
        self._api = api
        self._guard = guard or LatestRequestGuard()
        self._snapshot: Optional[DashboardSnapshot] = None

    @property
    def snapshot(self) -> Optional[DashboardSnapshot]:
        return self._snapshot

    async def _defaulted(
        self,
        name: str,
        awaitable: Awaitable[T],
        default: T,
        failures: list[str],
    ) -> T:
        try:
            return await awaitable
        except RequestFailedError as e:
            logger.warning("request_failed", query=name, status=e.status, error=str(e))
            failures.append(name)
            return default

    async def refresh(
        self,
        month: int,
        year: int,
        account_id: Optional[int] = None,
    ) -> Optional[DashboardSnapshot]:
        """
        Refresh the overview for a period.

        Returns:
            The new snapshot, or None if a newer refresh superseded this one
        """
        token = self._guard.begin()
        account_id = self._api.resolve_account(account_id)
        start, end = month_window(year, month)
        recent_query = TransactionQuery(
            account_id=account_id,
            limit=RECENT_TRANSACTIONS_LIMIT,
            start=start,
            end=end,
        )
        summary_timeout = self._api.settings.summary_timeout_seconds
        failures: list[str] = []

        summary, analysis, status, recent, raw_balance, insights = await asyncio.gather(
            self._defaulted(
                "summary",
                self._api.get_monthly_summary(month, year, account_id),
                None,
                failures,
            ),
            self._defaulted(
                "budget_analysis",
                self._api.get_budget_analysis(
                    month, year, months=BUDGET_ANALYSIS_MONTHS, account_id=account_id
                ),
                None,
                failures,
            ),
            self._defaulted(
                "budget_status",
                self._api.get_budget_status(month, year, account_id),
                None,
                failures,
            ),
            self._defaulted(
                "recent_transactions",
                self._api.list_transactions(recent_query, timeout=summary_timeout),
                TransactionPage(),
                failures,
            ),
            self._defaulted(
                "balance",
                self._api.get_current_balance(account_id),
                None,
                failures,
            ),
            self._defaulted(
                "insights",
                self._api.get_insights(account_id, INSIGHTS_HISTORY_MONTHS),
                [],
                failures,
            ),
        )

        if not self._guard.is_current(token):
            logger.info("stale_refresh_discarded", month=month, year=year, token=token)
            return None

        usages = analysis.usages if analysis is not None else []
        snapshot = DashboardSnapshot(
            account_id=account_id,
            month=month,
            year=year,
            summary=summary,
            budget_overview=aggregate_budgets(usages),
            ranked_budgets=rank_by_usage(usages),
            budget_status=status,
            budget_status_percent=status_percent(status),
            recent_transactions=sort_recent(recent.items),
            balance=resolve_balance(raw_balance, summary),
            insights=insights,
            failed_queries=sorted(failures),
            error_message=SUMMARY_FAILED_MESSAGE if "summary" in failures else None,
        )
        self._snapshot = snapshot

        logger.info(
            "overview_refreshed",
            account_id=account_id,
            month=month,
            year=year,
            failed_queries=snapshot.failed_queries,
        )
        return snapshot


def sort_recent(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first; undated transactions go last."""
    transactions = list(transactions)
    dated = [t for t in transactions if t.occurred_at is not None]
    undated = [t for t in transactions if t.occurred_at is None]
    dated.sort(key=lambda t: _sort_key(t.occurred_at), reverse=True)
    return dated + undated


def _sort_key(moment: datetime) -> float:
    # naive values are read as UTC so they compare with aware ones
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionListFlow:
    """
    Orchestrates the paged transaction view.

    Uses the same last-request-wins guard as the overview, so a slow
    response for an old filter never replaces a newer page.
    """

    def __init__(self, api: FinanceApi, guard: Optional[LatestRequestGuard] = None):
        self._api = api
        self._guard = guard or LatestRequestGuard()
        self._page: Optional[TransactionPage] = None

    @property
    def current_page(self) -> Optional[TransactionPage]:
        return self._page

    async def load(self, query: TransactionQuery) -> Optional[TransactionPage]:
        """
        Load one page.

        Returns:
            The page, or None if a newer load superseded this one

        Raises:
            RequestFailedError: If the current load failed
        """
        token = self._guard.begin()
        try:
            page = await self._api.list_transactions(query)
        except RequestFailedError as e:
            if not self._guard.is_current(token):
                logger.info("stale_refresh_discarded", view="transactions", token=token)
                return None
            logger.warning("request_failed", query="transactions", error=str(e))
            raise e.with_user_message(TRANSACTIONS_FAILED_MESSAGE)

        if not self._guard.is_current(token):
            logger.info("stale_refresh_discarded", view="transactions", token=token)
            return None

        self._page = page
        return page

    async def save(
        self,
        payload: TransactionPayload,
        transaction_id: Optional[int] = None,
        tag_ids: Iterable[int] = (),
    ) -> Optional[int]:
        """
        Create or update a transaction, then link the selected tags.

        Returns:
            The transaction id (None when the server did not report one)
        """
        try:
            if transaction_id:
                response = await self._api.update_transaction(transaction_id, payload)
            else:
                response = await self._api.create_transaction(payload)
        except RequestFailedError as e:
            logger.warning("request_failed", action="save_transaction", error=str(e))
            raise e.with_user_message(TRANSACTION_SAVE_FAILED_MESSAGE)

        saved_id = transaction_id or _response_id(response, ("id", "transacaoId"))
        tag_ids = list(tag_ids)
        if saved_id and tag_ids:
            await self._link_tags(saved_id, tag_ids)

        logger.info("transaction_saved", transaction_id=saved_id, tags=len(tag_ids))
        return saved_id

    async def _link_tags(self, transaction_id: int, tag_ids: list[int]) -> None:
        results = await asyncio.gather(
            *(
                self._api.link_tag(TagLinkPayload(transaction_id=transaction_id, tag_id=tag_id))
                for tag_id in tag_ids
            ),
            return_exceptions=True,
        )
        for tag_id, result in zip(tag_ids, results):
            if isinstance(result, RequestFailedError):
                logger.warning(
                    "tag_link_failed",
                    transaction_id=transaction_id,
                    tag_id=tag_id,
                    error=str(result),
                )
            elif isinstance(result, BaseException):
                raise result

    async def delete(self, transaction_id: int) -> None:
        try:
            await self._api.delete_transaction(transaction_id)
        except RequestFailedError as e:
            logger.warning("request_failed", action="delete_transaction", error=str(e))
            raise e.with_user_message(TRANSACTION_DELETE_FAILED_MESSAGE)
        logger.info("transaction_deleted", transaction_id=transaction_id)


def _response_id(response: Any, keys: tuple[str, ...]) -> Optional[int]:
    if not isinstance(response, dict):
        return None
    for key in keys:
        value = response.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value:
            return value
    return None


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetBoard(BaseModel):
    """Category budgets of one month with their aggregate."""

    month: int
    year: int
    usages: list[BudgetUsage] = Field(default_factory=list)
    overview: BudgetOverview = Field(default_factory=BudgetOverview)


class BudgetFlow:
    """Orchestrates the budget management view."""

    def __init__(self, api: FinanceApi):
        self._api = api

    async def load(
        self,
        month: int,
        year: int,
        account_id: Optional[int] = None,
    ) -> BudgetBoard:
        try:
            analysis = await self._api.get_budget_analysis(
                month, year, months=BUDGET_ANALYSIS_MONTHS, account_id=account_id
            )
        except RequestFailedError as e:
            logger.warning("request_failed", query="budgets", error=str(e))
            raise e.with_user_message(BUDGETS_FAILED_MESSAGE)

        usages = analysis.usages if analysis is not None else []
        return BudgetBoard(
            month=month,
            year=year,
            usages=usages,
            overview=aggregate_budgets(usages),
        )

    async def save(self, payload: BudgetPayload, budget_id: Optional[int] = None) -> Any:
        try:
            if budget_id:
                return await self._api.update_budget(budget_id, payload)
            return await self._api.create_budget(payload)
        except RequestFailedError as e:
            logger.warning("request_failed", action="save_budget", error=str(e))
            raise e.with_user_message(BUDGET_SAVE_FAILED_MESSAGE)

    async def delete(self, budget_id: int) -> None:
        try:
            await self._api.delete_budget(budget_id)
        except RequestFailedError as e:
            logger.warning("request_failed", action="delete_budget", error=str(e))
            raise e.with_user_message(BUDGET_DELETE_FAILED_MESSAGE)


# =============================================================================
# GOALS
# =============================================================================

class GoalFlow:
    """Orchestrates the savings goals view."""

    def __init__(self, api: FinanceApi):
        self._api = api

    async def load(self, account_id: Optional[int] = None) -> list[Goal]:
        try:
            return await self._api.list_goals(account_id)
        except RequestFailedError as e:
            logger.warning("request_failed", query="goals", error=str(e))
            raise e.with_user_message(GOALS_FAILED_MESSAGE)

    async def save(self, payload: GoalPayload, goal_id: Optional[int] = None) -> Any:
        try:
            if goal_id:
                return await self._api.update_goal(goal_id, payload)
            return await self._api.create_goal(payload)
        except RequestFailedError as e:
            logger.warning("request_failed", action="save_goal", error=str(e))
            raise e.with_user_message(GOAL_SAVE_FAILED_MESSAGE)

    async def delete(self, goal_id: int) -> None:
        try:
            await self._api.delete_goal(goal_id)
        except RequestFailedError as e:
            logger.warning("request_failed", action="delete_goal", error=str(e))
            raise e.with_user_message(GOAL_DELETE_FAILED_MESSAGE)

    async def contribute(self, goal_id: int, amount: Decimal) -> Any:
        """Add money to a goal. Amounts below 0.01 are rejected before sending."""
        payload = ContributionPayload(amount=amount)
        try:
            return await self._api.contribute_to_goal(goal_id, payload)
        except RequestFailedError as e:
            logger.warning("request_failed", action="contribute_goal", error=str(e))
            raise e.with_user_message(GOAL_CONTRIBUTION_FAILED_MESSAGE)
