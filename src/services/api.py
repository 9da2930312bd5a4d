"""
Finance API Client

One method per endpoint under /api/financas/ (plus account creation).

Reads return normalized models: callers never see raw server shapes,
except for the current balance, whose raw body is resolved together with
the monthly summary (see src.metrics.balance).

Writes take validated payload models and return the server's decoded
response (often None).

Every call is scoped to an account through ActiveAccountResolver and
carries the timeout of its request class:
- summary:  monthly summary, budget status/analysis, balance
- insights: insights
- listing:  transactions, goals, budgets, categories, tags, recurring, writes
- export:   export pages, file export and import
"""

from typing import Any, Literal, Optional

from src.config.settings import ApiSettings, get_settings
from src.models.finance import (
    BudgetAnalysis,
    BudgetStatus,
    BudgetUsage,
    Category,
    Goal,
    MonthlySummary,
    Recurrence,
    Subscription,
    Tag,
    TransactionPage,
    TransactionQuery,
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
from src.normalization.normalizer import (
    extract_items,
    extract_pagination,
    normalize_budget_analysis,
    normalize_budget_status,
    normalize_budget_usage,
    normalize_categories,
    normalize_goals,
    normalize_insights,
    normalize_recurrences,
    normalize_subscriptions,
    normalize_summary,
    normalize_tag_list,
    normalize_transactions,
)
from src.queries.account import ActiveAccountResolver
from src.queries.pagination import build_transaction_params, has_more, reconcile
from src.services.transport.interface import Transport


FINANCE_PREFIX = "/api/financas"

ExportFormat = Literal["csv", "pdf"]


class FinanceApi:
    """
    Client for the finance REST API.

    Usage:
        api = FinanceApi(RequestsTransport(token_provider=...))
        summary = await api.get_monthly_summary(month=5, year=2024)
    """

    def __init__(
        self,
        transport: Transport,
        account_resolver: Optional[ActiveAccountResolver] = None,
        settings: Optional[ApiSettings] = None,
    ):
        self._transport = transport
        self._accounts = account_resolver or ActiveAccountResolver()
        self._settings = settings or get_settings().api

    @property
    def settings(self) -> ApiSettings:
        return self._settings

    def resolve_account(self, account_id: Optional[int] = None) -> int:
        return self._accounts.resolve(account_id)

    async def _get(self, path: str, params: Optional[dict[str, Any]], timeout: float) -> Any:
        return await self._transport.request(
            "GET",
            f"{FINANCE_PREFIX}{path}",
            params=_stringify(params),
            timeout=timeout,
        )

    async def _send(self, method: str, path: str, body: Any = None) -> Any:
        return await self._transport.request(
            method,
            f"{FINANCE_PREFIX}{path}",
            json=body,
            timeout=self._settings.listing_timeout_seconds,
        )

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def create_account(self, payload: AccountPayload) -> Any:
        return await self._transport.request(
            "POST",
            "/api/contas",
            json=payload.to_api(),
            timeout=self._settings.listing_timeout_seconds,
        )

    # =========================================================================
    # SUMMARY, BALANCE, INSIGHTS
    # =========================================================================

    async def get_monthly_summary(
        self,
        month: int,
        year: int,
        account_id: Optional[int] = None,
    ) -> Optional[MonthlySummary]:
        account_id = self.resolve_account(account_id)
        raw = await self._get(
            "/resumo-mensal",
            {"contaId": account_id, "mes": month, "ano": year},
            self._settings.summary_timeout_seconds,
        )
        return normalize_summary(raw, account_id=account_id, month=month, year=year)

    async def get_current_balance(self, account_id: Optional[int] = None) -> Any:
        """Raw balance body: a bare number or an object (resolve with resolve_balance)."""
        return await self._get(
            "/saldo-atual",
            {"contaId": self.resolve_account(account_id)},
            self._settings.summary_timeout_seconds,
        )

    async def get_insights(
        self,
        account_id: Optional[int] = None,
        history_months: int = 12,
    ) -> list[str]:
        raw = await self._get(
            "/insights",
            {"contaId": self.resolve_account(account_id), "mesesHistorico": history_months},
            self._settings.insights_timeout_seconds,
        )
        return normalize_insights(raw)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def list_transactions(
        self,
        query: TransactionQuery,
        timeout: Optional[float] = None,
    ) -> TransactionPage:
        """
        Fetch and normalize one page of transactions.

        Paging fields are reconciled so both conventions are sent.
        """
        query = query.model_copy(update={"account_id": self.resolve_account(query.account_id)})
        paging = reconcile(query.page, query.page_size, query.limit, query.offset)

        raw = await self._get(
            "/transacoes",
            build_transaction_params(query),
            timeout or self._settings.listing_timeout_seconds,
        )
        items = normalize_transactions(raw)
        meta = extract_pagination(raw)

        return TransactionPage(
            items=items,
            meta=meta,
            has_next=has_more(
                meta,
                len(items),
                paging.page_size,
                offset=paging.offset,
                page=paging.page,
            ),
            requested_page_size=paging.page_size,
        )

    async def create_transaction(self, payload: TransactionPayload) -> Any:
        return await self._send("POST", "/transacoes", payload.to_api())

    async def update_transaction(self, transaction_id: int, payload: TransactionPayload) -> Any:
        return await self._send("PUT", f"/transacoes/{transaction_id}", payload.to_api())

    async def delete_transaction(self, transaction_id: int) -> Any:
        return await self._send("DELETE", f"/transacoes/{transaction_id}")

    # =========================================================================
    # CATEGORIES AND TAGS
    # =========================================================================

    async def get_categories(self) -> list[Category]:
        raw = await self._get("/categorias", None, self._settings.listing_timeout_seconds)
        return normalize_categories(raw)

    async def list_tags(self, account_id: Optional[int] = None) -> list[Tag]:
        raw = await self._get(
            "/tags",
            {"contaId": self.resolve_account(account_id)},
            self._settings.listing_timeout_seconds,
        )
        return normalize_tag_list(raw)

    async def create_tag(self, payload: TagPayload) -> Any:
        return await self._send("POST", "/tags", payload.to_api())

    async def rename_tag(self, tag_id: int, name: str) -> Any:
        return await self._send("PUT", f"/tags/{tag_id}", {"nome": name})

    async def delete_tag(self, tag_id: int) -> Any:
        return await self._send("DELETE", f"/tags/{tag_id}")

    async def link_tag(self, payload: TagLinkPayload) -> Any:
        return await self._send("POST", "/transacoes/tags", payload.to_api())

    # =========================================================================
    # RECURRENCES AND SUBSCRIPTIONS
    # =========================================================================

    async def list_recurrences(self, account_id: Optional[int] = None) -> list[Recurrence]:
        raw = await self._get(
            "/recorrencias",
            {"contaId": self.resolve_account(account_id)},
            self._settings.listing_timeout_seconds,
        )
        return normalize_recurrences(raw)

    async def create_recurrence(self, payload: RecurrencePayload) -> Any:
        return await self._send("POST", "/recorrencias", payload.to_api())

    async def delete_recurrence(self, recurrence_id: int) -> Any:
        return await self._send("DELETE", f"/recorrencias/{recurrence_id}")

    async def list_subscriptions(self, account_id: Optional[int] = None) -> list[Subscription]:
        raw = await self._get(
            "/assinaturas",
            {"contaId": self.resolve_account(account_id)},
            self._settings.listing_timeout_seconds,
        )
        return normalize_subscriptions(raw)

    async def create_subscription(self, payload: SubscriptionPayload) -> Any:
        return await self._send("POST", "/assinaturas", payload.to_api())

    async def delete_subscription(self, subscription_id: int) -> Any:
        return await self._send("DELETE", f"/assinaturas/{subscription_id}")

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def list_budgets(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        account_id: Optional[int] = None,
    ) -> list[BudgetUsage]:
        params: dict[str, Any] = {"contaId": self.resolve_account(account_id)}
        if month:
            params["mes"] = month
        if year:
            params["ano"] = year
        if offset is not None:
            params["offset"] = offset
        if limit is not None:
            params["limit"] = limit

        raw = await self._get("/orcamentos", params, self._settings.listing_timeout_seconds)
        return [normalize_budget_usage(item) for item in extract_items(raw)]

    async def get_budget_status(
        self,
        month: int,
        year: int,
        account_id: Optional[int] = None,
    ) -> Optional[BudgetStatus]:
        raw = await self._get(
            "/orcamentos/status",
            {"contaId": self.resolve_account(account_id), "mes": month, "ano": year},
            self._settings.summary_timeout_seconds,
        )
        return normalize_budget_status(raw)

    async def get_budget_analysis(
        self,
        month: int,
        year: int,
        months: Optional[int] = None,
        account_id: Optional[int] = None,
    ) -> Optional[BudgetAnalysis]:
        params: dict[str, Any] = {
            "contaId": self.resolve_account(account_id),
            "mes": month,
            "ano": year,
        }
        if months:
            params["meses"] = months

        raw = await self._get(
            "/orcamentos/analises",
            params,
            self._settings.summary_timeout_seconds,
        )
        return normalize_budget_analysis(raw)

    async def create_budget(self, payload: BudgetPayload) -> Any:
        return await self._send("POST", "/orcamentos", payload.to_api())

    async def update_budget(self, budget_id: int, payload: BudgetPayload) -> Any:
        return await self._send("PUT", f"/orcamentos/{budget_id}", payload.to_api())

    async def delete_budget(self, budget_id: int) -> Any:
        return await self._send("DELETE", f"/orcamentos/{budget_id}")

    # =========================================================================
    # GOALS
    # =========================================================================

    async def list_goals(self, account_id: Optional[int] = None) -> list[Goal]:
        raw = await self._get(
            "/metas",
            {"contaId": self.resolve_account(account_id)},
            self._settings.listing_timeout_seconds,
        )
        return normalize_goals(raw)

    async def create_goal(self, payload: GoalPayload) -> Any:
        return await self._send("POST", "/metas", payload.to_api())

    async def update_goal(self, goal_id: int, payload: GoalPayload) -> Any:
        return await self._send("PUT", f"/metas/{goal_id}", payload.to_api())

    async def delete_goal(self, goal_id: int) -> Any:
        return await self._send("DELETE", f"/metas/{goal_id}")

    async def contribute_to_goal(self, goal_id: int, payload: ContributionPayload) -> Any:
        return await self._send("POST", f"/metas/{goal_id}/contribuir", payload.to_api())

    # =========================================================================
    # FILE EXPORT / IMPORT
    # =========================================================================

    async def export_file(
        self,
        file_format: ExportFormat,
        start: Optional[str] = None,
        end: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> bytes:
        """Download the server-rendered export (CSV or PDF) as raw bytes."""
        params: dict[str, Any] = {
            "contaId": self.resolve_account(account_id),
            "formato": file_format,
        }
        if start:
            params["inicio"] = start
        if end:
            params["fim"] = end

        return await self._transport.request(
            "GET",
            f"{FINANCE_PREFIX}/exportar",
            params=_stringify(params),
            timeout=self._settings.export_timeout_seconds,
            expect="bytes",
        )

    async def import_file(
        self,
        filename: str,
        content: bytes,
        account_id: Optional[int] = None,
    ) -> Any:
        """Upload a CSV file of transactions (multipart field "Arquivo")."""
        return await self._transport.request(
            "POST",
            f"{FINANCE_PREFIX}/importar",
            params={"contaId": str(self.resolve_account(account_id))},
            files={"Arquivo": (filename, content, "text/csv")},
            timeout=self._settings.export_timeout_seconds,
        )


def _stringify(params: Optional[dict[str, Any]]) -> Optional[dict[str, str]]:
    if params is None:
        return None
    return {key: str(value) for key, value in params.items()}
