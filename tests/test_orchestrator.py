"""
Integration tests for the view flows.

All network traffic is answered by FakeTransport.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from src.models.finance import TransactionQuery
from src.models.payloads import BudgetPayload, TransactionPayload
from src.normalization.normalizer import normalize_transactions
from src.orchestrator import (
    BUDGETS_FAILED_MESSAGE,
    GOALS_FAILED_MESSAGE,
    SUMMARY_FAILED_MESSAGE,
    TRANSACTIONS_FAILED_MESSAGE,
    BudgetFlow,
    GoalFlow,
    LatestRequestGuard,
    OverviewFlow,
    TransactionListFlow,
    month_window,
    sort_recent,
)
from src.services.transport.interface import HttpStatusError, RequestFailedError, RequestTimeoutError

P = "/api/financas"


def overview_routes() -> dict:
    return {
        f"{P}/resumo-mensal": {"totalEntradas": 3000, "totalSaidas": 1200},
        f"{P}/orcamentos/analises": {"orcamentosUsoPercentual": [
            {"categoriaNome": "Mercado", "limite": 1000, "gasto": 500},
            {"categoriaNome": "Lazer", "limite": 100, "gasto": 150},
        ]},
        f"{P}/orcamentos/status": {"percentualUtilizado": 59.1},
        f"{P}/transacoes": {"data": [
            {"id": 1, "valor": 10, "dataTransacao": "2024-05-02T09:00:00"},
            {"id": 2, "valor": 20, "dataTransacao": "2024-05-20T09:00:00"},
            {"id": 3, "valor": 30},
            {"id": 4, "valor": 40, "dataTransacao": "2024-05-10T09:00:00"},
        ]},
        f"{P}/saldo-atual": {"saldo": 0},
        f"{P}/insights": ["Gastos com lazer acima do orçamento"],
    }


class TestHelpers:
    """Tests for guard, month window and ordering helpers."""

    def test_guard(self):
        """Only the latest token is current."""
        guard = LatestRequestGuard()
        first = guard.begin()
        second = guard.begin()
        assert not guard.is_current(first)
        assert guard.is_current(second)

    def test_month_window(self):
        """The window spans the whole month, leap years included."""
        start, end = month_window(2024, 2)
        assert start == datetime(2024, 2, 1)
        assert end == datetime(2024, 2, 29, 23, 59, 59)

    def test_sort_recent(self):
        """Newest first, undated last."""
        items = normalize_transactions(overview_routes()[f"{P}/transacoes"])
        assert [t.id for t in sort_recent(items)] == [2, 4, 1, 3]


class TestOverviewFlow:
    """Tests for the overview refresh."""

    def test_refresh_builds_snapshot(self, api, transport):
        """All queries populate the snapshot."""
        transport.routes.update(overview_routes())
        flow = OverviewFlow(api)

        snapshot = asyncio.run(flow.refresh(5, 2024))

        assert snapshot is flow.snapshot
        assert snapshot.account_id == 1
        assert snapshot.summary.balance == Decimal("1800")
        assert snapshot.budget_overview.raw_percent == 59
        assert [u.category_name for u in snapshot.ranked_budgets] == ["Lazer", "Mercado"]
        assert snapshot.budget_status_percent == 59
        assert [t.id for t in snapshot.recent_transactions] == [2, 4, 1, 3]
        assert snapshot.balance == Decimal("1800")
        assert snapshot.insights == ["Gastos com lazer acima do orçamento"]
        assert snapshot.failed_queries == []
        assert snapshot.error_message is None

    def test_queries_and_timeouts(self, api, transport):
        """Each query carries its period, account and timeout class."""
        transport.routes.update(overview_routes())

        asyncio.run(OverviewFlow(api).refresh(5, 2024, account_id=9))

        summary_call = transport.calls_to(f"{P}/resumo-mensal")[0]
        assert summary_call.params == {"contaId": "9", "mes": "5", "ano": "2024"}
        assert summary_call.timeout == 5.0
        assert transport.calls_to(f"{P}/insights")[0].timeout == 8.0
        assert transport.calls_to(f"{P}/orcamentos/analises")[0].params["meses"] == "1"
        recent = transport.calls_to(f"{P}/transacoes")[0].params
        assert recent["limit"] == "10"
        assert recent["inicio"] == "2024-05-01T00:00:00"
        assert recent["fim"] == "2024-05-31T23:59:59"

    def test_failing_query_is_defaulted(self, api, transport):
        """One failure does not block the other queries."""
        transport.routes.update(overview_routes())
        transport.routes[f"{P}/orcamentos/status"] = HttpStatusError(500)
        transport.routes[f"{P}/insights"] = RequestTimeoutError(f"{P}/insights", 8)

        snapshot = asyncio.run(OverviewFlow(api).refresh(5, 2024))

        assert snapshot.failed_queries == ["budget_status", "insights"]
        assert snapshot.budget_status is None
        assert snapshot.budget_status_percent == 0
        assert snapshot.insights == []
        assert snapshot.summary is not None
        assert len(snapshot.recent_transactions) == 4

    def test_summary_failure_sets_message(self, api, transport):
        """A failed summary leaves a user message and no summary."""
        transport.routes.update(overview_routes())
        transport.routes[f"{P}/resumo-mensal"] = RequestFailedError("boom")
        transport.routes[f"{P}/saldo-atual"] = 250

        snapshot = asyncio.run(OverviewFlow(api).refresh(5, 2024))

        assert snapshot.summary is None
        assert snapshot.error_message == SUMMARY_FAILED_MESSAGE
        assert snapshot.balance == Decimal("250")

    def test_everything_failing(self, api, transport):
        """With every query failing the snapshot is fully defaulted."""
        for path in overview_routes():
            transport.routes[path] = RequestFailedError("down")

        snapshot = asyncio.run(OverviewFlow(api).refresh(5, 2024))

        assert len(snapshot.failed_queries) == 6
        assert snapshot.balance == Decimal("0")
        assert snapshot.recent_transactions == []
        assert not snapshot.budget_overview.has_budgets

    def test_last_request_wins(self, api, transport):
        """A slow earlier refresh never overwrites a newer one."""
        transport.routes.update(overview_routes())
        state = {}

        async def summary(params):
            if params["mes"] == "1":
                await state["release"].wait()
            return {"totalEntradas": int(params["mes"]) * 100}

        transport.routes[f"{P}/resumo-mensal"] = summary
        flow = OverviewFlow(api)

        async def scenario():
            state["release"] = asyncio.Event()
            first = asyncio.create_task(flow.refresh(1, 2024))
            await asyncio.sleep(0)
            second = await flow.refresh(2, 2024)
            state["release"].set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert first is None
        assert second is not None
        assert flow.snapshot.month == 2
        assert flow.snapshot.summary.total_income == Decimal("200")


class TestTransactionListFlow:
    """Tests for the paged transaction view."""

    def test_load_page(self, api, transport):
        """A page is normalized with its paging meta."""
        transport.routes[f"{P}/transacoes"] = {
            "items": [{"id": 1, "valor": 5}],
            "pagination": {"totalItems": 11, "totalPages": 2, "hasNext": True},
        }
        flow = TransactionListFlow(api)

        page = asyncio.run(flow.load(TransactionQuery(page=1, page_size=10)))

        assert page.has_next is True
        assert page.meta.total_items == 11
        assert flow.current_page is page
        assert transport.calls[0].timeout == 15.0

    def test_load_failure_has_user_message(self, api, transport):
        """A failed load surfaces a short user message."""
        transport.routes[f"{P}/transacoes"] = HttpStatusError(502)

        with pytest.raises(RequestFailedError) as exc_info:
            asyncio.run(TransactionListFlow(api).load(TransactionQuery(page=1, page_size=10)))

        assert exc_info.value.user_message == TRANSACTIONS_FAILED_MESSAGE
        assert exc_info.value.status == 502

    def test_stale_load_is_discarded(self, api, transport):
        """An older page arriving late is dropped."""
        state = {}

        async def listing(params):
            if params["page"] == "1":
                await state["release"].wait()
            return {"data": [{"id": int(params["page"])}]}

        transport.routes[f"{P}/transacoes"] = listing
        flow = TransactionListFlow(api)

        async def scenario():
            state["release"] = asyncio.Event()
            first = asyncio.create_task(flow.load(TransactionQuery(page=1, page_size=10)))
            await asyncio.sleep(0)
            second = await flow.load(TransactionQuery(page=2, page_size=10))
            state["release"].set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert first is None
        assert flow.current_page is second
        assert second.items[0].id == 2

    def test_create_links_tags(self, api, transport):
        """Tags are linked to the new transaction id."""
        transport.routes[f"POST {P}/transacoes"] = {"id": 42}
        payload = TransactionPayload(
            account_id=1,
            amount=Decimal("19.90"),
            description="Farmácia",
            occurred_at=datetime(2024, 5, 3),
        )

        saved_id = asyncio.run(TransactionListFlow(api).save(payload, tag_ids=[7, 8]))

        assert saved_id == 42
        links = transport.calls_to(f"{P}/transacoes/tags")
        assert sorted(call.json["tagId"] for call in links) == [7, 8]
        assert all(call.json["transacaoId"] == 42 for call in links)

    def test_failed_tag_link_does_not_fail_save(self, api, transport):
        """A tag that cannot be linked is logged, the save still succeeds."""
        transport.routes[f"PUT {P}/transacoes/5"] = None
        transport.routes[f"{P}/transacoes/tags"] = HttpStatusError(400)
        payload = TransactionPayload(
            account_id=1,
            amount=Decimal("10"),
            description="Padaria",
            occurred_at=datetime(2024, 5, 3),
        )

        saved_id = asyncio.run(TransactionListFlow(api).save(payload, transaction_id=5, tag_ids=[1]))

        assert saved_id == 5
        assert transport.calls[0].method == "PUT"

    def test_delete_failure(self, api, transport):
        """A failed delete is surfaced."""
        transport.routes[f"{P}/transacoes/3"] = RequestFailedError("down")

        with pytest.raises(RequestFailedError):
            asyncio.run(TransactionListFlow(api).delete(3))


class TestBudgetAndGoalFlows:
    """Tests for budget and goal views."""

    def test_budget_board(self, api, transport):
        """Budgets and their aggregate come from the one-month analysis."""
        transport.routes[f"{P}/orcamentos/analises"] = {"orcamentosUsoPercentual": [
            {"orcamentoId": 1, "categoriaNome": "Mercado", "limite": 400, "gasto": 380},
        ]}

        board = asyncio.run(BudgetFlow(api).load(5, 2024))

        assert board.usages[0].percent == 95
        assert board.overview.tier.value == "warning"
        assert transport.calls[0].params["meses"] == "1"

    def test_budget_load_failure(self, api, transport):
        """A failed budget load carries the budget message."""
        transport.routes[f"{P}/orcamentos/analises"] = HttpStatusError(500)

        with pytest.raises(RequestFailedError) as exc_info:
            asyncio.run(BudgetFlow(api).load(5, 2024))

        assert exc_info.value.user_message == BUDGETS_FAILED_MESSAGE

    def test_budget_update(self, api, transport):
        """An existing budget is updated with PUT."""
        payload = BudgetPayload(account_id=1, month=5, year=2024, category_id=2, limit=Decimal("300"))

        asyncio.run(BudgetFlow(api).save(payload, budget_id=6))

        call = transport.calls[0]
        assert (call.method, call.path) == ("PUT", f"{P}/orcamentos/6")
        assert call.json == {"contaId": 1, "mes": 5, "ano": 2024, "categoriaId": 2, "limite": 300.0}

    def test_goals(self, api, transport):
        """Goals are normalized from a bare list."""
        transport.routes[f"{P}/metas"] = [{"id": 1, "nome": "Carro", "valorAlvo": 20000, "valorAtual": 5000}]

        goals = asyncio.run(GoalFlow(api).load())

        assert goals[0].percent == 25
        assert goals[0].remaining == Decimal("15000")

    def test_goal_load_failure(self, api, transport):
        """A failed goal load carries the goal message."""
        transport.routes[f"{P}/metas"] = RequestFailedError("down")

        with pytest.raises(RequestFailedError) as exc_info:
            asyncio.run(GoalFlow(api).load())

        assert exc_info.value.user_message == GOALS_FAILED_MESSAGE

    def test_contribution(self, api, transport):
        """A contribution posts the amount to the goal."""
        asyncio.run(GoalFlow(api).contribute(3, Decimal("25")))

        call = transport.calls[0]
        assert (call.method, call.path) == ("POST", f"{P}/metas/3/contribuir")
        assert call.json == {"valor": 25.0}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
