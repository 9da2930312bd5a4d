"""Tests for the finance API client (paths, params, timeouts, bodies)."""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from src.config.settings import ApiSettings
from src.models.finance import TransactionKind, TransactionQuery
from src.models.payloads import AccountPayload, TagPayload, TransactionPayload
from src.queries.account import ActiveAccountResolver
from src.services.api import FinanceApi

P = "/api/financas"


class TestReads:
    """Tests for read endpoints."""

    def test_summary(self, api, transport):
        """The summary is requested for the resolved account and normalized."""
        transport.routes[f"{P}/resumo-mensal"] = {"TotalEntradas": 10, "TotalSaidas": 4}

        summary = asyncio.run(api.get_monthly_summary(3, 2024))

        call = transport.calls[0]
        assert call.method == "GET"
        assert call.params == {"contaId": "1", "mes": "3", "ano": "2024"}
        assert call.timeout == 5.0
        assert summary.balance == Decimal("6")
        assert summary.month == 3

    def test_account_provider(self, transport):
        """The session account is used when no account is passed."""
        api = FinanceApi(
            transport,
            account_resolver=ActiveAccountResolver(provider=lambda: 12, default_account_id=1),
            settings=ApiSettings(),
        )

        asyncio.run(api.list_goals())

        assert transport.calls[0].params == {"contaId": "12"}

    def test_transactions_page(self, api, transport):
        """Both paging conventions are sent; continuation uses the page size."""
        transport.routes[f"{P}/transacoes"] = [{"id": i, "valor": 1} for i in range(1, 21)]

        page = asyncio.run(api.list_transactions(TransactionQuery(
            limit=20,
            offset=40,
            kind=TransactionKind.EXPENSE,
        )))

        params = transport.calls[0].params
        assert params["page"] == "3"
        assert params["pageSize"] == "20"
        assert params["limit"] == "20"
        assert params["offset"] == "40"
        assert params["tipo"] == "2"
        assert params["contaId"] == "1"
        assert len(page.items) == 20
        assert page.has_next is True
        assert page.requested_page_size == 20

    def test_short_page_has_no_next(self, api, transport):
        """A short page without metadata ends the listing."""
        transport.routes[f"{P}/transacoes"] = {"Data": [{"id": 1}]}

        page = asyncio.run(api.list_transactions(TransactionQuery(page=1, page_size=20)))

        assert page.has_next is False

    def test_total_items_ends_listing(self, api, transport):
        """A full last page is not followed by a phantom next page."""
        transport.routes[f"{P}/transacoes"] = {
            "data": [{"id": i, "valor": 1} for i in range(11, 21)],
            "pagination": {"totalItems": 20},
        }

        page = asyncio.run(api.list_transactions(TransactionQuery(limit=10, offset=10)))

        assert len(page.items) == 10
        assert page.has_next is False

    def test_insights_params(self, api, transport):
        """Insights ask for twelve months of history by default."""
        transport.routes[f"{P}/insights"] = {"mensagens": ["a"]}

        insights = asyncio.run(api.get_insights())

        assert insights == ["a"]
        assert transport.calls[0].params == {"contaId": "1", "mesesHistorico": "12"}

    def test_list_budgets_optional_params(self, api, transport):
        """Only given budget filters are sent."""
        transport.routes[f"{P}/orcamentos"] = {"items": [{"orcamentoId": 4, "limite": 100, "gasto": 10}]}

        budgets = asyncio.run(api.list_budgets(month=5, offset=0))

        assert transport.calls[0].params == {"contaId": "1", "mes": "5", "offset": "0"}
        assert budgets[0].budget_id == 4
        assert budgets[0].percent == 10

    def test_categories_without_params(self, api, transport):
        """Categories are global."""
        transport.routes[f"{P}/categorias"] = [{"id": 1, "nome": "Mercado"}]

        categories = asyncio.run(api.get_categories())

        assert categories[0].name == "Mercado"
        assert transport.calls[0].params is None

    def test_export_file(self, api, transport):
        """The server export is downloaded as bytes."""
        transport.routes[f"{P}/exportar"] = b"%PDF"

        content = asyncio.run(api.export_file("pdf", start="2024-01-01"))

        call = transport.calls[0]
        assert content == b"%PDF"
        assert call.expect == "bytes"
        assert call.timeout == 30.0
        assert call.params == {"contaId": "1", "formato": "pdf", "inicio": "2024-01-01"}

    def test_import_file(self, api, transport):
        """A CSV is uploaded as multipart under Arquivo."""
        asyncio.run(api.import_file("extrato.csv", b"a,b\n"))

        call = transport.calls[0]
        assert (call.method, call.path) == ("POST", f"{P}/importar")
        assert call.files == {"Arquivo": ("extrato.csv", b"a,b\n", "text/csv")}
        assert call.params == {"contaId": "1"}


class TestWrites:
    """Tests for write endpoints."""

    def test_create_transaction_body(self, api, transport):
        """The payload is sent with server field names and numeric amounts."""
        payload = TransactionPayload(
            account_id=1,
            amount=Decimal("10.50"),
            description="Mercado",
            kind=TransactionKind.INCOME,
            occurred_at=datetime(2024, 5, 1),
            category_id=3,
        )

        asyncio.run(api.create_transaction(payload))

        call = transport.calls[0]
        assert (call.method, call.path) == ("POST", f"{P}/transacoes")
        assert call.json == {
            "contaId": 1,
            "valor": 10.5,
            "descricao": "Mercado",
            "tipo": 1,
            "moeda": "BRL",
            "dataTransacao": "2024-05-01T00:00:00",
            "categoriaId": 3,
        }
        assert call.timeout == 15.0

    def test_tag_operations(self, api, transport):
        """Tags are created, renamed and deleted on their own paths."""
        asyncio.run(api.create_tag(TagPayload(account_id=1, name="casa")))
        asyncio.run(api.rename_tag(4, "lar"))
        asyncio.run(api.delete_tag(4))

        assert [(c.method, c.path) for c in transport.calls] == [
            ("POST", f"{P}/tags"),
            ("PUT", f"{P}/tags/4"),
            ("DELETE", f"{P}/tags/4"),
        ]
        assert transport.calls[1].json == {"nome": "lar"}

    def test_recurring_deletes(self, api, transport):
        """Recurrences and subscriptions are deleted by id."""
        asyncio.run(api.delete_recurrence(2))
        asyncio.run(api.delete_subscription(3))

        assert [c.path for c in transport.calls] == [f"{P}/recorrencias/2", f"{P}/assinaturas/3"]

    def test_create_account(self, api, transport):
        """Account creation lives outside the finance prefix."""
        asyncio.run(api.create_account(AccountPayload(user_id="u-1", email="ana@example.com")))

        call = transport.calls[0]
        assert call.path == "/api/contas"
        assert call.json["usuarioId"] == "u-1"
        assert call.json["nome"] == "Conta Principal"
        assert call.json["saldoInicial"] == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
