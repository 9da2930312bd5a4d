"""
Outgoing Request Payloads

Write operations are validated here before anything reaches the network,
using the same limits the entry forms enforce (minimum description length,
minimum amounts, month range).

Field names are snake_case in Python and serialize to the server's
camelCase/Portuguese keys through aliases:

    payload.to_api()  ->  {"contaId": 1, "valor": 10.5, ...}

Amounts are Decimal internally and serialize as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from src.models.finance import TransactionKind, default_currency


ApiAmount = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]
ApiKind = Annotated[
    TransactionKind,
    PlainSerializer(lambda kind: kind.api_code, return_type=int, when_used="json"),
]


class ApiPayload(BaseModel):
    """Base class: strips strings, serializes with server aliases."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TransactionPayload(ApiPayload):
    """Create/update body for a transaction."""

    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    amount: ApiAmount = Field(..., ge=Decimal("0.01"), serialization_alias="valor")
    description: str = Field(..., min_length=3, serialization_alias="descricao")
    kind: ApiKind = Field(default=TransactionKind.EXPENSE, serialization_alias="tipo")
    currency: str = Field(default_factory=default_currency, serialization_alias="moeda")
    occurred_at: datetime = Field(..., serialization_alias="dataTransacao")
    category_id: Optional[int] = Field(default=None, serialization_alias="categoriaId")


class BudgetPayload(ApiPayload):
    """Create/update body for a monthly category budget."""

    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    month: int = Field(..., ge=1, le=12, serialization_alias="mes")
    year: int = Field(..., ge=2000, le=2100, serialization_alias="ano")
    category_id: int = Field(..., serialization_alias="categoriaId")
    limit: ApiAmount = Field(..., ge=Decimal("1"), serialization_alias="limite")


class GoalPayload(ApiPayload):
    """Create/update body for a savings goal."""

    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    name: str = Field(..., min_length=3, serialization_alias="nome")
    target_amount: ApiAmount = Field(..., ge=Decimal("1"), serialization_alias="valorAlvo")
    current_amount: ApiAmount = Field(
        default=Decimal("0"),
        ge=Decimal("0"),
        serialization_alias="valorAtual",
    )
    start_date: datetime = Field(..., serialization_alias="dataInicio")
    end_date: datetime = Field(..., serialization_alias="dataFim")
    category_id: Optional[int] = Field(default=None, serialization_alias="categoriaId")


class ContributionPayload(ApiPayload):
    amount: ApiAmount = Field(..., ge=Decimal("0.01"), serialization_alias="valor")


class RecurrencePayload(ApiPayload):
    """Create body for a recurrence template."""

    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    kind: ApiKind = Field(default=TransactionKind.EXPENSE, serialization_alias="tipo")
    amount: ApiAmount = Field(..., ge=Decimal("0.01"), serialization_alias="valor")
    currency: str = Field(default_factory=default_currency, serialization_alias="moeda")
    category_id: Optional[int] = Field(default=None, serialization_alias="categoriaId")
    description: str = Field(..., min_length=3, serialization_alias="descricao")
    frequency: str = Field(default="Mensal", serialization_alias="frequencia")
    interval_quantity: int = Field(default=1, ge=1, serialization_alias="intervaloQuantidade")
    interval_unit: int = Field(default=1, ge=1, serialization_alias="intervaloUnidade")
    start_date: datetime = Field(..., serialization_alias="dataInicio")
    day_of_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        serialization_alias="diaDoMes",
    )
    next_run: Optional[datetime] = Field(default=None, serialization_alias="proximaExecucao")
    active: bool = Field(default=True, serialization_alias="ativa")


class SubscriptionPayload(ApiPayload):
    """Create body for a subscription."""

    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    name: str = Field(..., min_length=2, serialization_alias="nome")
    amount: ApiAmount = Field(..., ge=Decimal("0.01"), serialization_alias="valor")
    currency: str = Field(default_factory=default_currency, serialization_alias="moeda")
    category_id: Optional[int] = Field(default=None, serialization_alias="categoriaId")
    frequency: str = Field(default="Mensal", serialization_alias="frequencia")
    interval_quantity: int = Field(default=1, ge=1, serialization_alias="intervaloQuantidade")
    interval_unit: int = Field(default=2, ge=1, serialization_alias="intervaloUnidade")
    start_date: datetime = Field(..., serialization_alias="dataInicio")
    next_charge: Optional[datetime] = Field(default=None, serialization_alias="proximaCobranca")
    active: bool = Field(default=True, serialization_alias="ativa")


class TagPayload(ApiPayload):
    account_id: int = Field(..., ge=1, serialization_alias="contaId")
    name: str = Field(..., min_length=1, serialization_alias="nome")


class TagLinkPayload(ApiPayload):
    transaction_id: int = Field(..., ge=1, serialization_alias="transacaoId")
    tag_id: int = Field(..., ge=1, serialization_alias="tagId")


class AccountPayload(ApiPayload):
    """Body for creating the user's first account."""

    user_id: str = Field(..., min_length=1, serialization_alias="usuarioId")
    name: str = Field(default="Conta Principal", serialization_alias="nome")
    email: str = Field(..., min_length=3, serialization_alias="email")
    account_type: str = Field(default="Corrente", serialization_alias="tipo")
    currency: str = Field(default_factory=default_currency, serialization_alias="moeda")
    opening_balance: ApiAmount = Field(default=Decimal("0"), serialization_alias="saldoInicial")
