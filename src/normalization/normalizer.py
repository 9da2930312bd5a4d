"""
Response Normalizer

Converts raw, untyped API bodies into the canonical finance models.

The API is inconsistent about shapes:
- field names arrive in camelCase or PascalCase (totalEntradas / TotalEntradas)
- lists arrive bare or wrapped in data / Data / items / Items
- kinds arrive as 1, "1", "entrada", "receita", "income", ...
- tags arrive as strings or as objects with nome / name

DESIGN DECISION: Each entity declares its candidate field names as an
ordered tuple constant. Lookup returns the first candidate whose value is
present (not None). Dotted candidates ("categoria.nome") reach into nested objects.

CRITICAL: Normalization never raises. Missing or malformed fields degrade
to defaults (amounts to 0, names to their placeholder) because a view must
always render something from a partially valid payload. Unrecognized shapes
raise MalformedResponseError internally; it is caught at the public
function boundary, logged, and replaced by the default result.
"""

import functools
import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from src.config.log import get_logger
from src.models.finance import (
    DEFAULT_BUDGET_CATEGORY_NAME,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_DESCRIPTION,
    BudgetAnalysis,
    BudgetAverages,
    BudgetStatus,
    BudgetUsage,
    Category,
    DistributionItem,
    ExpenseDistribution,
    Goal,
    MonthlySummary,
    PaginationMeta,
    Recurrence,
    Subscription,
    Tag,
    Transaction,
    TransactionKind,
    default_currency,
)


logger = get_logger(__name__)

T = TypeVar("T")

ZERO = Decimal("0")


class MalformedResponseError(Exception):
    """A payload shape was not recognized."""

    def __init__(self, entity: str, payload: Any):
        self.entity = entity
        self.payload_type = type(payload).__name__
        super().__init__(f"Unrecognized {entity} payload of type {self.payload_type}")


# =============================================================================
# CANDIDATE FIELD NAMES (tried in order)
# =============================================================================

ENVELOPE_LIST_KEYS = ("data", "Data", "items", "Items")
PAGINATION_KEYS = ("pagination", "Pagination", "meta", "Meta")

PAGINATION_FIELDS = {
    "total_items": ("totalItems", "TotalItems"),
    "total_pages": ("totalPages", "TotalPages"),
    "has_next": ("hasNext", "HasNext"),
}

INCOME_KIND_VALUES = frozenset({"1", "entrada", "receita", "income"})
EXPENSE_KIND_VALUES = frozenset({"2", "2.0", "saida", "saída", "despesa", "expense"})

TAG_NAME_KEYS = ("nome", "Nome", "name", "Name")

TRANSACTION_FIELDS = {
    "id": ("id", "Id", "transacaoId", "transacao_id"),
    "amount": ("valor", "Valor", "value", "amount"),
    "kind": ("tipo", "Tipo", "type", "kind"),
    "description": ("descricao", "Descricao", "description", "Description"),
    "category_id": ("categoriaId", "CategoriaId", "categoria.id", "Categoria.Id"),
    "category_name": (
        "categoriaNome",
        "CategoriaNome",
        "categoria.nome",
        "Categoria.Nome",
        "Categoria.nome",
    ),
    "tags": ("tags", "Tags", "tagNomes"),
    "occurred_at": (
        "dataTransacao",
        "DataTransacao",
        "data",
        "Data",
        "createdAt",
        "created_at",
        "date",
    ),
    "currency": ("moeda", "Moeda", "currency"),
}

SUMMARY_FIELDS = {
    "account_id": ("contaId", "ContaId"),
    "month": ("mes", "Mes"),
    "year": ("ano", "Ano"),
    "total_income": ("totalEntradas", "TotalEntradas", "entradas", "totalReceitas"),
    "total_expense": ("totalSaidas", "TotalSaidas", "saidas", "totalDespesas"),
    "month_balance": ("saldoMes", "SaldoMes"),
    "recurring_income": ("totalRecorrenteEntrada", "TotalRecorrenteEntrada"),
    "recurring_expense": ("totalRecorrenteSaida", "TotalRecorrenteSaida"),
    "subscriptions_expense": ("totalAssinaturasSaida", "TotalAssinaturasSaida"),
    "opening_balance": ("saldoInicial", "SaldoInicial"),
    "closing_balance": ("saldoAtual", "SaldoAtual", "saldoFinal", "SaldoFinal"),
    "currency": ("moeda", "Moeda"),
}

BUDGET_USAGE_FIELDS = {
    "budget_id": ("orcamentoId", "OrcamentoId", "id", "Id"),
    "category_id": ("categoriaId", "CategoriaId"),
    "category_name": ("categoriaNome", "CategoriaNome"),
    "limit": ("limite", "Limite"),
    "spent": ("gasto", "Gasto"),
    "usage_ratio": ("percentualUso", "PercentualUso"),
}

BUDGET_ANALYSIS_FIELDS = {
    "averages": ("media", "Media"),
    "usages": ("orcamentosUsoPercentual", "OrcamentosUsoPercentual"),
    "distribution": ("distribuicaoPizza", "DistribuicaoPizza"),
}

BUDGET_AVERAGE_FIELDS = {
    "average_limit": ("mediaLimite", "MediaLimite"),
    "average_spent": ("mediaGasto", "MediaGasto"),
    "average_usage_ratio": ("mediaUsoPercentual", "MediaUsoPercentual"),
}

DISTRIBUTION_FIELDS = {
    "total_expense": ("totalGastos", "TotalGastos"),
    "items": ("itens", "Itens"),
    "category_id": ("categoriaId", "CategoriaId"),
    "category_name": ("categoriaNome", "CategoriaNome"),
    "total": ("total", "Total"),
    "percent": ("percentual", "Percentual"),
}

BUDGET_STATUS_FIELDS = {
    "percent_used": ("percentualUtilizado", "percentual", "percentualUso"),
    "total_limit": ("limiteTotal", "limite"),
    "total_spent": ("gastoTotal", "gasto"),
}

GOAL_FIELDS = {
    "id": ("id", "Id", "metaId", "MetaId"),
    "name": ("nome", "Nome", "name"),
    "target_amount": ("valorAlvo", "ValorAlvo"),
    "current_amount": ("valorAtual", "ValorAtual"),
    "start_date": ("dataInicio", "DataInicio"),
    "end_date": ("dataFim", "DataFim"),
    "category_id": ("categoriaId", "CategoriaId"),
    "category_name": ("categoria.nome", "Categoria.Nome", "categoriaNome"),
}

RECURRENCE_FIELDS = {
    "id": ("id", "Id", "recorrenciaId"),
    "kind": ("tipo", "Tipo"),
    "amount": ("valor", "Valor"),
    "description": ("descricao", "Descricao"),
    "category_id": ("categoriaId", "CategoriaId"),
    "frequency": ("frequencia", "Frequencia"),
    "start_date": ("dataInicio", "DataInicio"),
    "next_run": ("proximaExecucao", "ProximaExecucao"),
    "active": ("ativa", "Ativa"),
    "currency": ("moeda", "Moeda"),
}

SUBSCRIPTION_FIELDS = {
    "id": ("id", "Id", "assinaturaId"),
    "name": ("nome", "Nome"),
    "amount": ("valor", "Valor"),
    "category_id": ("categoriaId", "CategoriaId"),
    "frequency": ("frequencia", "Frequencia"),
    "start_date": ("dataInicio", "DataInicio"),
    "next_charge": ("proximaCobranca", "ProximaCobranca"),
    "active": ("ativa", "Ativa"),
    "currency": ("moeda", "Moeda"),
}

TAG_FIELDS = {
    "id": ("id", "Id", "tagId"),
    "name": TAG_NAME_KEYS,
}

CATEGORY_FIELDS = {
    "id": ("id", "Id", "categoriaId"),
    "name": ("nome", "Nome", "name"),
}

INSIGHT_LIST_KEYS = ("insights", "mensagens", "mensagem", "message", "texto")


# =============================================================================
# FIELD LOOKUP AND COERCION
# =============================================================================

def _lookup(payload: Mapping, key: str) -> Any:
    value: Any = payload
    for part in key.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def pick(payload: Any, candidates: tuple[str, ...]) -> Any:
    """Return the first candidate value that is present (not None)."""
    if not isinstance(payload, Mapping):
        return None
    for key in candidates:
        value = _lookup(payload, key)
        if value is not None:
            return value
    return None


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def to_decimal(value: Any) -> Decimal:
    """Coerce to Decimal; anything missing or non-numeric becomes 0."""
    parsed = _parse_decimal(value)
    return parsed if parsed is not None else ZERO


def to_optional_decimal(value: Any) -> Optional[Decimal]:
    """Coerce to Decimal, keeping None for missing or non-numeric values."""
    if isinstance(value, str) and not value.strip():
        return None
    return _parse_decimal(value)


def to_magnitude(value: Any) -> Decimal:
    return abs(to_decimal(value))


def to_int(value: Any, default: int = 0) -> int:
    parsed = _parse_decimal(value)
    return int(parsed) if parsed is not None else default


def to_optional_int(value: Any) -> Optional[int]:
    """Coerce ids that may be absent; 0 means absent."""
    parsed = _parse_decimal(value)
    if parsed is None or parsed == ZERO:
        return None
    return int(parsed)


def to_text(value: Any, default: str = "") -> str:
    if value is None or isinstance(value, (Mapping, list)):
        return default
    text = str(value).strip()
    return text or default


def to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "sim", "yes"}:
            return True
        if lowered in {"false", "0", "nao", "não", "no"}:
            return False
    return default


_datetime_adapter = TypeAdapter(datetime)
_date_adapter = TypeAdapter(date)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO datetimes, or plain dates as midnight; None when unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        pass
    try:
        day = _date_adapter.validate_python(value)
    except ValidationError:
        return None
    return datetime(day.year, day.month, day.day)


def parse_kind(value: Any) -> TransactionKind:
    """
    Map any raw kind encoding to a TransactionKind.

    1, "1", "entrada", "receita" and "income" (case-insensitive) mean income.
    Everything else, unknown values included, means expense.
    """
    if isinstance(value, bool):
        return TransactionKind.EXPENSE
    if isinstance(value, (int, float, Decimal)) and value == 1:
        return TransactionKind.INCOME
    if isinstance(value, str) and value.strip().lower() in INCOME_KIND_VALUES:
        return TransactionKind.INCOME
    if value is not None and str(value).strip().lower() not in EXPENSE_KIND_VALUES:
        logger.debug("unknown_transaction_kind", value=repr(value))
    return TransactionKind.EXPENSE


def normalize_tags(raw: Any) -> list[str]:
    """
    Flatten tags to their names.

    Accepts plain strings or objects carrying nome/name. Names are trimmed,
    empty results dropped, order kept. Duplicates are not removed.
    """
    if not isinstance(raw, list):
        return []
    names = []
    for tag in raw:
        if isinstance(tag, str):
            name = tag.strip()
        elif isinstance(tag, Mapping):
            name = to_text(pick(tag, TAG_NAME_KEYS))
        else:
            name = ""
        if name:
            names.append(name)
    return names


def _require_mapping(payload: Any, entity: str) -> Mapping:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise MalformedResponseError(entity, payload)
    return payload


def tolerant(entity: str, default_factory: Callable[[], T]):
    """
    Decorator: on a malformed payload, log and return a default.

    Applied to every public normalizer so callers never see an exception.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except (MalformedResponseError, ValidationError) as e:
                logger.warning(
                    "malformed_response",
                    entity=entity,
                    error=str(e),
                )
                return default_factory()
        return wrapper
    return decorator


# =============================================================================
# ENVELOPES AND PAGINATION
# =============================================================================

@tolerant("envelope", list)
def extract_items(payload: Any) -> list:
    """
    Extract the record list from a bare list or a data/items envelope.

    The first non-null envelope key wins; if it is not a list the result
    is empty.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    data = pick(_require_mapping(payload, "envelope"), ENVELOPE_LIST_KEYS)
    return data if isinstance(data, list) else []


@tolerant("pagination", PaginationMeta)
def extract_pagination(payload: Any) -> PaginationMeta:
    """
    Read pagination metadata from pagination / Pagination / meta.

    Falls back to top-level keys when no metadata object is present.
    """
    if not isinstance(payload, Mapping):
        return PaginationMeta()
    block = pick(payload, PAGINATION_KEYS)
    source = block if isinstance(block, Mapping) else payload

    total_items = to_optional_decimal(pick(source, PAGINATION_FIELDS["total_items"]))
    total_pages = to_optional_decimal(pick(source, PAGINATION_FIELDS["total_pages"]))
    has_next_raw = pick(source, PAGINATION_FIELDS["has_next"])

    return PaginationMeta(
        total_items=int(total_items) if total_items is not None else None,
        total_pages=int(total_pages) if total_pages is not None else None,
        has_next=to_bool(has_next_raw, False) if has_next_raw is not None else None,
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

@tolerant("transaction", Transaction)
def normalize_transaction(raw: Any) -> Transaction:
    item = _require_mapping(raw, "transaction")
    f = TRANSACTION_FIELDS

    return Transaction(
        id=to_int(pick(item, f["id"])),
        amount=to_magnitude(pick(item, f["amount"])),
        kind=parse_kind(pick(item, f["kind"])),
        description=to_text(pick(item, f["description"]), DEFAULT_DESCRIPTION),
        category_id=to_optional_int(pick(item, f["category_id"])),
        category_name=to_text(pick(item, f["category_name"]), DEFAULT_CATEGORY_NAME),
        tags=normalize_tags(pick(item, f["tags"])),
        occurred_at=to_datetime(pick(item, f["occurred_at"])),
        currency=to_text(pick(item, f["currency"]), default_currency()),
    )


def normalize_transactions(payload: Any) -> list[Transaction]:
    return [normalize_transaction(item) for item in extract_items(payload)]


# =============================================================================
# SUMMARY
# =============================================================================

def _valid_month(value: Any) -> Optional[int]:
    month = to_optional_int(value)
    return month if month is not None and 1 <= month <= 12 else None


@tolerant("monthly_summary", lambda: None)
def normalize_summary(
    payload: Any,
    account_id: Optional[int] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> Optional[MonthlySummary]:
    """
    Normalize the monthly summary.

    Returns None when the server sent nothing at all. The requested
    account/month/year fill in whatever the payload omits.
    """
    if payload is None:
        return None
    r = _require_mapping(payload, "monthly_summary")
    f = SUMMARY_FIELDS

    return MonthlySummary(
        account_id=to_optional_int(pick(r, f["account_id"])) or account_id,
        month=_valid_month(pick(r, f["month"])) or _valid_month(month),
        year=to_optional_int(pick(r, f["year"])) or year,
        total_income=to_magnitude(pick(r, f["total_income"])),
        total_expense=to_magnitude(pick(r, f["total_expense"])),
        month_balance=to_decimal(pick(r, f["month_balance"])),
        recurring_income=to_magnitude(pick(r, f["recurring_income"])),
        recurring_expense=to_magnitude(pick(r, f["recurring_expense"])),
        subscriptions_expense=to_magnitude(pick(r, f["subscriptions_expense"])),
        opening_balance=to_optional_decimal(pick(r, f["opening_balance"])),
        closing_balance=to_optional_decimal(pick(r, f["closing_balance"])),
        currency=to_text(pick(r, f["currency"]), default_currency()),
    )


# =============================================================================
# BUDGETS
# =============================================================================

@tolerant("budget_usage", BudgetUsage)
def normalize_budget_usage(raw: Any) -> BudgetUsage:
    """
    Normalize one category budget.

    The usage ratio comes from the server when present, otherwise it is
    computed as spent/limit (0 for a zero limit).
    """
    item = _require_mapping(raw, "budget_usage")
    f = BUDGET_USAGE_FIELDS

    limit = to_magnitude(pick(item, f["limit"]))
    spent = to_magnitude(pick(item, f["spent"]))
    ratio_raw = pick(item, f["usage_ratio"])
    if ratio_raw is not None:
        usage_ratio = to_decimal(ratio_raw)
    elif limit > ZERO:
        usage_ratio = spent / limit
    else:
        usage_ratio = ZERO

    return BudgetUsage(
        budget_id=to_optional_int(pick(item, f["budget_id"])),
        category_id=to_optional_int(pick(item, f["category_id"])),
        category_name=to_text(pick(item, f["category_name"]), DEFAULT_BUDGET_CATEGORY_NAME),
        limit=limit,
        spent=spent,
        usage_ratio=usage_ratio,
    )


def _normalize_distribution(raw: Any) -> ExpenseDistribution:
    block = raw if isinstance(raw, Mapping) else {}
    f = DISTRIBUTION_FIELDS
    items_raw = pick(block, f["items"])

    items = []
    for entry in items_raw if isinstance(items_raw, list) else []:
        if not isinstance(entry, Mapping):
            continue
        items.append(DistributionItem(
            category_id=to_optional_int(pick(entry, f["category_id"])),
            category_name=to_text(pick(entry, f["category_name"]), DEFAULT_BUDGET_CATEGORY_NAME),
            total=to_decimal(pick(entry, f["total"])),
            percent=to_decimal(pick(entry, f["percent"])),
        ))

    return ExpenseDistribution(
        total_expense=to_decimal(pick(block, f["total_expense"])),
        items=items,
    )


@tolerant("budget_analysis", lambda: None)
def normalize_budget_analysis(payload: Any) -> Optional[BudgetAnalysis]:
    if payload is None:
        return None
    a = _require_mapping(payload, "budget_analysis")
    f = BUDGET_ANALYSIS_FIELDS

    media = pick(a, f["averages"])
    media = media if isinstance(media, Mapping) else {}
    averages = BudgetAverages(
        average_limit=to_decimal(pick(media, BUDGET_AVERAGE_FIELDS["average_limit"])),
        average_spent=to_decimal(pick(media, BUDGET_AVERAGE_FIELDS["average_spent"])),
        average_usage_ratio=to_decimal(pick(media, BUDGET_AVERAGE_FIELDS["average_usage_ratio"])),
    )

    usages_raw = pick(a, f["usages"])
    usages = [
        normalize_budget_usage(item)
        for item in (usages_raw if isinstance(usages_raw, list) else [])
    ]

    return BudgetAnalysis(
        averages=averages,
        usages=usages,
        distribution=_normalize_distribution(pick(a, f["distribution"])),
    )


@tolerant("budget_status", lambda: None)
def normalize_budget_status(payload: Any) -> Optional[BudgetStatus]:
    if payload is None:
        return None
    s = _require_mapping(payload, "budget_status")
    f = BUDGET_STATUS_FIELDS
    return BudgetStatus(
        percent_used=to_optional_decimal(pick(s, f["percent_used"])),
        total_limit=to_optional_decimal(pick(s, f["total_limit"])),
        total_spent=to_optional_decimal(pick(s, f["total_spent"])),
    )


# =============================================================================
# GOALS
# =============================================================================

@tolerant("goal", Goal)
def normalize_goal(raw: Any) -> Goal:
    m = _require_mapping(raw, "goal")
    f = GOAL_FIELDS
    category_name = to_text(pick(m, f["category_name"]))

    return Goal(
        id=to_int(pick(m, f["id"])),
        name=to_text(pick(m, f["name"])),
        target_amount=to_magnitude(pick(m, f["target_amount"])),
        current_amount=to_magnitude(pick(m, f["current_amount"])),
        start_date=to_datetime(pick(m, f["start_date"])),
        end_date=to_datetime(pick(m, f["end_date"])),
        category_id=to_optional_int(pick(m, f["category_id"])),
        category_name=category_name or None,
    )


def normalize_goals(payload: Any) -> list[Goal]:
    return [normalize_goal(item) for item in extract_items(payload)]


# =============================================================================
# RECURRING CHARGES
# =============================================================================

@tolerant("recurrence", Recurrence)
def normalize_recurrence(raw: Any) -> Recurrence:
    r = _require_mapping(raw, "recurrence")
    f = RECURRENCE_FIELDS
    return Recurrence(
        id=to_int(pick(r, f["id"])),
        kind=parse_kind(pick(r, f["kind"])),
        amount=to_magnitude(pick(r, f["amount"])),
        description=to_text(pick(r, f["description"]), DEFAULT_DESCRIPTION),
        category_id=to_optional_int(pick(r, f["category_id"])),
        frequency=to_text(pick(r, f["frequency"]), "Mensal"),
        start_date=to_datetime(pick(r, f["start_date"])),
        next_run=to_datetime(pick(r, f["next_run"])),
        active=to_bool(pick(r, f["active"]), True),
        currency=to_text(pick(r, f["currency"]), default_currency()),
    )


def normalize_recurrences(payload: Any) -> list[Recurrence]:
    return [normalize_recurrence(item) for item in extract_items(payload)]


@tolerant("subscription", Subscription)
def normalize_subscription(raw: Any) -> Subscription:
    s = _require_mapping(raw, "subscription")
    f = SUBSCRIPTION_FIELDS
    return Subscription(
        id=to_int(pick(s, f["id"])),
        name=to_text(pick(s, f["name"])),
        amount=to_magnitude(pick(s, f["amount"])),
        category_id=to_optional_int(pick(s, f["category_id"])),
        frequency=to_text(pick(s, f["frequency"]), "Mensal"),
        start_date=to_datetime(pick(s, f["start_date"])),
        next_charge=to_datetime(pick(s, f["next_charge"])),
        active=to_bool(pick(s, f["active"]), True),
        currency=to_text(pick(s, f["currency"]), default_currency()),
    )


def normalize_subscriptions(payload: Any) -> list[Subscription]:
    return [normalize_subscription(item) for item in extract_items(payload)]


# =============================================================================
# TAGS, CATEGORIES, INSIGHTS
# =============================================================================

@tolerant("tag", Tag)
def normalize_tag(raw: Any) -> Tag:
    t = _require_mapping(raw, "tag")
    return Tag(
        id=to_int(pick(t, TAG_FIELDS["id"])),
        name=to_text(pick(t, TAG_FIELDS["name"])),
    )


def normalize_tag_list(payload: Any) -> list[Tag]:
    return [normalize_tag(item) for item in extract_items(payload)]


@tolerant("category", Category)
def normalize_category(raw: Any) -> Category:
    c = _require_mapping(raw, "category")
    return Category(
        id=to_int(pick(c, CATEGORY_FIELDS["id"])),
        name=to_text(pick(c, CATEGORY_FIELDS["name"])),
    )


def normalize_categories(payload: Any) -> list[Category]:
    return [normalize_category(item) for item in extract_items(payload)]


@tolerant("insights", list)
def normalize_insights(payload: Any) -> list[str]:
    """
    Flatten the insights response to a list of messages.

    Accepts a bare list, or an object carrying the messages (or a single
    message string) under insights / mensagens / mensagem / message / texto.
    """
    if isinstance(payload, list):
        source: Any = payload
    elif isinstance(payload, Mapping):
        source = pick(payload, INSIGHT_LIST_KEYS)
    else:
        return []

    if isinstance(source, str):
        source = [source]
    if not isinstance(source, list):
        return []
    return [text for text in (to_text(item) for item in source) if text]
