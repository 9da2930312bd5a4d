"""
Full-Set Transaction Exporter

Retrieves EVERY transaction matching a query, page by page, for export.

DESIGN DECISION: Pages are fetched strictly sequentially. Page N+1 is only
requested after page N has been normalized, so at most one export request
is in flight and records keep the server's order.

STOP RULES:
- Continue while the server signals more AND the last page was full.
- A short or empty page ends the export, whatever the metadata claims.
- Reaching the page bound while the server still signals more raises
  ExportIncompleteError. A silently truncated export is never returned.
- Any page failure raises ExportFailedError; partial records are discarded.
"""

from typing import Optional

from pydantic import BaseModel, Field

from src.config.log import get_logger
from src.config.settings import ExportSettings, get_settings
from src.metrics.aggregates import summarize_transactions
from src.models.finance import Transaction, TransactionPage, TransactionQuery, TransactionTotals
from src.services.api import FinanceApi
from src.services.transport.interface import RequestFailedError


logger = get_logger(__name__)

EXPORT_FAILED_MESSAGE = "Erro ao buscar dados para exportação."
EXPORT_INCOMPLETE_MESSAGE = "A exportação excedeu o limite de páginas e foi interrompida."


class ExportFailedError(Exception):
    """A page request failed; the export was aborted."""

    def __init__(self, partial_count: int, reason: str = ""):
        message = f"Export aborted after {partial_count} records"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.partial_count = partial_count
        self.user_message = EXPORT_FAILED_MESSAGE


class ExportIncompleteError(Exception):
    """The page bound was reached while the server still signalled more data."""

    def __init__(self, records: list[Transaction], pages: int):
        super().__init__(f"Export stopped at the {pages}-page bound with {len(records)} records")
        self.records = records
        self.pages = pages
        self.user_message = EXPORT_INCOMPLETE_MESSAGE


class ExportResult(BaseModel):
    """Every matching transaction in server order, with its totals."""

    transactions: list[Transaction] = Field(default_factory=list)
    totals: TransactionTotals = Field(default_factory=TransactionTotals)
    pages_fetched: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.transactions


class TransactionPageSequence:
    """
    Bounded async iterator over the pages of a transaction query.

    Yields pages 1, 2, ... until a stop rule ends the listing. If the
    bound is reached first, iteration ends with `truncated` set.
    """

    def __init__(
        self,
        api: FinanceApi,
        query: TransactionQuery,
        page_size: int,
        max_pages: int,
        timeout: Optional[float] = None,
    ):
        self._api = api
        self._query = query
        self._page_size = page_size
        self._max_pages = max_pages
        self._timeout = timeout
        self._pages_fetched = 0
        self._done = False
        self.truncated = False

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    @property
    def page_size(self) -> int:
        return self._page_size

    def __aiter__(self) -> "TransactionPageSequence":
        return self

    async def __anext__(self) -> TransactionPage:
        if self._done:
            raise StopAsyncIteration
        if self._pages_fetched >= self._max_pages:
            self.truncated = True
            self._done = True
            raise StopAsyncIteration

        page_number = self._pages_fetched + 1
        page_query = self._query.model_copy(update={
            "page": page_number,
            "page_size": self._page_size,
            "limit": None,
            "offset": None,
        })
        page = await self._api.list_transactions(page_query, timeout=self._timeout)
        self._pages_fetched = page_number

        page_was_full = len(page.items) >= self._page_size
        if not (page.has_next and page_was_full):
            self._done = True

        return page


class FullSetExporter:
    """
    Collects the complete transaction set for a query.

    Usage:
        exporter = FullSetExporter(api)
        result = await exporter.fetch_all(TransactionQuery(start=..., end=...))
    """

    def __init__(
        self,
        api: FinanceApi,
        settings: Optional[ExportSettings] = None,
    ):
        self._api = api
        self._settings = settings or get_settings().export

    def pages(self, query: TransactionQuery) -> TransactionPageSequence:
        requested = query.page_size or query.limit or self._settings.max_page_size
        return TransactionPageSequence(
            self._api,
            query,
            page_size=min(requested, self._settings.max_page_size),
            max_pages=self._settings.max_pages,
            timeout=self._api.settings.export_timeout_seconds,
        )

    async def fetch_all(self, query: Optional[TransactionQuery] = None) -> ExportResult:
        """
        Fetch every page and return the ordered records with totals.

        Raises:
            ExportFailedError: If any page request fails
            ExportIncompleteError: If the page bound is reached first
        """
        query = query or TransactionQuery()
        sequence = self.pages(query)
        records: list[Transaction] = []
        seen_ids: set[int] = set()

        try:
            async for page in sequence:
                for transaction in page.items:
                    if transaction.id and transaction.id in seen_ids:
                        logger.warning(
                            "export_duplicate_skipped",
                            transaction_id=transaction.id,
                            page=sequence.pages_fetched,
                        )
                        continue
                    if transaction.id:
                        seen_ids.add(transaction.id)
                    records.append(transaction)

                logger.info(
                    "export_page_fetched",
                    page=sequence.pages_fetched,
                    items=len(page.items),
                    has_next=page.has_next,
                )
        except RequestFailedError as e:
            logger.error(
                "export_failed",
                page=sequence.pages_fetched + 1,
                partial_count=len(records),
                error=str(e),
            )
            raise ExportFailedError(len(records), str(e)) from e

        if sequence.truncated:
            logger.error(
                "export_incomplete",
                pages=sequence.pages_fetched,
                records=len(records),
            )
            raise ExportIncompleteError(records, sequence.pages_fetched)

        return ExportResult(
            transactions=records,
            totals=summarize_transactions(records),
            pages_fetched=sequence.pages_fetched,
        )
