"""
Pagination Reconciliation

The listing endpoint has been served by backends speaking two paging
conventions: page/pageSize and the legacy limit/offset. Every outgoing
query carries BOTH, so either kind of server answers correctly.

RULES:
- page + page_size -> offset = (page - 1) * page_size, limit = page_size
- limit + offset   -> page = offset // limit + 1, page_size = limit
- Explicit values are always transmitted unchanged; only the missing
  counterparts are derived, page/pageSize-derived values first.
- A zero or missing divisor skips the derivation (never divides by zero).
- A negative offset is clamped to 0.
"""

from typing import Any, Optional

from src.models.finance import PaginationMeta, PaginationQuery, TransactionQuery


def reconcile(
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> PaginationQuery:
    """
    Fill in the paging fields of one convention from the other.

    Examples:
        reconcile(page=3, page_size=50)  -> page=3, page_size=50, limit=50, offset=100
        reconcile(limit=50, offset=100)  -> page=3, page_size=50, limit=50, offset=100
    """
    out_page_size = page_size
    if not out_page_size and limit is not None:
        out_page_size = limit

    out_limit = limit
    if out_limit is None and page_size:
        out_limit = page_size

    out_offset = offset
    if out_offset is not None and out_offset < 0:
        out_offset = 0
    if out_offset is None and page is not None and page_size:
        out_offset = (page - 1) * page_size

    out_page = page
    if out_page is None and offset is not None and limit:
        out_page = out_offset // limit + 1

    return PaginationQuery(
        page=out_page,
        page_size=out_page_size,
        limit=out_limit,
        offset=out_offset,
    )


def has_more(
    meta: Optional[PaginationMeta],
    item_count: int,
    page_size: Optional[int],
    offset: Optional[int] = None,
    page: Optional[int] = None,
) -> bool:
    """
    Decide whether another page may exist.

    An explicit has_next from the server is authoritative. Otherwise the
    server totals decide: offset + item_count < total_items, or
    page < total_pages. Without any of them, a full page suggests more
    data; a short or empty page ends the listing.
    """
    if meta is None:
        meta = PaginationMeta()
    if meta.has_next is not None:
        return meta.has_next
    if meta.total_items is not None and offset is not None:
        return offset + item_count < meta.total_items
    if meta.total_pages is not None and page is not None:
        return page < meta.total_pages
    return bool(page_size) and item_count >= page_size


def build_transaction_params(query: TransactionQuery) -> dict[str, str]:
    """
    Flatten a transaction query into string-valued request parameters.

    Paging is reconciled first so both conventions are always present.
    Filters are only sent when set.
    """
    paging = reconcile(
        page=query.page,
        page_size=query.page_size,
        limit=query.limit,
        offset=query.offset,
    )

    params: dict[str, Any] = {}
    if query.account_id is not None:
        params["contaId"] = query.account_id
    if paging.page is not None:
        params["page"] = paging.page
    if paging.page_size is not None:
        params["pageSize"] = paging.page_size
    if paging.limit is not None:
        params["limit"] = paging.limit
    if paging.offset is not None:
        params["offset"] = paging.offset
    if query.kind:
        params["tipo"] = query.kind.api_code
    if query.category_id:
        params["categoriaId"] = query.category_id
    if query.start is not None:
        params["inicio"] = query.start.isoformat()
    if query.end is not None:
        params["fim"] = query.end.isoformat()
    if query.description:
        params["descricao"] = query.description

    return {key: str(value) for key, value in params.items()}
