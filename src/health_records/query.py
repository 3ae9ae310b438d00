"""Partition-scoped count, window, key and range queries.

Every read the repositories perform goes through this module:

* ``estimate_count`` degrades to an unavailable count of zero on failure
  instead of failing the page.
* ``fetch_window`` drains every result batch into one list; its failures
  are logged and re-raised unchanged.
* ``paginate`` overlaps the two and assembles the page response.
* ``get_by_key`` returns the first of zero or more matches for a date.
"""

import asyncio
import time
from collections.abc import AsyncIterable
from typing import TypeVar

import structlog
from pydantic import BaseModel

from .metrics import COUNT_DEGRADED, DUPLICATE_KEY_MATCHES, STORE_QUERIES, STORE_QUERY_DURATION
from .pagination import CountResult, PaginationRequest, PaginationResponse, assemble
from .store.base import (
    CountQuery,
    DateEquals,
    DocumentQuery,
    DocumentStore,
    Order,
    Predicate,
)

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)
R = TypeVar("R")


async def drain(batches: AsyncIterable[list[R]]) -> list[R]:
    """Collect every row of a batched result into a single list."""
    rows: list[R] = []
    async for batch in batches:
        rows.extend(batch)
    return rows


async def estimate_count(
    store: DocumentStore,
    partition_key: str,
    predicate: Predicate,
    operation: str,
) -> CountResult:
    """Count documents in a partition matching ``predicate``.

    Never raises for store errors; a failed count is reported as
    ``CountResult.unavailable()``.
    """
    count_operation = f"{operation}.count"
    started = time.perf_counter()
    try:
        rows = await drain(store.count(CountQuery(partition_key=partition_key, predicate=predicate)))
        STORE_QUERIES.labels(operation=count_operation, status="success").inc()
        return CountResult(value=int(rows[0]) if rows else 0)
    except Exception as e:
        logger.error(
            "count_query_failed",
            operation=operation,
            document_kind=partition_key,
            error=str(e),
            error_type=type(e).__name__,
        )
        STORE_QUERIES.labels(operation=count_operation, status="error").inc()
        COUNT_DEGRADED.labels(document_kind=partition_key).inc()
        return CountResult.unavailable()
    finally:
        STORE_QUERY_DURATION.labels(operation=count_operation).observe(
            time.perf_counter() - started
        )


async def fetch_window(
    store: DocumentStore,
    query: DocumentQuery,
    model: type[M],
    operation: str,
) -> list[M]:
    """Run ``query`` and return every matching document as ``model``.

    Raises:
        Exception: Whatever the store or validation raised, unchanged.
    """
    started = time.perf_counter()
    try:
        rows = await drain(store.query(query))
        documents = [model.model_validate(row) for row in rows]
    except asyncio.CancelledError:
        STORE_QUERIES.labels(operation=operation, status="cancelled").inc()
        raise
    except Exception as e:
        logger.error(
            "document_query_failed",
            operation=operation,
            document_kind=query.partition_key,
            error=str(e),
            error_type=type(e).__name__,
        )
        STORE_QUERIES.labels(operation=operation, status="error").inc()
        raise
    finally:
        STORE_QUERY_DURATION.labels(operation=operation).observe(time.perf_counter() - started)

    STORE_QUERIES.labels(operation=operation, status="success").inc()
    return documents


async def paginate(
    store: DocumentStore,
    partition_key: str,
    predicate: Predicate,
    request: PaginationRequest,
    model: type[M],
    operation: str,
) -> PaginationResponse[M]:
    """Fetch one newest-first page of a partition plus its total count.

    The count runs concurrently with the window fetch and is cancelled if
    the fetch fails or is cancelled.
    """
    count_task = asyncio.create_task(estimate_count(store, partition_key, predicate, operation))
    window = DocumentQuery(
        partition_key=partition_key,
        predicate=predicate,
        order=Order.NEWEST_FIRST,
        offset=request.skip,
        limit=request.page_size,
    )
    try:
        items = await fetch_window(store, window, model, operation)
    except BaseException:
        count_task.cancel()
        raise

    count = await count_task
    logger.info(
        "page_fetched",
        operation=operation,
        document_kind=partition_key,
        page_number=request.page_number,
        page_size=request.page_size,
        items=len(items),
        total_count=count.value,
        count_status=count.status.value,
    )
    return assemble(items, count, request)


async def get_by_key(
    store: DocumentStore,
    partition_key: str,
    date: str,
    model: type[M],
    operation: str,
) -> M | None:
    """Return the first document dated ``date``, or None when there is none.

    Dates are not unique in the store; when several documents match, the
    first in store order wins and the duplicate is logged.
    """
    query = DocumentQuery(partition_key=partition_key, predicate=DateEquals(date=date))
    matches = await fetch_window(store, query, model, operation)
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            "duplicate_key_matches",
            operation=operation,
            document_kind=partition_key,
            date=date,
            matches=len(matches),
        )
        DUPLICATE_KEY_MATCHES.labels(document_kind=partition_key).inc()
    return matches[0]
