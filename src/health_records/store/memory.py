"""In-process document store for local development and tests."""

import asyncio
import copy
import itertools
from collections.abc import AsyncIterator

import structlog

from ..types import JSONObject, StoreHealth
from .base import (
    CountQuery,
    DateBetween,
    DateEquals,
    DocumentQuery,
    DocumentStore,
    DuplicateDocumentError,
    Order,
    Predicate,
)

logger = structlog.get_logger(__name__)


def _matches(predicate: Predicate, document: JSONObject) -> bool:
    if isinstance(predicate, DateEquals):
        return document.get("date") == predicate.date
    if isinstance(predicate, DateBetween):
        value = document.get("date")
        return isinstance(value, str) and predicate.start <= value <= predicate.end
    return True


class InMemoryDocumentStore(DocumentStore):
    """Partitioned store that mimics a document database's query contract.

    Every insert is stamped with an increasing ``_ts`` sequence number that
    stands in for the server write timestamp, and query results are yielded
    in batches of ``batch_size`` rows.
    """

    backend = "memory"

    def __init__(self, batch_size: int = 100) -> None:
        if batch_size < 1:
            raise ValueError(f"Batch size must be at least 1, got {batch_size}")
        self._batch_size = batch_size
        self._partitions: dict[str, dict[str, JSONObject]] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    async def _snapshot(self, partition_key: str, predicate: Predicate) -> list[JSONObject]:
        async with self._lock:
            partition = self._partitions.get(partition_key, {})
            return [
                copy.deepcopy(document)
                for document in partition.values()
                if _matches(predicate, document)
            ]

    async def query(self, query: DocumentQuery) -> AsyncIterator[list[JSONObject]]:
        rows = await self._snapshot(query.partition_key, query.predicate)
        if query.order is Order.NEWEST_FIRST:
            rows.sort(key=lambda row: row["_ts"], reverse=True)

        start = query.offset or 0
        stop = start + query.limit if query.limit is not None else None
        rows = rows[start:stop]

        for index in range(0, len(rows), self._batch_size):
            # Yield control between batches like a network round-trip would
            await asyncio.sleep(0)
            yield rows[index : index + self._batch_size]

    async def count(self, query: CountQuery) -> AsyncIterator[list[int]]:
        rows = await self._snapshot(query.partition_key, query.predicate)
        await asyncio.sleep(0)
        yield [len(rows)]

    async def create(self, document: JSONObject, partition_key: str) -> None:
        document_id = document.get("id")
        if not isinstance(document_id, str) or not document_id:
            raise ValueError("Document must carry a non-empty string 'id'")

        async with self._lock:
            partition = self._partitions.setdefault(partition_key, {})
            if document_id in partition:
                raise DuplicateDocumentError(document_id, partition_key)
            stored = copy.deepcopy(document)
            stored["_ts"] = next(self._sequence)
            partition[document_id] = stored

        logger.debug("memory_document_created", id=document_id, partition=partition_key)

    async def health_check(self) -> StoreHealth:
        async with self._lock:
            documents = sum(len(p) for p in self._partitions.values())
            partitions = len(self._partitions)
        return {
            "healthy": True,
            "backend": self.backend,
            "partitions": partitions,
            "documents": documents,
        }
