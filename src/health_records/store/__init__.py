"""Document store backends."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ..config import Settings
from .base import (
    CountQuery,
    DateBetween,
    DateEquals,
    DocumentQuery,
    DocumentStore,
    DocumentStoreError,
    DuplicateDocumentError,
    Order,
    PartitionScope,
    Predicate,
)
from .memory import InMemoryDocumentStore


def build_store(settings: Settings) -> DocumentStore:
    """Instantiate the configured store backend without connecting it."""
    if settings.store.backend == "memory":
        return InMemoryDocumentStore(batch_size=settings.store.batch_size)

    from .cosmos import CosmosDocumentStore

    return CosmosDocumentStore(settings.cosmos)


@asynccontextmanager
async def create_store(settings: Settings) -> AsyncIterator[DocumentStore]:
    """Context manager for creating and managing a document store.

    Args:
        settings: Application settings.

    Yields:
        Connected DocumentStore instance.
    """
    store = build_store(settings)
    await store.connect()
    try:
        yield store
    finally:
        await store.close()


__all__ = [
    "CountQuery",
    "DateBetween",
    "DateEquals",
    "DocumentQuery",
    "DocumentStore",
    "DocumentStoreError",
    "DuplicateDocumentError",
    "InMemoryDocumentStore",
    "Order",
    "PartitionScope",
    "Predicate",
    "build_store",
    "create_store",
]
