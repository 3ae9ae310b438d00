"""Document store contract and the query shapes every backend understands."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum

from ..types import JSONObject, StoreHealth


class Order(Enum):
    """Result ordering for a document query."""

    NONE = "none"  # whatever the store returns by default
    NEWEST_FIRST = "newest_first"  # insertion order, descending


@dataclass(frozen=True)
class PartitionScope:
    """Every document in the partition."""


@dataclass(frozen=True)
class DateEquals:
    """Documents whose ``date`` equals the given day."""

    date: str


@dataclass(frozen=True)
class DateBetween:
    """Documents whose ``date`` lies in ``[start, end]``, both inclusive."""

    start: str
    end: str


Predicate = PartitionScope | DateEquals | DateBetween


@dataclass(frozen=True)
class DocumentQuery:
    """A partition-scoped document query with optional offset windowing."""

    partition_key: str
    predicate: Predicate = field(default_factory=PartitionScope)
    order: Order = Order.NONE
    offset: int | None = None
    limit: int | None = None


@dataclass(frozen=True)
class CountQuery:
    """Count of documents in a partition matching a predicate."""

    partition_key: str
    predicate: Predicate = field(default_factory=PartitionScope)


class DocumentStoreError(Exception):
    """Base class for document store failures."""


class DuplicateDocumentError(DocumentStoreError):
    """Raised when a document id already exists in its partition."""

    def __init__(self, document_id: str, partition_key: str) -> None:
        super().__init__(
            f"Document '{document_id}' already exists in partition '{partition_key}'"
        )
        self.document_id = document_id
        self.partition_key = partition_key


class DocumentStore(ABC):
    """Partitioned document store used by the repositories.

    ``query`` and ``count`` return fresh async iterators of result batches on
    every call; a batch corresponds to one round-trip to the store.
    """

    backend: str

    async def connect(self) -> None:
        """Open connections to the store."""

    async def close(self) -> None:
        """Release connections to the store."""

    @abstractmethod
    def query(self, query: DocumentQuery) -> AsyncIterator[list[JSONObject]]:
        """Stream batches of raw documents matching ``query``."""

    @abstractmethod
    def count(self, query: CountQuery) -> AsyncIterator[list[int]]:
        """Stream batches of count rows for ``query``."""

    @abstractmethod
    async def create(self, document: JSONObject, partition_key: str) -> None:
        """Insert a new document.

        Raises:
            DuplicateDocumentError: If the id already exists in the partition.
        """

    @abstractmethod
    async def health_check(self) -> StoreHealth:
        """Report store connectivity."""
