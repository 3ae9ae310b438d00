"""Per-document-kind repository facade over the shared document store."""

from typing import Generic, TypeVar

import structlog

from .documents import DOCUMENT_MODELS, DocumentKind, HealthDocument
from .metrics import DOCUMENTS_WRITTEN
from .pagination import PaginationRequest, PaginationResponse
from .query import get_by_key, paginate
from .store.base import DateBetween, DocumentStore, DuplicateDocumentError, PartitionScope
from .tracing import document_span

logger = structlog.get_logger(__name__)

D = TypeVar("D", bound=HealthDocument)


class DocumentRepository(Generic[D]):
    """Read and write documents of one kind.

    The repository holds no per-call state: the store handle is shared and
    the partition key is fixed by the document kind, so one instance can
    serve any number of concurrent callers.
    """

    def __init__(self, store: DocumentStore, model: type[D]) -> None:
        self._store = store
        self._model = model
        self._kind = model.kind

    @property
    def kind(self) -> DocumentKind:
        return self._kind

    @property
    def model(self) -> type[D]:
        return self._model

    @property
    def partition_key(self) -> str:
        return self._kind.value

    async def get_by_date(self, date: str) -> D | None:
        """Get the document for a day, or None if nothing was stored for it."""
        with document_span("get_by_date", self.partition_key, date=date):
            return await get_by_key(
                self._store, self.partition_key, date, self._model, "get_by_date"
            )

    async def get_all(self, request: PaginationRequest) -> PaginationResponse[D]:
        """Get one page of documents, most recently written first."""
        logger.info(
            "get_all_documents",
            document_kind=self.partition_key,
            page_number=request.page_number,
            page_size=request.page_size,
        )
        with document_span(
            "get_all",
            self.partition_key,
            page_number=request.page_number,
            page_size=request.page_size,
        ):
            return await paginate(
                self._store,
                self.partition_key,
                PartitionScope(),
                request,
                self._model,
                "get_all",
            )

    async def get_by_date_range(
        self,
        start_date: str,
        end_date: str,
        request: PaginationRequest,
    ) -> PaginationResponse[D]:
        """Get one page of documents dated within ``[start_date, end_date]``.

        Bounds must already be valid YYYY-MM-DD dates with start <= end.
        """
        logger.info(
            "get_documents_by_date_range",
            document_kind=self.partition_key,
            start_date=start_date,
            end_date=end_date,
            page_number=request.page_number,
            page_size=request.page_size,
        )
        with document_span(
            "get_by_date_range",
            self.partition_key,
            start_date=start_date,
            end_date=end_date,
        ):
            return await paginate(
                self._store,
                self.partition_key,
                DateBetween(start=start_date, end=end_date),
                request,
                self._model,
                "get_by_date_range",
            )

    async def create(self, document: D) -> None:
        """Insert a new document into this kind's partition.

        Raises:
            DuplicateDocumentError: If the document id is already stored.
        """
        if document.document_type is not self._kind:
            raise ValueError(
                f"Cannot store a {document.document_type.value} document in the "
                f"{self.partition_key} repository"
            )
        try:
            await self._store.create(document.to_store(), self.partition_key)
        except DuplicateDocumentError as e:
            logger.error("document_create_duplicate", document_kind=self.partition_key, id=e.document_id)
            DOCUMENTS_WRITTEN.labels(document_kind=self.partition_key, status="duplicate").inc()
            raise
        except Exception as e:
            logger.error(
                "document_create_failed",
                operation="create",
                document_kind=self.partition_key,
                error=str(e),
            )
            DOCUMENTS_WRITTEN.labels(document_kind=self.partition_key, status="error").inc()
            raise

        DOCUMENTS_WRITTEN.labels(document_kind=self.partition_key, status="success").inc()
        logger.info(
            "document_created",
            document_kind=self.partition_key,
            id=document.id,
            date=document.date,
        )


def repository_for(kind: DocumentKind, store: DocumentStore) -> DocumentRepository[HealthDocument]:
    """Build the repository for a document kind."""
    return DocumentRepository(store, DOCUMENT_MODELS[kind])
