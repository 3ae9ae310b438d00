"""One-shot ingestion workers: fetch from Fitbit, map to documents, store."""

from abc import ABC, abstractmethod
from datetime import date as date_type
from datetime import timedelta

import structlog

from .documents import DocumentKind, HealthDocument, new_document
from .fitbit import FitbitClient
from .metrics import WORKER_RUNS
from .repository import DocumentRepository, repository_for
from .store.base import DocumentStore

logger = structlog.get_logger(__name__)

# Weight logs are fetched for this many days before the run date
WEIGHT_LOOKBACK_DAYS = 7


class IngestionWorker(ABC):
    """Base class for per-kind ingestion workers."""

    kind: DocumentKind

    def __init__(self, fitbit: FitbitClient, repository: DocumentRepository) -> None:
        if repository.kind is not self.kind:
            raise ValueError(
                f"{type(self).__name__} needs a {self.kind.value} repository, "
                f"got {repository.kind.value}"
            )
        self._fitbit = fitbit
        self._repository = repository

    @abstractmethod
    async def collect(self, day: str) -> list[HealthDocument]:
        """Fetch the Fitbit data for ``day`` and map it to new documents."""

    async def run(self, day: str | None = None) -> int:
        """Ingest one day of data.

        Args:
            day: Day to ingest (YYYY-MM-DD); defaults to today.

        Returns:
            Process exit code: 0 on success, 1 on failure.
        """
        day = day or date_type.today().isoformat()
        worker = type(self).__name__
        logger.info("worker_started", worker=worker, date=day)

        try:
            documents = await self.collect(day)
            for document in documents:
                await self._repository.create(document)
        except Exception as e:
            logger.error(
                "worker_failed",
                worker=worker,
                date=day,
                error=str(e),
                error_type=type(e).__name__,
            )
            WORKER_RUNS.labels(document_kind=self.kind.value, status="failure").inc()
            return 1

        WORKER_RUNS.labels(document_kind=self.kind.value, status="success").inc()
        logger.info("worker_finished", worker=worker, date=day, documents=len(documents))
        return 0


class ActivityWorker(IngestionWorker):
    kind = DocumentKind.ACTIVITY

    async def collect(self, day: str) -> list[HealthDocument]:
        activity = await self._fitbit.get_activity(day)
        return [new_document(self.kind, day, activity)]


class SleepWorker(IngestionWorker):
    kind = DocumentKind.SLEEP

    async def collect(self, day: str) -> list[HealthDocument]:
        sleep = await self._fitbit.get_sleep(day)
        return [new_document(self.kind, day, sleep)]


class FoodWorker(IngestionWorker):
    kind = DocumentKind.FOOD

    async def collect(self, day: str) -> list[HealthDocument]:
        food = await self._fitbit.get_food(day)
        return [new_document(self.kind, day, food)]


class WeightWorker(IngestionWorker):
    """Stores one document per weight log, dated by the log itself."""

    kind = DocumentKind.WEIGHT

    async def collect(self, day: str) -> list[HealthDocument]:
        end = date_type.fromisoformat(day)
        start = end - timedelta(days=WEIGHT_LOOKBACK_DAYS)
        response = await self._fitbit.get_weight_logs(start.isoformat(), end.isoformat())
        return [new_document(self.kind, log.date, log) for log in response.weight]


WORKERS: dict[DocumentKind, type[IngestionWorker]] = {
    worker.kind: worker for worker in (ActivityWorker, SleepWorker, FoodWorker, WeightWorker)
}


def build_worker(kind: DocumentKind, fitbit: FitbitClient, store: DocumentStore) -> IngestionWorker:
    """Build the ingestion worker for a document kind."""
    return WORKERS[kind](fitbit, repository_for(kind, store))
