"""Tests for the per-kind document repositories."""

import asyncio

import pytest

from health_records.documents import (
    ActivityDocument,
    DocumentKind,
    SleepDocument,
    WeightDocument,
    new_document,
)
from health_records.pagination import CountStatus, PaginationRequest
from health_records.repository import DocumentRepository, repository_for
from health_records.store import DuplicateDocumentError, InMemoryDocumentStore
from conftest import make_activity


class BrokenStore(InMemoryDocumentStore):
    """Store where every operation fails."""

    async def query(self, query):
        raise TimeoutError("request timed out")
        yield  # pragma: no cover

    async def count(self, query):
        raise TimeoutError("request timed out")
        yield  # pragma: no cover

    async def create(self, document, partition_key):
        raise TimeoutError("request timed out")



class StallingStore(InMemoryDocumentStore):
    """Store that stalls after its first result batch while the count never finishes."""

    def __init__(self) -> None:
        super().__init__(batch_size=1)
        self.first_batch = asyncio.Event()
        self.batches_read = 0
        self.count_cancelled = False

    async def query(self, query):
        async for batch in super().query(query):
            self.batches_read += 1
            yield batch
            self.first_batch.set()
            await asyncio.sleep(60)

    async def count(self, query):
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.count_cancelled = True
            raise
        yield [0]  # pragma: no cover


@pytest.fixture
def activity_repository(seeded_store) -> DocumentRepository:
    return repository_for(DocumentKind.ACTIVITY, seeded_store)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_all_returns_every_document(self, activity_repository):
        page = await activity_repository.get_all(PaginationRequest(page_number=1, page_size=10))
        assert page.total_count == 3
        assert len(page.items) == 3
        assert page.total_pages == 1
        assert page.count_status is CountStatus.EXACT

    @pytest.mark.asyncio
    async def test_range_covering_all_documents(self, activity_repository):
        page = await activity_repository.get_by_date_range(
            "2024-01-01", "2024-01-31", PaginationRequest(page_number=1, page_size=10)
        )
        assert sorted(d.date for d in page.items) == ["2024-01-01", "2024-01-15", "2024-01-31"]
        assert page.total_count == 3

    @pytest.mark.asyncio
    async def test_range_with_no_documents(self, activity_repository):
        page = await activity_repository.get_by_date_range(
            "2024-02-01", "2024-02-28", PaginationRequest(page_number=1, page_size=10)
        )
        assert page.items == []
        assert page.total_count == 0
        assert page.total_pages == 0
        assert not page.has_next_page

    @pytest.mark.asyncio
    async def test_range_bounds_are_inclusive(self, activity_repository):
        page = await activity_repository.get_by_date_range(
            "2024-01-15", "2024-01-15", PaginationRequest()
        )
        assert [d.date for d in page.items] == ["2024-01-15"]

    @pytest.mark.asyncio
    async def test_get_by_date(self, activity_repository):
        document = await activity_repository.get_by_date("2024-01-31")
        assert isinstance(document, ActivityDocument)
        assert document.activity is not None
        assert document.activity.summary.steps == 1000

    @pytest.mark.asyncio
    async def test_get_by_date_absent(self, activity_repository):
        assert await activity_repository.get_by_date("2023-12-31") is None

    @pytest.mark.asyncio
    async def test_reads_are_scoped_to_the_partition(self, seeded_store):
        sleep = repository_for(DocumentKind.SLEEP, seeded_store)
        page = await sleep.get_all(PaginationRequest())
        assert page.items == []
        assert page.total_count == 0
        assert await sleep.get_by_date("2024-01-15") is None

    @pytest.mark.asyncio
    async def test_repeated_reads_return_identical_pages(self, activity_repository):
        request = PaginationRequest(page_number=1, page_size=2)
        first = await activity_repository.get_all(request)
        second = await activity_repository.get_all(request)
        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_repository(self, activity_repository):
        pages = await asyncio.gather(
            activity_repository.get_all(PaginationRequest(page_number=1, page_size=1)),
            activity_repository.get_all(PaginationRequest(page_number=2, page_size=1)),
            activity_repository.get_all(PaginationRequest(page_number=3, page_size=1)),
        )
        assert [page.items[0].date for page in pages] == [
            "2024-01-31",
            "2024-01-15",
            "2024-01-01",
        ]


class TestFailures:
    @pytest.mark.asyncio
    async def test_window_failure_propagates(self):
        repository = repository_for(DocumentKind.ACTIVITY, BrokenStore())
        with pytest.raises(TimeoutError):
            await repository.get_all(PaginationRequest())

    @pytest.mark.asyncio
    async def test_get_by_date_failure_propagates(self):
        repository = repository_for(DocumentKind.ACTIVITY, BrokenStore())
        with pytest.raises(TimeoutError):
            await repository.get_by_date("2024-01-01")

    @pytest.mark.asyncio
    async def test_failure_in_one_call_does_not_affect_the_next(self, seeded_store):
        class FlakyStore(InMemoryDocumentStore):
            failed = False

            async def query(self, query):
                if not FlakyStore.failed:
                    FlakyStore.failed = True
                    raise ConnectionError("transient")
                async for batch in super().query(query):
                    yield batch

        store = FlakyStore()
        await store.create(new_document(DocumentKind.SLEEP, "2024-01-01", {}).to_store(), "Sleep")
        repository = repository_for(DocumentKind.SLEEP, store)

        with pytest.raises(ConnectionError):
            await repository.get_all(PaginationRequest())
        page = await repository.get_all(PaginationRequest())
        assert len(page.items) == 1
        assert page.total_count == 1

    @pytest.mark.asyncio
    async def test_cancel_mid_drain_stops_reading_and_cancels_count(self):
        store = StallingStore()
        for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
            await store.create(make_activity(day), "Activity")
        repository = repository_for(DocumentKind.ACTIVITY, store)

        task = asyncio.create_task(repository.get_all(PaginationRequest(page_size=10)))
        await asyncio.wait_for(store.first_batch.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        for _ in range(5):
            await asyncio.sleep(0)

        assert store.batches_read == 1
        assert store.count_cancelled


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_then_read_back(self, memory_store):
        repository = repository_for(DocumentKind.SLEEP, memory_store)
        document = new_document(DocumentKind.SLEEP, "2024-03-01", {"summary": {"totalMinutesAsleep": 420}})

        await repository.create(document)

        stored = await repository.get_by_date("2024-03-01")
        assert isinstance(stored, SleepDocument)
        assert stored.id == document.id
        assert stored.sleep.summary.total_minutes_asleep == 420

    @pytest.mark.asyncio
    async def test_create_duplicate_id_raises(self, memory_store):
        repository = repository_for(DocumentKind.ACTIVITY, memory_store)
        document = new_document(DocumentKind.ACTIVITY, "2024-03-01", {})
        await repository.create(document)

        with pytest.raises(DuplicateDocumentError) as exc_info:
            await repository.create(document)
        assert exc_info.value.document_id == document.id
        assert exc_info.value.partition_key == "Activity"

    @pytest.mark.asyncio
    async def test_create_rejects_other_kinds(self, memory_store):
        repository = repository_for(DocumentKind.ACTIVITY, memory_store)
        weight = WeightDocument(id="w1", date="2024-03-01", weight={"date": "2024-03-01"})
        with pytest.raises(ValueError, match="Weight"):
            await repository.create(weight)

    @pytest.mark.asyncio
    async def test_create_failure_propagates(self):
        repository = repository_for(DocumentKind.ACTIVITY, BrokenStore())
        with pytest.raises(TimeoutError):
            await repository.create(new_document(DocumentKind.ACTIVITY, "2024-03-01", {}))
