"""Tests for the Cosmos DB store backend."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos import exceptions

from health_records.config import CosmosSettings
from health_records.query import drain
from health_records.store import (
    CountQuery,
    DateBetween,
    DateEquals,
    DocumentQuery,
    DuplicateDocumentError,
    Order,
)
from health_records.store.cosmos import CosmosDocumentStore, render_count, render_query


def _make_settings(max_item_count: int = 100) -> CosmosSettings:
    """Create CosmosSettings isolated from env vars."""
    return CosmosSettings(
        _env_file=None,
        endpoint="https://example.documents.azure.com:443/",
        key="test-key",
        database="biotrackr",
        container="records",
        max_item_count=max_item_count,
    )


async def _aiter(items):
    for item in items:
        yield item


def _pager(*pages):
    pager = MagicMock()
    pager.by_page.return_value = _aiter([_aiter(page) for page in pages])
    return pager


def _make_container() -> MagicMock:
    container = MagicMock()
    container.read = AsyncMock(return_value={"id": "records"})
    container.create_item = AsyncMock()
    return container


async def _connected_store(container: MagicMock) -> CosmosDocumentStore:
    client = MagicMock()
    client.get_database_client.return_value.get_container_client.return_value = container
    store = CosmosDocumentStore(_make_settings(), client=client)
    await store.connect()
    return store


class TestRenderQuery:
    def test_whole_partition(self):
        sql, parameters = render_query(DocumentQuery(partition_key="Activity"))
        assert sql == "SELECT * FROM c"
        assert parameters == []

    def test_date_equals(self):
        sql, parameters = render_query(
            DocumentQuery(partition_key="Sleep", predicate=DateEquals("2024-01-15"))
        )
        assert sql == "SELECT * FROM c WHERE c.date = @date"
        assert parameters == [{"name": "@date", "value": "2024-01-15"}]

    def test_paged_range_newest_first(self):
        sql, parameters = render_query(
            DocumentQuery(
                partition_key="Food",
                predicate=DateBetween("2024-01-01", "2024-01-31"),
                order=Order.NEWEST_FIRST,
                offset=20,
                limit=10,
            )
        )
        assert sql == (
            "SELECT * FROM c WHERE c.date >= @startDate AND c.date <= @endDate"
            " ORDER BY c._ts DESC OFFSET @offset LIMIT @limit"
        )
        assert parameters == [
            {"name": "@startDate", "value": "2024-01-01"},
            {"name": "@endDate", "value": "2024-01-31"},
            {"name": "@offset", "value": 20},
            {"name": "@limit", "value": 10},
        ]

    def test_offset_without_limit(self):
        _, parameters = render_query(DocumentQuery(partition_key="Activity", offset=5))
        assert parameters[-1] == {"name": "@limit", "value": 2**31 - 1}

    def test_count(self):
        sql, parameters = render_count(
            CountQuery(partition_key="Weight", predicate=DateBetween("2024-01-01", "2024-01-07"))
        )
        assert sql == "SELECT VALUE COUNT(1) FROM c WHERE c.date >= @startDate AND c.date <= @endDate"
        assert len(parameters) == 2


class TestCosmosDocumentStore:
    @pytest.mark.asyncio
    async def test_query_is_partition_scoped_and_batched(self):
        container = _make_container()
        container.query_items.return_value = _pager([{"id": "a"}, {"id": "b"}], [{"id": "c"}])
        store = await _connected_store(container)

        batches = [batch async for batch in store.query(DocumentQuery(partition_key="Activity"))]

        assert batches == [[{"id": "a"}, {"id": "b"}], [{"id": "c"}]]
        kwargs = container.query_items.call_args.kwargs
        assert kwargs["partition_key"] == "Activity"
        assert kwargs["max_item_count"] == 100
        assert kwargs["query"] == "SELECT * FROM c"

    @pytest.mark.asyncio
    async def test_count_returns_integers(self):
        container = _make_container()
        container.query_items.return_value = _pager([7])
        store = await _connected_store(container)

        assert await drain(store.count(CountQuery(partition_key="Sleep"))) == [7]

    @pytest.mark.asyncio
    async def test_query_errors_propagate(self):
        container = _make_container()
        container.query_items.side_effect = exceptions.CosmosHttpResponseError(
            status_code=503, message="Service unavailable"
        )
        store = await _connected_store(container)

        with pytest.raises(exceptions.CosmosHttpResponseError):
            await drain(store.query(DocumentQuery(partition_key="Activity")))

    @pytest.mark.asyncio
    async def test_create_conflict_raises_duplicate(self):
        container = _make_container()
        container.create_item.side_effect = exceptions.CosmosResourceExistsError(
            status_code=409, message="Conflict"
        )
        store = await _connected_store(container)

        with pytest.raises(DuplicateDocumentError) as exc_info:
            await store.create({"id": "x", "documentType": "Activity"}, "Activity")
        assert exc_info.value.document_id == "x"

    @pytest.mark.asyncio
    async def test_create_checks_partition_field(self):
        container = _make_container()
        store = await _connected_store(container)

        with pytest.raises(ValueError, match="does not match"):
            await store.create({"id": "x", "documentType": "Sleep"}, "Activity")
        container.create_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_query_before_connect_fails(self):
        store = CosmosDocumentStore(_make_settings(), client=MagicMock())
        with pytest.raises(RuntimeError, match="not connected"):
            await drain(store.query(DocumentQuery(partition_key="Activity")))

    @pytest.mark.asyncio
    async def test_health_check(self):
        container = _make_container()
        store = await _connected_store(container)

        health = await store.health_check()
        assert health["healthy"] is True
        assert health["container"] == "records"

        container.read.side_effect = exceptions.CosmosHttpResponseError(
            status_code=500, message="boom"
        )
        health = await store.health_check()
        assert health["healthy"] is False
        assert "boom" in health["error"]

    @pytest.mark.asyncio
    async def test_close_keeps_shared_client_open(self):
        client = MagicMock()
        client.close = AsyncMock()
        client.get_database_client.return_value.get_container_client.return_value = (
            _make_container()
        )
        store = CosmosDocumentStore(_make_settings(), client=client)
        await store.connect()
        await store.close()

        client.close.assert_not_awaited()
        health = await store.health_check()
        assert health["healthy"] is False
