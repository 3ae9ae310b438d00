"""Azure Cosmos DB backend."""

from collections.abc import AsyncIterator
from typing import Any

import structlog
from azure.cosmos import exceptions
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.identity.aio import DefaultAzureCredential

from ..config import CosmosSettings
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

# Document property holding the partition key value
PARTITION_KEY_FIELD = "documentType"


def _where_clause(predicate: Predicate) -> tuple[str, list[dict[str, Any]]]:
    """Render a predicate as a Cosmos SQL WHERE clause with parameters."""
    if isinstance(predicate, DateEquals):
        return " WHERE c.date = @date", [{"name": "@date", "value": predicate.date}]
    if isinstance(predicate, DateBetween):
        return (
            " WHERE c.date >= @startDate AND c.date <= @endDate",
            [
                {"name": "@startDate", "value": predicate.start},
                {"name": "@endDate", "value": predicate.end},
            ],
        )
    return "", []


def render_query(query: DocumentQuery) -> tuple[str, list[dict[str, Any]]]:
    """Render a document query as Cosmos SQL text and parameters."""
    where, parameters = _where_clause(query.predicate)
    sql = f"SELECT * FROM c{where}"

    if query.order is Order.NEWEST_FIRST:
        sql += " ORDER BY c._ts DESC"

    if query.offset is not None or query.limit is not None:
        # Cosmos only accepts OFFSET and LIMIT together
        sql += " OFFSET @offset LIMIT @limit"
        parameters = [
            *parameters,
            {"name": "@offset", "value": query.offset or 0},
            {"name": "@limit", "value": query.limit if query.limit is not None else 2**31 - 1},
        ]
    return sql, parameters


def render_count(query: CountQuery) -> tuple[str, list[dict[str, Any]]]:
    """Render a count query as Cosmos SQL text and parameters."""
    where, parameters = _where_clause(query.predicate)
    return f"SELECT VALUE COUNT(1) FROM c{where}", parameters


class CosmosDocumentStore(DocumentStore):
    """Document store backed by a Cosmos DB container partitioned on ``/documentType``."""

    backend = "cosmos"

    def __init__(
        self,
        settings: CosmosSettings,
        client: CosmosClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Cosmos DB connection settings.
            client: Pre-built client to share; one is created on connect otherwise.
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._credential: DefaultAzureCredential | None = None
        self._container: ContainerProxy | None = None

    async def connect(self) -> None:
        """Connect to the container and verify it exists."""
        logger.info(
            "cosmos_connecting",
            endpoint=self._settings.endpoint,
            database=self._settings.database,
            container=self._settings.container,
        )

        if self._client is None:
            if self._settings.key:
                self._client = CosmosClient(self._settings.endpoint, credential=self._settings.key)
            else:
                self._credential = DefaultAzureCredential(
                    managed_identity_client_id=self._settings.managed_identity_client_id
                )
                self._client = CosmosClient(self._settings.endpoint, credential=self._credential)

        database = self._client.get_database_client(self._settings.database)
        self._container = database.get_container_client(self._settings.container)

        # Verify connection
        await self._container.read()

        logger.info("cosmos_connected")

    async def close(self) -> None:
        """Close the client and credential if this store created them."""
        if self._client and self._owns_client:
            await self._client.close()
            self._client = None
        if self._credential:
            await self._credential.close()
            self._credential = None
        self._container = None
        logger.info("cosmos_disconnected")

    def _require_container(self) -> ContainerProxy:
        if self._container is None:
            raise RuntimeError("Cosmos DB container not connected")
        return self._container

    async def query(self, query: DocumentQuery) -> AsyncIterator[list[JSONObject]]:
        container = self._require_container()
        sql, parameters = render_query(query)
        pager = container.query_items(
            query=sql,
            parameters=parameters,
            partition_key=query.partition_key,
            max_item_count=self._settings.max_item_count,
        )
        async for page in pager.by_page():
            yield [item async for item in page]

    async def count(self, query: CountQuery) -> AsyncIterator[list[int]]:
        container = self._require_container()
        sql, parameters = render_count(query)
        pager = container.query_items(
            query=sql,
            parameters=parameters,
            partition_key=query.partition_key,
        )
        async for page in pager.by_page():
            yield [int(value) async for value in page]

    async def create(self, document: JSONObject, partition_key: str) -> None:
        container = self._require_container()
        if document.get(PARTITION_KEY_FIELD) != partition_key:
            raise ValueError(
                f"Document {PARTITION_KEY_FIELD} '{document.get(PARTITION_KEY_FIELD)}' "
                f"does not match partition '{partition_key}'"
            )
        try:
            await container.create_item(body=document)
        except exceptions.CosmosResourceExistsError as exc:
            raise DuplicateDocumentError(str(document.get("id")), partition_key) from exc

    async def health_check(self) -> StoreHealth:
        """Check Cosmos DB container reachability.

        Returns:
            Dict with health status information.
        """
        if self._container is None:
            return {"healthy": False, "backend": self.backend, "error": "Not connected"}

        try:
            await self._container.read()
            return {
                "healthy": True,
                "backend": self.backend,
                "database": self._settings.database,
                "container": self._settings.container,
            }
        except Exception as e:
            return {"healthy": False, "backend": self.backend, "error": str(e)}
