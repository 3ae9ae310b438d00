"""Fitness records storage and read API.

Per-metric services that fetch Fitbit data, persist it as documents in a
partitioned document store, and expose paginated read endpoints over it.

Modules:
    config: Configuration management using pydantic-settings
    pagination: Page request normalization and page response assembly
    query: Partition-scoped count, window, key and range queries
    repository: Per-document-kind repository facade
    store: Document store contract with Cosmos DB and in-memory backends
    fitbit: Fitbit Web API client
    workers: One-shot ingestion workers
    api: Read API endpoints

Example:
    Serve the read API::

        $ uv run health-records-api

    Ingest today's activity summary::

        $ uv run health-records-worker --kind Activity
"""

__version__ = "0.1.0"

from .config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
