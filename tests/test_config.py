"""Tests for configuration validation."""

import pytest

from health_records.config import (
    KNOWN_DOCUMENT_KINDS,
    VALID_LOG_LEVELS,
    AppSettings,
    CosmosSettings,
    FitbitSettings,
    HTTPSettings,
    Settings,
    StoreSettings,
)


def test_store_backend_normalizes():
    """Store backend names are case-insensitive."""
    assert StoreSettings(_env_file=None, backend="Memory").backend == "memory"


def test_store_backend_validation():
    with pytest.raises(ValueError, match="Invalid store backend"):
        StoreSettings(_env_file=None, backend="sqlite")

    with pytest.raises(ValueError, match="Batch size must be at least 1"):
        StoreSettings(_env_file=None, batch_size=0)


def test_cosmos_settings_validation():
    """Cosmos names must be non-empty and the page hint bounded."""
    with pytest.raises(ValueError, match="cannot be empty"):
        CosmosSettings(_env_file=None, container=" ")

    with pytest.raises(ValueError, match="Max item count must be at least 1"):
        CosmosSettings(_env_file=None, max_item_count=0)

    with pytest.raises(ValueError, match="Max item count too large"):
        CosmosSettings(_env_file=None, max_item_count=5000)


def test_cosmos_settings_from_env(monkeypatch):
    monkeypatch.setenv("COSMOS_ENDPOINT", "https://acct.documents.azure.com:443/")
    monkeypatch.setenv("COSMOS_CONTAINER", "fitbit")

    settings = CosmosSettings(_env_file=None)

    assert settings.endpoint == "https://acct.documents.azure.com:443/"
    assert settings.container == "fitbit"
    assert settings.database == "biotrackr"
    assert settings.key is None


def test_fitbit_settings_validation():
    with pytest.raises(ValueError, match="Duration must be positive"):
        FitbitSettings(_env_file=None, timeout_seconds=0)

    with pytest.raises(ValueError, match="Value must be at least 1"):
        FitbitSettings(_env_file=None, max_retries=0)


def test_app_settings_normalize_log_fields():
    """App settings normalize log format and log level."""
    settings = AppSettings(_env_file=None, log_level="debug", log_format="Console")

    assert settings.log_level == "DEBUG"
    assert settings.log_format == "console"
    assert settings.log_level in VALID_LOG_LEVELS


def test_app_settings_reject_unknown_values():
    with pytest.raises(ValueError, match="Invalid log level"):
        AppSettings(_env_file=None, log_level="verbose")

    with pytest.raises(ValueError, match="Invalid log format"):
        AppSettings(_env_file=None, log_format="xml")


def test_http_settings_validation():
    """HTTP settings enforce valid ranges."""
    with pytest.raises(ValueError, match="Port must be between"):
        HTTPSettings(_env_file=None, port=0)


def test_http_document_kinds_normalize():
    settings = HTTPSettings(_env_file=None, document_kinds=["sleep", "FOOD"])
    assert settings.document_kinds == ["Sleep", "Food"]


def test_http_document_kinds_validation():
    with pytest.raises(ValueError, match="Unknown document kind"):
        HTTPSettings(_env_file=None, document_kinds=["Steps"])

    with pytest.raises(ValueError, match="At least one document kind"):
        HTTPSettings(_env_file=None, document_kinds=[])


def test_http_serves_every_kind_by_default(monkeypatch):
    monkeypatch.delenv("HTTP_DOCUMENT_KINDS", raising=False)
    assert HTTPSettings(_env_file=None).document_kinds == list(KNOWN_DOCUMENT_KINDS)


def test_settings_load(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("HTTP_DOCUMENT_KINDS", '["Weight"]')

    settings = Settings.load()

    assert settings.store.backend == "memory"
    assert settings.http.document_kinds == ["Weight"]
