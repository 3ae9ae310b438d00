"""Configuration management using pydantic-settings."""

import threading

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

VALID_STORE_BACKENDS = {"cosmos", "memory"}

# Partition values, kept in sync with documents.DocumentKind
KNOWN_DOCUMENT_KINDS = ("Activity", "Sleep", "Weight", "Food")


class StoreSettings(BaseSettings):
    """Document store selection."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: str = Field(default="cosmos", description="Store backend: cosmos or memory")
    batch_size: int = Field(
        default=100, description="Rows per batch returned by the in-memory backend"
    )

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate the backend name."""
        normalized = v.lower()
        if normalized not in VALID_STORE_BACKENDS:
            raise ValueError(
                f"Invalid store backend '{v}'. Must be one of: {', '.join(sorted(VALID_STORE_BACKENDS))}"
            )
        return normalized

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Validate batch size is positive."""
        if v < 1:
            raise ValueError(f"Batch size must be at least 1, got {v}")
        return v


class CosmosSettings(BaseSettings):
    """Azure Cosmos DB connection settings."""

    model_config = SettingsConfigDict(env_prefix="COSMOS_")

    endpoint: str = Field(default="", description="Cosmos DB account endpoint")
    key: str | None = Field(
        default=None, description="Account key; managed identity is used when unset"
    )
    database: str = Field(default="biotrackr", description="Database name")
    container: str = Field(default="records", description="Container name")
    managed_identity_client_id: str | None = Field(
        default=None, description="Client id of a user-assigned managed identity"
    )
    max_item_count: int = Field(default=100, description="Maximum rows per result page")

    @field_validator("database", "container")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate database and container names are not empty."""
        if not v or not v.strip():
            raise ValueError("Cosmos database and container names cannot be empty")
        return v

    @field_validator("max_item_count")
    @classmethod
    def validate_max_item_count(cls, v: int) -> int:
        """Validate page size hint is reasonable."""
        if v < 1:
            raise ValueError(f"Max item count must be at least 1, got {v}")
        if v > 1000:
            raise ValueError(f"Max item count too large (max 1000), got {v}")
        return v


class FitbitSettings(BaseSettings):
    """Fitbit Web API settings."""

    model_config = SettingsConfigDict(env_prefix="FITBIT_")

    base_url: str = Field(default="https://api.fitbit.com", description="Fitbit API base URL")
    access_token: str = Field(default="", description="OAuth2 bearer token")
    timeout_seconds: float = Field(default=30.0, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Attempts per request on transient errors")
    failure_threshold: int = Field(
        default=5, description="Consecutive failures before the circuit opens"
    )
    recovery_timeout: float = Field(
        default=60.0, description="Seconds before an open circuit allows a trial call"
    )

    @field_validator("timeout_seconds", "recovery_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError(f"Duration must be positive, got {v}")
        return v

    @field_validator("max_retries", "failure_threshold")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate counters are at least one."""
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v


class HTTPSettings(BaseSettings):
    """Read API server settings."""

    model_config = SettingsConfigDict(env_prefix="HTTP_")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")
    document_kinds: list[str] = Field(
        default_factory=lambda: list(KNOWN_DOCUMENT_KINDS),
        description="Document kinds served by this API",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator("document_kinds")
    @classmethod
    def validate_document_kinds(cls, v: list[str]) -> list[str]:
        """Validate every served kind is known."""
        if not v:
            raise ValueError("At least one document kind must be served")
        by_lower = {kind.lower(): kind for kind in KNOWN_DOCUMENT_KINDS}
        normalized = []
        for kind in v:
            if kind.lower() not in by_lower:
                raise ValueError(
                    f"Unknown document kind '{kind}'. Must be one of: {', '.join(KNOWN_DOCUMENT_KINDS)}"
                )
            normalized.append(by_lower[kind.lower()])
        return normalized


class TracingSettings(BaseSettings):
    """OpenTelemetry tracing settings."""

    model_config = SettingsConfigDict(env_prefix="OTEL_")

    enabled: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    service_name: str = Field(default="health-records", description="Reported service name")


class AppSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="APP_")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        normalized = v.upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return normalized

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        normalized = v.lower()
        if normalized not in ("json", "console"):
            raise ValueError(f"Invalid log format '{v}'. Must be 'json' or 'console'")
        return normalized


class Settings(BaseSettings):
    """Combined application settings."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    cosmos: CosmosSettings = Field(default_factory=CosmosSettings)
    fitbit: FitbitSettings = Field(default_factory=FitbitSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    tracing: TracingSettings = Field(default_factory=TracingSettings)
    app: AppSettings = Field(default_factory=AppSettings)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            store=StoreSettings(),
            cosmos=CosmosSettings(),
            fitbit=FitbitSettings(),
            http=HTTPSettings(),
            tracing=TracingSettings(),
            app=AppSettings(),
        )


# Global settings instance with thread-safe initialization
_settings: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the global settings instance.

    Thread-safe singleton pattern using double-checked locking.
    """
    global _settings
    if _settings is None:
        with _settings_lock:
            # Double-check after acquiring lock
            if _settings is None:
                _settings = Settings.load()
    return _settings
