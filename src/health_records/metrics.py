"""Prometheus metrics definitions for the health records services."""

from prometheus_client import Counter, Gauge, Histogram, Info

# -- Service info --
SERVICE_INFO = Info("health_records", "Health records service info")

# -- Document store queries --
STORE_QUERIES = Counter(
    "health_records_store_queries_total",
    "Total document store queries",
    ["operation", "status"],
)
STORE_QUERY_DURATION = Histogram(
    "health_records_store_query_duration_seconds",
    "Document store query latency including result draining",
    ["operation"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
COUNT_DEGRADED = Counter(
    "health_records_count_degraded_total",
    "Count queries that failed and were reported as unavailable",
    ["document_kind"],
)
DUPLICATE_KEY_MATCHES = Counter(
    "health_records_duplicate_key_matches_total",
    "Key lookups that matched more than one document",
    ["document_kind"],
)

# -- Document writes --
DOCUMENTS_WRITTEN = Counter(
    "health_records_documents_written_total",
    "Total documents written",
    ["document_kind", "status"],
)

# -- Workers --
WORKER_RUNS = Counter(
    "health_records_worker_runs_total",
    "Total ingestion worker runs",
    ["document_kind", "status"],
)

# -- Fitbit API --
FITBIT_REQUESTS = Counter(
    "health_records_fitbit_requests_total",
    "Total Fitbit API requests",
    ["resource", "status"],
)

# -- Circuit breakers --
CIRCUIT_BREAKER_STATE = Gauge(
    "health_records_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["name"],
)

# -- HTTP --
HTTP_REQUESTS_TOTAL = Counter(
    "health_records_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
