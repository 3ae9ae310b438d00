"""Read API exposing stored documents per document kind."""

import asyncio
from datetime import datetime

import structlog
import uvicorn
from fastapi import FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from . import __version__
from .config import HTTPSettings
from .documents import DocumentKind
from .metrics import HTTP_REQUESTS_TOTAL
from .pagination import PaginationRequest, PaginationResponse
from .repository import DocumentRepository, repository_for
from .store.base import DocumentStore
from .tracing import request_span
from .types import StoreHealth

logger = structlog.get_logger(__name__)


def _log_task_exception(task: asyncio.Task) -> None:
    """Log exceptions from background tasks that would otherwise be silently lost."""
    if not task.cancelled() and task.exception():
        logger.error("background_task_failed", error=str(task.exception()))


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str


class ReadyResponse(BaseModel):
    """Readiness response."""

    status: str
    components: dict[str, StoreHealth | str] = Field(default_factory=dict)


class InfoResponse(BaseModel):
    """Service info response."""

    name: str
    version: str
    document_kinds: list[str]


def parse_date(value: str) -> str | None:
    """Return ``value`` normalized to YYYY-MM-DD, or None if it is not a date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
    except ValueError:
        return None


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


def _record(method: str, path: str, status_code: int) -> None:
    HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=str(status_code)).inc()


class RecordsAPI:
    """Serves get-by-date, paged listing and paged date-range endpoints.

    One set of routes is registered per configured document kind, under the
    kind's lowercase name (``/activity``, ``/sleep``, ...).
    """

    def __init__(self, settings: HTTPSettings, store: DocumentStore) -> None:
        self._settings = settings
        self._store = store
        self._kinds = [DocumentKind(kind) for kind in settings.document_kinds]
        self._app: FastAPI | None = None
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task | None = None

    def _register_kind(self, app: FastAPI, repository: DocumentRepository) -> None:
        kind = repository.kind
        model = repository.model
        base = f"/{kind.route}"
        page_model = PaginationResponse[model]  # type: ignore[valid-type]

        @app.get(
            base,
            response_model=page_model,
            responses={500: {"model": ErrorResponse}},
            summary=f"List {kind.value} documents",
            name=f"GetAll{kind.value}",
            tags=[kind.value],
        )
        async def get_all(
            request: Request,
            page_number: int | None = Query(default=None, alias="pageNumber"),
            page_size: int | None = Query(default=None, alias="pageSize"),
        ):
            """Page through documents, most recently written first."""
            with request_span("get_all", kind.value, request.headers):
                pagination = PaginationRequest.from_query(page_number, page_size)
                try:
                    page = await repository.get_all(pagination)
                except Exception as exc:
                    logger.error(
                        "http_query_failed",
                        operation="get_all",
                        document_kind=kind.value,
                        error=str(exc),
                    )
                    _record("GET", base, 500)
                    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "get_all failed")
                _record("GET", base, 200)
                return page

        @app.get(
            f"{base}/range/{{start_date}}/{{end_date}}",
            response_model=page_model,
            responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
            summary=f"List {kind.value} documents within a date range",
            name=f"Get{kind.value}ByDateRange",
            tags=[kind.value],
        )
        async def get_by_date_range(
            request: Request,
            start_date: str,
            end_date: str,
            page_number: int | None = Query(default=None, alias="pageNumber"),
            page_size: int | None = Query(default=None, alias="pageSize"),
        ):
            """Page through documents dated between two days, inclusive."""
            path = f"{base}/range/{{start_date}}/{{end_date}}"
            start = parse_date(start_date)
            end = parse_date(end_date)
            if start is None or end is None:
                _record("GET", path, 400)
                return error_response(
                    status.HTTP_400_BAD_REQUEST, "Dates must be in YYYY-MM-DD format"
                )
            if start > end:
                _record("GET", path, 400)
                return error_response(
                    status.HTTP_400_BAD_REQUEST, "start_date must be on or before end_date"
                )

            with request_span("get_by_date_range", kind.value, request.headers):
                pagination = PaginationRequest.from_query(page_number, page_size)
                try:
                    page = await repository.get_by_date_range(start, end, pagination)
                except Exception as exc:
                    logger.error(
                        "http_query_failed",
                        operation="get_by_date_range",
                        document_kind=kind.value,
                        error=str(exc),
                    )
                    _record("GET", path, 500)
                    return error_response(
                        status.HTTP_500_INTERNAL_SERVER_ERROR, "get_by_date_range failed"
                    )
                _record("GET", path, 200)
                return page

        @app.get(
            f"{base}/{{date}}",
            response_model=model,
            responses={
                400: {"model": ErrorResponse},
                404: {"model": ErrorResponse},
                500: {"model": ErrorResponse},
            },
            summary=f"Get the {kind.value} document for a date",
            name=f"Get{kind.value}ByDate",
            tags=[kind.value],
        )
        async def get_by_date(request: Request, date: str):
            """Get a document by its date (YYYY-MM-DD)."""
            path = f"{base}/{{date}}"
            day = parse_date(date)
            if day is None:
                _record("GET", path, 400)
                return error_response(
                    status.HTTP_400_BAD_REQUEST, "Date must be in YYYY-MM-DD format"
                )

            with request_span("get_by_date", kind.value, request.headers):
                try:
                    document = await repository.get_by_date(day)
                except Exception as exc:
                    logger.error(
                        "http_query_failed",
                        operation="get_by_date",
                        document_kind=kind.value,
                        error=str(exc),
                    )
                    _record("GET", path, 500)
                    return error_response(
                        status.HTTP_500_INTERNAL_SERVER_ERROR, "get_by_date failed"
                    )
                if document is None:
                    _record("GET", path, 404)
                    return error_response(status.HTTP_404_NOT_FOUND, "Document not found")
                _record("GET", path, 200)
                return document

    def _build_app(self) -> FastAPI:
        app = FastAPI(
            title="Health Records API",
            version=__version__,
            description="Paginated read access to stored Fitbit documents.",
        )

        for kind in self._kinds:
            self._register_kind(app, repository_for(kind, self._store))

        @app.get("/health", response_model=dict[str, str], summary="Liveness check")
        async def health() -> dict[str, str]:
            """Handle GET /health -- returns service liveness status."""
            _record("GET", "/health", 200)
            return {"status": "ok"}

        @app.get(
            "/ready",
            response_model=ReadyResponse,
            responses={503: {"model": ReadyResponse}},
            summary="Readiness check",
        )
        async def ready():
            """Handle GET /ready -- reports whether the document store is reachable."""
            store_health = await self._store.health_check()
            healthy = store_health.get("healthy", False)
            payload = ReadyResponse(
                status="ok" if healthy else "unavailable",
                components={"store": store_health},
            )
            if not healthy:
                _record("GET", "/ready", 503)
                return JSONResponse(status_code=503, content=payload.model_dump())
            _record("GET", "/ready", 200)
            return payload

        @app.get("/info", response_model=InfoResponse, summary="Service info")
        async def info() -> InfoResponse:
            """Handle GET /info -- returns service metadata."""
            _record("GET", "/info", 200)
            return InfoResponse(
                name="health-records",
                version=__version__,
                document_kinds=[kind.value for kind in self._kinds],
            )

        @app.get("/metrics", summary="Prometheus metrics")
        async def metrics() -> Response:
            """Handle GET /metrics -- returns Prometheus metrics."""
            _record("GET", "/metrics", 200)
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self._build_app()
        config = uvicorn.Config(
            self._app,
            host=self._settings.host,
            port=self._settings.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())
        self._server_task.add_done_callback(_log_task_exception)
        logger.info(
            "http_server_started",
            host=self._settings.host,
            port=self._settings.port,
            document_kinds=[kind.value for kind in self._kinds],
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._server:
            self._server.should_exit = True
        if self._server_task:
            await self._server_task
            self._server_task = None
        logger.info("http_server_stopped")

    @property
    def app(self) -> FastAPI:
        """Expose the FastAPI app for testing."""
        if not self._app:
            self._app = self._build_app()
        return self._app
