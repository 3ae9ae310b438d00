"""OpenTelemetry spans for document reads and API requests."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

import structlog
from opentelemetry import propagate, trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, SpanKind

from . import __version__
from .config import TracingSettings

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer("health_records", __version__)

# Span attributes, namespaced so they do not collide with semantic conventions
ATTR_DOCUMENT_KIND = "health_records.document_kind"
ATTR_OPERATION = "health_records.operation"


def setup_tracing(settings: TracingSettings, document_kinds: list[str] | None = None) -> bool:
    """Install an OTLP tracer provider when tracing is enabled.

    Args:
        settings: Tracing settings.
        document_kinds: Kinds served by this process, recorded on the resource.

    Returns:
        True if tracing was configured, False otherwise.
    """
    if not settings.enabled:
        logger.info("tracing_disabled")
        return False

    # Standard OTel switch for turning export off without code changes
    if os.getenv("OTEL_TRACES_EXPORTER", "otlp").lower() in {"none", ""}:
        logger.info("tracing_exporter_disabled")
        return False

    attributes: dict[str, str | list[str]] = {
        "service.name": settings.service_name,
        "service.version": __version__,
    }
    if document_kinds:
        attributes["health_records.document_kinds"] = list(document_kinds)

    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info(
        "tracing_configured",
        service_name=settings.service_name,
        document_kinds=document_kinds,
    )
    return True


@contextmanager
def document_span(
    operation: str,
    document_kind: str,
    **attributes: str | int,
) -> Iterator[Span]:
    """Span around one repository operation on a document partition.

    Extra keyword attributes are recorded under the ``health_records.`` prefix.
    """
    with tracer.start_as_current_span(f"repository.{operation}") as span:
        span.set_attribute(ATTR_OPERATION, operation)
        span.set_attribute(ATTR_DOCUMENT_KIND, document_kind)
        for key, value in attributes.items():
            span.set_attribute(f"health_records.{key}", value)
        yield span


@contextmanager
def request_span(
    operation: str,
    document_kind: str,
    headers: Mapping[str, str] | None,
) -> Iterator[Span]:
    """Server span for one read request, continuing the caller's trace if any."""
    context = propagate.extract(headers) if headers else None
    with tracer.start_as_current_span(
        f"http.{document_kind.lower()}.{operation}",
        context=context,
        kind=SpanKind.SERVER,
    ) as span:
        span.set_attribute(ATTR_OPERATION, operation)
        span.set_attribute(ATTR_DOCUMENT_KIND, document_kind)
        yield span
