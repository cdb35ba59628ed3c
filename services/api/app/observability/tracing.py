"""OpenTelemetry tracing setup and the per-operation instrumentation helper."""

from collections.abc import Iterator
from contextlib import contextmanager
import asyncio
import time
from typing import Any

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from app.observability.metrics import (
    STATUS_CANCELLED,
    STATUS_ERROR,
    STATUS_NOT_FOUND,
    STATUS_SUCCESS,
    OperationMetrics,
)
from app.settings import Settings

TRACER_HANDLER = "ad-service/handler"
TRACER_SERVICE = "ad-service/service"
TRACER_REPOSITORY = "ad-service/repository"


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Create a tracer provider for this service.

    The provider is passed to components explicitly; the global OpenTelemetry
    provider is left untouched. Spans are exported over OTLP/HTTP only when
    an endpoint is configured.
    """
    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    if settings.otel_exporter_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint)))
    return provider


class OperationRecord:
    """Outcome of one instrumented operation, written by the operation body."""

    def __init__(self, span: Span):
        self.span = span
        self.status = STATUS_SUCCESS

    def not_found(self) -> None:
        self.status = STATUS_NOT_FOUND

    def set_attributes(self, **attributes: Any) -> None:
        self.span.set_attributes(attributes)


@contextmanager
def instrument(
    tracer: Tracer,
    metrics: OperationMetrics,
    operation: str,
    **attributes: Any,
) -> Iterator[OperationRecord]:
    """Run a block inside a span and record its outcome as a metric label.

    The outcome is "success" unless the block marks it not_found or an
    exception escapes ("error"; "cancelled" for task cancellation). Errors are
    recorded on the span and re-raised unchanged.
    """
    started = time.perf_counter()
    with tracer.start_as_current_span(
        operation,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        if attributes:
            span.set_attributes(attributes)
        record = OperationRecord(span)
        try:
            yield record
        except asyncio.CancelledError:
            record.status = STATUS_CANCELLED
            raise
        except Exception as e:
            if record.status != STATUS_NOT_FOUND:
                record.status = STATUS_ERROR
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
        finally:
            span.set_attribute("outcome", record.status)
            metrics.observe(operation, record.status, time.perf_counter() - started)
