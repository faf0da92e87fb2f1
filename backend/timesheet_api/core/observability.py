from contextlib import contextmanager
from typing import Iterator, Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import settings

INSTRUMENTATION_NAME = "timesheet_api"
RESOURCE = Resource.create({"service.name": "timesheets-api", "deployment.env": settings.env})


def configure_tracing(otlp_endpoint: Optional[str] = None) -> None:
    provider = TracerProvider(resource=RESOURCE)
    endpoint = otlp_endpoint or settings.otlp_endpoint
    if endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)


def configure_metrics(otlp_endpoint: Optional[str] = None) -> None:
    endpoint = otlp_endpoint or settings.otlp_endpoint
    readers = [PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint))] if endpoint else []
    metrics.set_meter_provider(MeterProvider(resource=RESOURCE, metric_readers=readers))


def configure_observability() -> None:
    configure_tracing()
    configure_metrics()


class OperationRecorder:
    """One span per timesheet operation plus an outcome counter."""

    def __init__(self) -> None:
        self._tracer = trace.get_tracer(INSTRUMENTATION_NAME)
        self._counter = metrics.get_meter(INSTRUMENTATION_NAME).create_counter(
            "timesheet_operations",
            description="Timesheet operations by name and outcome",
        )

    @contextmanager
    def span(self, operation: str) -> Iterator[trace.Span]:
        with self._tracer.start_as_current_span(f"timesheets.{operation}") as span:
            span.set_attribute("timesheets.operation", operation)
            yield span

    def count(self, operation: str, outcome: str) -> None:
        self._counter.add(1, {"operation": operation, "outcome": outcome})
