"""OpenTelemetry configuration for tracing, metrics and logging.

Everything is exported over OTLP gRPC. Configuration only runs when
``settings.otel_enabled`` is set; otherwise the API's no-op providers stay in
place and spans/instruments cost nothing.
"""
import logging
import socket
from typing import Any, Optional

from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from portfolio_analytics.core.config import settings

logger = logging.getLogger(__name__)

# Global tracer for custom spans
_tracer: Optional[trace.Tracer] = None


def get_tracer() -> trace.Tracer:
    """Get the configured tracer for creating custom spans."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(
            settings.otel_service_name,
            settings.otel_service_version
        )
    return _tracer


def _create_resource() -> Resource:
    return Resource.create({
        SERVICE_NAME: settings.otel_service_name,
        SERVICE_VERSION: settings.otel_service_version,
        "deployment.environment": settings.environment,
        "service.instance.id": socket.gethostname(),
    })


def configure_telemetry() -> None:
    """
    Configure OpenTelemetry with tracing, metrics, and logging.

    Endpoint resolution:
    1. OTEL_EXPORTER_OTLP_ENDPOINT
    2. OTLP_ENDPOINT (defaults to http://localhost:4317)
    """
    otlp_endpoint = settings.resolved_otlp_endpoint
    resource = _create_resource()

    logger.info(f"Configuring OpenTelemetry with endpoint: {otlp_endpoint}")
    logger.info(f"Service: {settings.otel_service_name} v{settings.otel_service_version}")

    _configure_tracing(resource, otlp_endpoint)
    _configure_metrics(resource, otlp_endpoint)
    _configure_logging(resource, otlp_endpoint)

    logger.info("OpenTelemetry configuration complete")


def _configure_tracing(resource: Resource, otlp_endpoint: str) -> None:
    tracer_provider = TracerProvider(resource=resource)

    otlp_exporter = OTLPSpanExporter(
        endpoint=otlp_endpoint,
        insecure=settings.otel_exporter_insecure
    )

    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    trace.set_tracer_provider(tracer_provider)

    logger.info("Tracing configured with OTLP exporter")


def _configure_metrics(resource: Resource, otlp_endpoint: str) -> None:
    otlp_metric_exporter = OTLPMetricExporter(
        endpoint=otlp_endpoint,
        insecure=settings.otel_exporter_insecure
    )

    metric_reader = PeriodicExportingMetricReader(
        otlp_metric_exporter,
        export_interval_millis=settings.otel_metric_export_interval_ms
    )

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[metric_reader]
    )

    metrics.set_meter_provider(meter_provider)

    logger.info("Metrics configured with OTLP exporter")


def _configure_logging(resource: Resource, otlp_endpoint: str) -> None:
    logger_provider = LoggerProvider(resource=resource)

    otlp_log_exporter = OTLPLogExporter(
        endpoint=otlp_endpoint,
        insecure=settings.otel_exporter_insecure
    )

    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(otlp_log_exporter)
    )

    set_logger_provider(logger_provider)

    # Ship root logger records through OpenTelemetry as well
    handler = LoggingHandler(
        level=logging.NOTSET,
        logger_provider=logger_provider
    )
    logging.getLogger().addHandler(handler)

    logger.info("Logging configured with OTLP exporter")


def instrument_app(app: Any) -> None:
    """
    Apply auto-instrumentation to the FastAPI application.

    Instruments FastAPI requests/responses and adds trace context to
    Python log records.
    """
    FastAPIInstrumentor.instrument_app(app)
    logger.info("FastAPI instrumentation enabled")

    LoggingInstrumentor().instrument(set_logging_format=True)
    logger.info("Logging instrumentation enabled")
