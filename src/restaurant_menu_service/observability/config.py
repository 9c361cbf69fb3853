"""Logging and OpenTelemetry setup for the menu service.

Exporters ship spans and metrics over OTLP/HTTP only when
ENABLE_OTEL_EXPORTERS=true and the service is not running under tests;
otherwise the providers stay in-process so instrumentation still works.
"""

import logging
import os

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.botocore import BotocoreInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger.json import JsonFormatter

logger = logging.getLogger(__name__)

SERVICE_NAME = "menu-svc"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4318"
METRIC_EXPORT_INTERVAL_MS = 60000

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore")


def exporters_enabled() -> bool:
    """Whether spans and metrics should leave the process."""
    if os.getenv("ENVIRONMENT", "development") == "test":
        return False
    return os.getenv("ENABLE_OTEL_EXPORTERS", "false").lower() == "true"


def build_resource() -> Resource:
    """Resource identifying this service and its deployment environment."""
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", SERVICE_NAME),
            "deployment.environment": os.getenv("ENVIRONMENT", "development"),
        }
    )


def install_providers(resource: Resource, export: bool) -> None:
    """Register global tracer and meter providers.

    Args:
        resource: Service resource attached to every span and metric
        export: Attach OTLP exporters to both providers
    """
    tracer_provider = TracerProvider(resource=resource)
    metric_readers = []

    if export:
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces"))
        )
        metric_readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"),
                export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
            )
        )
        logger.info(f"Exporting traces and metrics to {endpoint}")

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))


def setup_observability(app: FastAPI) -> None:
    """Install providers and instrument the app, DynamoDB and Cloudinary calls.

    Args:
        app: FastAPI application to instrument
    """
    export = exporters_enabled()
    install_providers(build_resource(), export=export)

    # botocore covers DynamoDB, httpx covers the image host
    BotocoreInstrumentor().instrument()
    HTTPXClientInstrumentor().instrument()
    FastAPIInstrumentor.instrument_app(app)

    logger.info(f"Observability configured (exporters {'on' if export else 'off'})")


def configure_logging(log_level: str = "INFO") -> None:
    """Send JSON log lines to stderr from the root logger.

    Args:
        log_level: Level name for the service's own loggers
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    )

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.info(f"Structured JSON logging configured at {logging.getLevelName(level)} level")
