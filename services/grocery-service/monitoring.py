"""Monitoring and observability setup.

Traces and metrics are exported over OTLP gRPC to the collector at
OTEL_EXPORTER_OTLP_ENDPOINT. With OTEL_ENABLED=false no SDK providers are
installed and every instrument below falls back to the no-op implementation
of the OpenTelemetry API, so business code can record unconditionally.

The order amount histogram carries exemplars automatically when recorded
inside an active span, linking large or unusual orders to their traces.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
import pyroscope

from config import (
    OTEL_ENABLED,
    OTEL_EXPORTER_OTLP_ENDPOINT,
    PROFILING_ENABLED,
    PYROSCOPE_SERVER,
    SERVICE_NAME,
)

logger = logging.getLogger(__name__)


def init_tracing() -> None:
    """
    Initialize OpenTelemetry tracing.

    Installs the global tracer provider; services obtain tracers with
    `trace.get_tracer(__name__)`.
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        tracer_provider = TracerProvider(resource=resource)
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        trace.set_tracer_provider(tracer_provider)

        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        otlp_metric_exporter = OTLPMetricExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        otlp_metric_reader = PeriodicExportingMetricReader(
            otlp_metric_exporter,
            export_interval_millis=5000
        )

        meter_provider = MeterProvider(
            resource=resource,
            metric_readers=[otlp_metric_reader]
        )
        metrics.set_meter_provider(meter_provider)

        logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling."""
    if not PROFILING_ENABLED:
        return
    try:
        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": "demo"}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Install the tracer provider and create the shared meter
init_tracing()
meter = init_metrics()

# Business metrics using OpenTelemetry

# Catalog metrics
product_views_counter = meter.create_counter(
    "grocery.products.views",
    description="Total number of product catalog and detail views",
    unit="1"
)

catalog_changes_counter = meter.create_counter(
    "grocery.products.changes",
    description="Product create, update, restock and delete operations",
    unit="1"
)

# Order metrics
orders_placed_counter = meter.create_counter(
    "grocery.orders.placed",
    description="Total number of orders placed",
    unit="1"
)

order_amount_histogram = meter.create_histogram(
    "grocery.orders.amount",
    description="Order total amount",
    unit="USD"
)

order_items_histogram = meter.create_histogram(
    "grocery.orders.items",
    description="Number of line items per order",
    unit="1"
)

orders_rejected_out_of_stock_counter = meter.create_counter(
    "grocery.orders.out_of_stock",
    description="Order placements rejected for insufficient stock",
    unit="1"
)

order_status_transitions_counter = meter.create_counter(
    "grocery.orders.status_transitions",
    description="Order status changes by source and target status",
    unit="1"
)

# Review metrics
reviews_created_counter = meter.create_counter(
    "grocery.reviews.created",
    description="Total number of product reviews created",
    unit="1"
)

# Security monitoring metrics
auth_failures_counter = meter.create_counter(
    "grocery.auth.failures",
    description="Total number of authentication failures",
    unit="1"
)

auth_attempts_counter = meter.create_counter(
    "grocery.auth.attempts",
    description="Total number of authentication attempts",
    unit="1"
)

access_denied_counter = meter.create_counter(
    "grocery.auth.access_denied",
    description="Requests rejected by the role policy",
    unit="1"
)

rate_limit_exceeded_counter = meter.create_counter(
    "grocery.rate_limit.exceeded",
    description="Total number of rate limit violations",
    unit="1"
)

suspicious_activity_counter = meter.create_counter(
    "grocery.security.suspicious_activity",
    description="Total number of suspicious activity detections",
    unit="1"
)
