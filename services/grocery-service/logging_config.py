"""Structured JSON logging with trace correlation."""
import logging
import sys

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

from config import LOG_LEVEL, OTEL_ENABLED, OTEL_EXPORTER_OTLP_ENDPOINT, SERVICE_NAME

# Chatty library loggers held at WARNING
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping each record with the service name and active span."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_record["trace_id"] = format(span_context.trace_id, "032x")
            log_record["span_id"] = format(span_context.span_id, "016x")
            log_record["trace_flags"] = span_context.trace_flags

        log_record["service"] = SERVICE_NAME
        if "message" in log_record:
            log_record["msg"] = log_record.pop("message")


def _otlp_handler() -> logging.Handler:
    """Build a handler shipping records to the OTLP collector (experimental SDK API)."""
    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.resources import Resource

    logger_provider = LoggerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True))
    )
    set_logger_provider(logger_provider)

    return LoggingHandler(level=logging.INFO, logger_provider=logger_provider)


def setup_logging(level: str = LOG_LEVEL) -> None:
    """
    Route all logging through one JSON stdout handler.

    When OTEL_ENABLED, records are also exported over OTLP so they can be
    joined with traces in the collector.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        CustomJsonFormatter("%(levelname)s %(name)s %(message)s", rename_fields={"levelname": "level"})
    )
    root_logger.addHandler(console_handler)

    if OTEL_ENABLED:
        try:
            root_logger.addHandler(_otlp_handler())
        except Exception as e:
            root_logger.warning("OTLP log export disabled", extra={"error": str(e)})

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
