"""Telemetry setup with exporters switched off."""
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from monitoring import init_tracing


def test_tracing_keeps_default_provider_when_disabled():
    init_tracing()

    assert not isinstance(trace.get_tracer_provider(), TracerProvider)
