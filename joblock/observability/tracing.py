"""
OpenTelemetry tracing setup.
"""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from joblock import __version__
from joblock.config import get_settings

# Global tracer instance
_tracer: Tracer | None = None


def setup_tracing() -> Tracer:
    """
    Set up OpenTelemetry tracing with an OTLP exporter.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer

    settings = get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        insecure=True,
    )
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(settings.otel_service_name)

    return _tracer


def get_tracer() -> Tracer:
    """
    Get the tracer instance.

    When tracing is disabled the tracer comes from whatever provider is
    installed globally, which is a no-op provider by default.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer
    if _tracer is None:
        settings = get_settings()
        if settings.otel_enabled:
            _tracer = setup_tracing()
        else:
            _tracer = trace.get_tracer(settings.otel_service_name)
    return _tracer
