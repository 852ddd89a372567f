"""
Tracer initialization and configuration for OpenTelemetry.

Exporters are opt-in: OTLP when an endpoint is given (argument or
OTLP_ENDPOINT), console when requested (argument or TRACE_CONSOLE=true).
Without either, spans are created but not exported.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "dbtablesync"

_tracer: trace.Tracer | None = None
_is_initialized = False


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Initialize distributed tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (e.g., "localhost:4317")
        console_export: If True, also export spans to the console

    Returns:
        Configured tracer instance
    """
    global _tracer, _is_initialized

    if _is_initialized:
        logger.debug("Tracing already initialized, returning existing tracer")
        return _tracer

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    exporters = []

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTLP_ENDPOINT")

    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        exporters.append("OTLP")
        logger.info(f"OTLP exporter configured: {otlp_endpoint}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    if not exporters:
        logger.debug("No trace exporters configured, spans will not be exported")

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)
    _is_initialized = True

    logger.info(f"Tracing initialized: {service_name} (exporters: {', '.join(exporters) or 'none'})")
    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Get the global tracer instance, initializing with defaults on first use.
    """
    global _tracer

    if _tracer is None:
        _tracer = initialize_tracing()

    return _tracer


def shutdown_tracing() -> None:
    """
    Flush pending spans and shut the provider down.

    Should be called before process exit.
    """
    global _tracer, _is_initialized

    if not _is_initialized:
        return

    provider = trace.get_tracer_provider()
    try:
        if hasattr(provider, "shutdown"):
            provider.shutdown()
        logger.info("Tracing shutdown complete")
    finally:
        _is_initialized = False
        _tracer = None
