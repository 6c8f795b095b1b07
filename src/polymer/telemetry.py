"""OpenTelemetry tracing for the probe server.

The executor emits spans through ``opentelemetry-api`` unconditionally; they
are no-ops until ``init_telemetry`` installs an SDK provider exporting to an
OTLP endpoint.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

OTEL_ENABLED = os.getenv("OTEL_ENABLED", "false").lower() == "true"
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "polymer")
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


def init_telemetry(app: FastAPI) -> bool:
    """Install the OTLP exporter and instrument ``app``. Returns True when enabled."""
    if not OTEL_ENABLED:
        logger.debug("OpenTelemetry tracing disabled (OTEL_ENABLED=false)")
        return False

    if not OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.warning("OTEL_ENABLED=true but OTEL_EXPORTER_OTLP_ENDPOINT not set, tracing off")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.semconv.resource import ResourceAttributes
    except ImportError as e:
        logger.error("OpenTelemetry packages not installed: %s. Install polymer[telemetry]", e)
        return False

    from . import __version__

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: OTEL_SERVICE_NAME,
            ResourceAttributes.SERVICE_VERSION: __version__,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: os.getenv("ENVIRONMENT", "development"),
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True))
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    logger.info(
        "OpenTelemetry initialized: service=%s, endpoint=%s",
        OTEL_SERVICE_NAME,
        OTEL_EXPORTER_OTLP_ENDPOINT,
    )
    return True


def shutdown_telemetry() -> None:
    if not OTEL_ENABLED:
        return

    from opentelemetry import trace

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()
        logger.info("OpenTelemetry tracer provider shut down")
