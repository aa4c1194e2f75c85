from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from supportdesk.core.config import settings

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Give the ``supportdesk`` logger tree a level and a stream handler.

    uvicorn configures its own loggers; module loggers created with
    ``logging.getLogger(__name__)`` only need to be made visible.
    """
    lvl = (level or settings.log_level or "INFO").upper()
    root = logging.getLogger("supportdesk")
    root.setLevel(lvl)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)


def setup_telemetry(app: FastAPI, service_name: str) -> None:
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        # No endpoint configured => tracing disabled.
        return

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    except ImportError:
        logger.warning(
            "[Telemetry] OTEL endpoint set but the 'otel' extra is not installed"
        )
        return

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()
    logger.info("[Telemetry] tracing enabled service=%s endpoint=%s", service_name, endpoint)
