from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from tabsettle.infrastructure.config import (
    app_env,
    otel_exporter_endpoint,
    otel_service_name,
    storage_backend,
)

# health checks and metric scrapes stay out of traces
EXCLUDED_URLS = "health/live,health/ready,metrics"

_OTEL_CONFIGURED = False
logger = logging.getLogger(__name__)


def build_resource() -> Resource:
    return Resource.create(
        {
            SERVICE_NAME: otel_service_name(),
            "deployment.environment": app_env(),
            "tabsettle.storage_backend": storage_backend(),
        }
    )


def configure_otel(app: FastAPI) -> None:
    global _OTEL_CONFIGURED
    if _OTEL_CONFIGURED:
        return

    provider = TracerProvider(resource=build_resource())
    endpoint = otel_exporter_endpoint()
    if endpoint:
        try:
            exporter = OTLPSpanExporter(
                endpoint=endpoint,
                insecure=endpoint.startswith("http://"),
            )
            provider.add_span_processor(BatchSpanProcessor(exporter))
        except Exception:
            logger.exception("otel_exporter_setup_failed")

    trace.set_tracer_provider(provider)
    set_global_textmap(TraceContextTextMapPropagator())
    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=provider,
        excluded_urls=EXCLUDED_URLS,
    )
    _OTEL_CONFIGURED = True
