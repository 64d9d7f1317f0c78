"""
OpenTelemetry tracing — OTLP/HTTP export of FastAPI, SQLAlchemy and Redis spans.

Enabled by TRACING_ENABLED. Spans go to
    <OTEL_EXPORTER_OTLP_ENDPOINT>/v1/traces
with headers parsed from OTEL_EXPORTER_OTLP_HEADERS ("k=v,k2=v2").
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from sqlalchemy.ext.asyncio import AsyncEngine

from storedemo.app.core.config import Settings

logger = logging.getLogger(__name__)


def build_tracer_provider(config: Settings) -> TracerProvider:
    resource = Resource.create({
        "service.name": config.OTEL_SERVICE_NAME,
        "service.version": config.APP_VERSION,
        "deployment.environment": config.APP_ENV,
    })
    exporter = OTLPSpanExporter(
        endpoint=f"{config.OTEL_EXPORTER_OTLP_ENDPOINT.rstrip('/')}/v1/traces",
        headers=config.otlp_headers or None,
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def setup_tracing(
    app: FastAPI, config: Settings, engine: Optional[AsyncEngine] = None,
) -> Optional[TracerProvider]:
    """Install the tracer provider and instrument the app. None when disabled."""
    if not config.TRACING_ENABLED:
        logger.info("Tracing disabled")
        return None

    provider = build_tracer_provider(config)
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
    RedisInstrumentor().instrument(tracer_provider=provider)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=provider)

    logger.info(
        "Tracing enabled service=%s endpoint=%s",
        config.OTEL_SERVICE_NAME, config.OTEL_EXPORTER_OTLP_ENDPOINT,
    )
    return provider


def shutdown_tracing(provider: Optional[TracerProvider]) -> None:
    if provider is not None:
        provider.shutdown()
        logger.info("Tracing shut down")
