"""Tracing for chat turns, context assembly and completion calls.

With ``tracing.enabled`` set and an OTLP endpoint configured, spans are
batched to the collector; otherwise ``tracer`` hands out non-recording
spans and every helper here returns without side effects.

Span and attribute names used by the chat core live at module level so
that dashboards and tests can refer to one spelling::

    with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
        span.set_attribute(ATTR_CHAT_SESSION_ID, str(session_id))
"""

from __future__ import annotations

import base64
import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI
from opentelemetry import trace

from riskchat.configs.system import TracingConfig
from riskchat.infra.db_engine import build_db
from riskchat.infra.lifespan import get_app

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("riskchat")

# Set once init_telemetry has installed a provider.
_provider = None

# Span names
SPAN_CHAT_TURN = "chat.turn"
SPAN_CONTEXT_ASSEMBLE = "context.assemble"
SPAN_CONTEXT_SECTION = "context.section"
SPAN_LLM_COMPLETION = "llm.completion"

# Attribute keys
ATTR_CHAT_SESSION_ID = "chat.session_id"
ATTR_CHAT_SESSION_NEW = "chat.session_new"
ATTR_CHAT_HISTORY_LEN = "chat.history_len"
ATTR_CHAT_SUGGESTION_SOURCE = "chat.suggestion_source"
ATTR_CHAT_ERROR = "chat.error"

ATTR_CONTEXT_SECTION = "context.section"
ATTR_CONTEXT_FAILED_SECTIONS = "context.failed_sections"
ATTR_CONTEXT_PROMPT_LEN = "context.prompt_len"

ATTR_LLM_MODEL = "llm.model"
ATTR_LLM_STATUS_CODE = "llm.status_code"


def exporter_headers(settings: TracingConfig) -> dict[str, str]:
    """Basic auth header for the collector, empty when no user is set."""
    if not settings.username:
        return {}
    token = base64.b64encode(
        f"{settings.username}:{settings.password}".encode()
    ).decode()
    return {"Authorization": f"Basic {token}"}


def tracing_active() -> bool:
    return _provider is not None


def init_telemetry(app: FastAPI | None, settings: TracingConfig | None) -> bool:
    """Install the tracer provider and client instrumentations.

    Called from the app factory because the FastAPI instrumentor adds
    middleware. Returns whether tracing was switched on.
    """
    global _provider  # noqa: PLW0603

    if settings is None or not settings.enabled:
        logger.info("Tracing disabled.")
        return False
    if not settings.endpoint:
        logger.warning("Tracing enabled without tracing.endpoint; not starting it.")
        return False

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(settings.sample_rate)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.endpoint, headers=exporter_headers(settings)
            )
        )
    )
    trace.set_tracer_provider(provider)

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(
            app, excluded_urls=",".join(settings.excluded_urls)
        )
    # Completion requests from langchain-openai go through httpx.
    HTTPXClientInstrumentor().instrument()

    _provider = provider
    logger.info("Tracing to %s as %s.", settings.endpoint, settings.service_name)
    return True


async def build_telemetry(
    app: Annotated[FastAPI, Depends(get_app)],
    _db: Annotated[None, Depends(build_db)],
) -> AsyncGenerator[None, None]:
    """Trace risk queries on the engine from ``build_db``; flush spans on exit."""
    if _provider is None:
        yield
        return

    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    SQLAlchemyInstrumentor().instrument(engine=app.state.engine.sync_engine)
    try:
        yield
    finally:
        _provider.force_flush()
