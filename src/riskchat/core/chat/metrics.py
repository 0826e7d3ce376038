"""Prometheus metrics for the risk chat assistant.

Custom business metrics that complement the auto-instrumented HTTP
metrics provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``riskchat_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from riskchat.configs.config import AppConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Chat turn metrics
# ---------------------------------------------------------------------------

CHAT_TURNS_TOTAL = Counter(
    "riskchat_chat_turns_total",
    "Total chat turns handled, by outcome",
    ["status"],  # "ok" | "llm_error" | "error"
)

CHAT_TURN_DURATION_SECONDS = Histogram(
    "riskchat_chat_turn_duration_seconds",
    "End-to-end duration of a chat turn",
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120),
)

LLM_COMPLETION_LATENCY_SECONDS = Histogram(
    "riskchat_llm_completion_latency_seconds",
    "Latency of the completion service call",
    buckets=(0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

SUGGESTIONS_TOTAL = Counter(
    "riskchat_suggestions_total",
    "Replies by where their follow-up suggestions came from",
    ["source"],  # "extracted" | "fallback"
)

# ---------------------------------------------------------------------------
# Context assembly metrics
# ---------------------------------------------------------------------------

CONTEXT_SECTION_FAILURES_TOTAL = Counter(
    "riskchat_context_section_failures_total",
    "Context sections omitted because their fetch failed",
    ["section"],
)

CONTEXT_ASSEMBLY_SECONDS = Histogram(
    "riskchat_context_assembly_seconds",
    "Time spent fetching all context sections",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

# ---------------------------------------------------------------------------
# Session store metrics
# ---------------------------------------------------------------------------

CHAT_SESSIONS_ACTIVE = Gauge(
    "riskchat_chat_sessions_active",
    "Sessions currently held in the in-memory store",
)

CHAT_SESSIONS_EVICTED_TOTAL = Counter(
    "riskchat_chat_sessions_evicted_total",
    "Sessions evicted from the store",
    ["reason"],  # "idle" | "capacity"
)

# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

FEEDBACK_TOTAL = Counter(
    "riskchat_feedback_total",
    "Feedback submissions, by rating",
    ["rating"],
)


# ---------------------------------------------------------------------------
# HTTP instrumentation
# ---------------------------------------------------------------------------


def setup_metrics(app: FastAPI, config: AppConfig) -> None:
    """Attach HTTP instrumentation and the ``/metrics`` endpoint to *app*.

    Must run before the app starts serving; middleware cannot be added
    afterwards.
    """
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=config.tracing.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
