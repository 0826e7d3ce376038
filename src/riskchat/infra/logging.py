"""Root logger setup for the API process.

One stdout handler serves the app and uvicorn. Records carry the
current trace and span ids (empty outside a span), so a warning about a
failed context section can be matched to its chat turn.
"""

from __future__ import annotations

import logging
import sys

from opentelemetry import trace

from riskchat.configs.system import LoggingConfig

# Client libraries that log every request at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "opentelemetry", "aiosqlite")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"
_JSON_RENAMES = {"asctime": "timestamp", "levelname": "level", "name": "logger"}
_DEV_FORMAT = "%(levelprefix)s %(asctime)s %(name)s  %(message)s"


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        ctx = trace.get_current_span().get_span_context()
        record.trace_id = format(ctx.trace_id, "032x") if ctx.is_valid else ""  # type: ignore[attr-defined]
        record.span_id = format(ctx.span_id, "016x") if ctx.is_valid else ""  # type: ignore[attr-defined]
        return True


def build_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(
            fmt=_JSON_FIELDS,
            rename_fields=_JSON_RENAMES,
            defaults={"trace_id": "", "span_id": ""},
        )

    from uvicorn.logging import DefaultFormatter

    return DefaultFormatter(fmt=_DEV_FORMAT, datefmt="%H:%M:%S", use_colors=True)


def setup_logging(config: LoggingConfig | None = None) -> logging.Handler:
    """Replace root and uvicorn handlers; returns the installed handler."""
    config = config or LoggingConfig()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceIdFilter())
    handler.setFormatter(build_formatter(config.json_output))

    root = logging.getLogger()
    root.setLevel(config.level.upper())
    root.handlers = [handler]

    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
