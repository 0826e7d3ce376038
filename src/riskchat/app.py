"""FastAPI application entry point.

Run with ``uvicorn riskchat.app:app``.
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI

from riskchat.api.chat import router as chat_router
from riskchat.api.dashboard import router as dashboard_router
from riskchat.api.exceptions import register_exception_handlers
from riskchat.configs.config import get_app_config
from riskchat.core.chat.metrics import setup_metrics
from riskchat.core.chat.session_store import build_session_store
from riskchat.infra.db_engine import build_db
from riskchat.infra.lifespan import inject
from riskchat.infra.logging import setup_logging
from riskchat.infra.telemetry import build_telemetry, init_telemetry

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _db: Annotated[None, Depends(build_db)],
    _telemetry: Annotated[None, Depends(build_telemetry)],
    _sessions: Annotated[None, Depends(build_session_store)],
):
    logger.info("Risk chat service started")
    yield
    logger.info("Risk chat service stopping")


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="Risk Chat",
        description="Risk register dashboard API with an AI chat assistant",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    register_exception_handlers(app)
    setup_metrics(app, config)
    init_telemetry(app, config.tracing)

    app.include_router(chat_router)
    app.include_router(dashboard_router)

    return app


app = get_app()
