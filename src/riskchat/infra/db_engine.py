"""Risk database engine for the app lifespan.

Kept out of the ``db`` package: ``telemetry`` depends on ``build_db``
and the repository imports ``telemetry``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from riskchat.configs.config import AppConfig, get_app_config
from riskchat.configs.system import ThirdPartyConfig
from riskchat.infra.lifespan import get_app

logger = logging.getLogger(__name__)


def create_engine_from_config(tp: ThirdPartyConfig) -> AsyncEngine:
    """Build the engine; SQLite (tests, local runs) gets no pool sizing."""
    url = make_url(tp.database_uri)
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        kwargs["pool_size"] = tp.database_pool_size
        kwargs["max_overflow"] = tp.database_max_overflow
    logger.info(
        "Risk database: %s", url.render_as_string(hide_password=True)
    )
    return create_async_engine(url, **kwargs)


async def build_db(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Put ``engine`` and ``session_factory`` on ``app.state`` until shutdown."""
    engine = create_engine_from_config(config.third_party)
    app.state.engine = engine
    app.state.session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield
    finally:
        await engine.dispose()


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory
