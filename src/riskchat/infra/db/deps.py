"""Per-request dependency factories for the db package.

The low-level engine + session plumbing lives in the sibling leaf module
``riskchat.infra.db_engine`` to avoid circular imports with
``telemetry``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from riskchat.infra.db_engine import get_session_factory

from .repository import RiskRepository


def get_risk_repository(
    sf: Annotated[
        async_sessionmaker[AsyncSession],
        Depends(get_session_factory),
    ],
) -> RiskRepository:
    """Return the risk repository bound to this app's session factory."""
    return RiskRepository(sf)
