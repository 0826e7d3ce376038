"""Migrations for the risk register schema.

The URL comes from ``AppConfig`` so migrations see the same database as
the API: ConfigMap, ``RISKCHAT_THIRD_PARTY__DATABASE_URI``, ``.env`` and
``configs/config.yaml`` are honoured in that order. An ``-x url=...``
argument overrides all of them.
"""

import asyncio

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from riskchat.configs.config import get_app_config
from riskchat.infra.db.models import Base

target_metadata = Base.metadata


def database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("url")
    return override or get_app_config().third_party.database_uri


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most columns in place.
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )


async def run_online() -> None:
    engine = create_async_engine(database_url())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(run_online())
