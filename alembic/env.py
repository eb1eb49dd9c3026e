"""Alembic environment for the Scrapehouse schema.

The database URL comes from :func:`scrapehouse.config.settings.get_settings`
when ``DATABASE_URL`` is configured, falling back to ``sqlalchemy.url`` in
``alembic.ini``.  Online migrations run over an async engine.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from pydantic import ValidationError
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from scrapehouse.config.settings import get_settings
from scrapehouse.core.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

try:
    config.set_main_option("sqlalchemy.url", get_settings().database_url)
except ValidationError:
    # Settings incomplete (e.g. `alembic revision` on a dev box); use alembic.ini.
    pass

target_metadata = Base.metadata

# Options common to offline and online runs.
_COMPARE_OPTIONS: dict[str, Any] = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    """Emit SQL to the script output without a live connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    context.configure(connection=connection, **_COMPARE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def _run_async_migrations() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_with_connection)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(_run_async_migrations())
