"""Alembic environment for the progress store.

DATABASE_URL comes from app.core.config, the same source PgTripleStore
uses, so migrations and the running service always target one database.
Online migrations run over the same asyncpg driver as the service.

The triples table may live in a database shared with other subsystems;
autogenerate only ever considers the tables declared in app.db.tables.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from app.core.config import SETTINGS
from app.db.engine import Base

config = context.config

if SETTINGS.database_url:
    config.set_main_option("sqlalchemy.url", SETTINGS.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import app.db.tables  # noqa: E402, F401

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    # A reflected table with no model belongs to another subsystem.
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True


def run_migrations_offline() -> None:
    """Emit SQL for the triples schema without a live database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
