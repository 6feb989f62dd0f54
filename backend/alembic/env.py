"""
Alembic Migration Environment
==============================

What:  Runs NoteKeeper migrations with the async SQLAlchemy engine.
How:   Reads the URL from notekeeper.config.settings (DATABASE_URL), not from
       alembic.ini, and runs the sync migration context through
       connection.run_sync().
Who:   `alembic upgrade head` / `alembic revision --autogenerate`, run from
       the backend/ directory.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from notekeeper.config import settings
from notekeeper.database import Base

# Registers every table on Base.metadata for --autogenerate
from notekeeper.models.note import Note, NoteImage  # noqa: F401
from notekeeper.models.user import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))


def _migrate(**configure_kwargs) -> None:
    context.configure(target_metadata=target_metadata, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_on(connection) -> None:
    _migrate(connection=connection, compare_type=True)


async def _migrate_online() -> None:
    # NullPool: a migration run holds exactly one connection
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_on)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    # `alembic upgrade head --sql`: print the DDL instead of running it
    _migrate(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_migrate_online())
