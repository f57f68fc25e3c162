"""
Alembic Migration Environment
==============================

What:  Configures Alembic to work with our async SQLAlchemy setup.
How:   Three entry paths:
       - offline mode (`alembic upgrade head --sql`): emit SQL from the URL
       - programmatic (SqlNoteStore.initialize): a live sync connection is
         handed over in `config.attributes["connection"]`
       - CLI online mode: build an async engine from settings and bridge it
         with connection.run_sync()
Who:   The `alembic` CLI and keepwise.migrations.upgrade().
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from keepwise.config import settings
from keepwise.database import Base

# Import all models so Alembic can detect them for --autogenerate
from keepwise.models.note import Note  # noqa: F401

config = context.config

# Only the CLI has an .ini file; programmatic runs keep the app's logging setup
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

# Single source of truth for the URL unless the caller already set one
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """Generate SQL without connecting to the database."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    """Run the migration steps on a sync connection (shared by both online paths)."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        # SQLite cannot ALTER most things in place; batch mode recreates tables
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Connect with an async engine and apply pending migrations."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point for online migrations."""
    connection = config.attributes.get("connection")
    if connection is not None:
        do_run_migrations(connection)
        return
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
