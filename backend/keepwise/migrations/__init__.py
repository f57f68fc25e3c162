"""
KeepWise Backend — Schema Migrations
=====================================

What:  Versioned Alembic migrations for the `notes` table and a helper to
       apply them from inside the application.
How:   `upgrade(connection, database_url)` builds an in-memory Alembic config
       pointing at this directory and runs `alembic upgrade` on an already
       open sync connection (SqlNoteStore passes one via run_sync).
When:  Once at SqlNoteStore.initialize(); re-running is a no-op because
       Alembic records the applied revision in `alembic_version`.

Unversioned databases:
    A `notes` table without `alembic_version` was created before migrations
    existed (possibly with an ad hoc user_id column). It is stamped at 001
    and upgraded from there; 002 only adds what is missing.

Revisions:
    001  create notes(id, url, highlighted_text, summary, created_at)
    002  add notes.user_id (existing rows become 'anonymous') + index
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent


def build_alembic_config(database_url: str) -> Config:
    """Alembic config without an .ini file, rooted at this package."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats '%' specially (URL-encoded passwords)
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def upgrade(connection: Connection, database_url: str, revision: str = "head") -> None:
    """Apply migrations up to `revision` using the given sync connection."""
    cfg = build_alembic_config(database_url)
    cfg.attributes["connection"] = connection

    tables = set(inspect(connection).get_table_names())
    if "notes" in tables and "alembic_version" not in tables:
        logger.info("Found unversioned notes table, stamping revision 001")
        command.stamp(cfg, "001")

    command.upgrade(cfg, revision)
