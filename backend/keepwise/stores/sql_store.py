"""
KeepWise Backend — Relational Note Store
=========================================

What:  NoteStore backed by a single `notes` table through async SQLAlchemy.
How:   Owns an async engine and session factory; every operation opens its
       own session and transaction, so each create/list/get/delete is atomic
       on its own. Schema is brought to the latest Alembic revision in
       initialize().
Who:   Built by `build_note_store()` when NOTE_STORE=sql (the default).

Query plan:
    list:   WHERE user_id = :uid ORDER BY created_at DESC, id DESC
            → idx_notes_user_id narrows to the caller's rows
    get:    WHERE id = :id AND user_id = :uid   (primary key lookup)
    delete: DELETE WHERE id = :id AND user_id = :uid, rowcount decides 404

Error Handling:
    SQLAlchemy errors are logged with full context and re-raised as
    DatabaseError carrying the operation-level message only.
"""

import logging
from datetime import timezone
from typing import List, Optional

from sqlalchemy import delete, desc, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from keepwise import migrations
from keepwise.config import Settings
from keepwise.database import build_engine, build_session_factory
from keepwise.exceptions import DatabaseError, NotFoundError, StoreUnavailableError
from keepwise.models.note import Note as NoteRow
from keepwise.schemas.note import Note
from keepwise.stores.base import NoteStore

logger = logging.getLogger(__name__)

# Largest id the `id` column can hold: SQLite INTEGER is 64-bit, PostgreSQL INTEGER 32-bit
_MAX_ROW_ID = {"sqlite": 2**63 - 1, "postgresql": 2**31 - 1}


def _parse_id(note_id: str, max_id: int = _MAX_ROW_ID["sqlite"]) -> Optional[int]:
    """Row ids are positive integers in column range; anything else cannot match a row."""
    try:
        value = int(note_id)
    except (TypeError, ValueError):
        return None
    return value if 0 < value <= max_id else None


def _to_schema(row: NoteRow) -> Note:
    note = Note.model_validate(row)
    # SQLite hands back naive datetimes; everything we store is UTC
    if note.created_at.tzinfo is None:
        note.created_at = note.created_at.replace(tzinfo=timezone.utc)
    return note


class SqlNoteStore(NoteStore):
    """
    Relational implementation of the note store.

    Args:
        database_url: Async SQLAlchemy URL (sqlite+aiosqlite, postgresql+asyncpg)
        config:       Settings used for pool sizing and SQL echo
    """

    name = "sql"

    def __init__(self, database_url: str, config: Settings):
        self.database_url = database_url
        self._max_row_id = _MAX_ROW_ID.get(
            make_url(database_url).get_backend_name(), _MAX_ROW_ID["postgresql"]
        )
        self._config = config
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Create the engine (once) and upgrade the schema to the latest revision.

        Alembic records applied revisions, so calling this again, or on a
        database another process already migrated, changes nothing.
        """
        if self._engine is None:
            self._engine = build_engine(self.database_url, self._config)
            self._sessions = build_session_factory(self._engine)

        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(migrations.upgrade, self.database_url)
        except SQLAlchemyError as e:
            logger.error("Schema migration failed: %s", str(e), exc_info=True)
            raise StoreUnavailableError(
                message="Note store could not be initialized",
                context={"error_type": type(e).__name__},
            )
        logger.info("SqlNoteStore ready (%s)", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None

    async def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    def _session(self) -> AsyncSession:
        if self._sessions is None:
            raise StoreUnavailableError(context={"reason": "initialize() not called"})
        return self._sessions()

    # ── Operations ────────────────────────────────────────────────────────

    async def _insert(
        self, user_id: str, url: str, highlighted_text: str, summary: str
    ) -> int:
        row = NoteRow(
            user_id=user_id,
            url=url,
            highlighted_text=highlighted_text,
            summary=summary,
        )
        try:
            async with self._session() as session, session.begin():
                session.add(row)
                # Assigns the autoincrement id inside the transaction
                await session.flush()
                return row.id
        except SQLAlchemyError as e:
            logger.error("Database error saving note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to save note",
                context={"error_type": type(e).__name__},
            )

    async def _list(self, user_id: str) -> List[Note]:
        query = (
            select(NoteRow)
            .where(NoteRow.user_id == user_id)
            # id breaks ties between notes created within the same clock tick
            .order_by(desc(NoteRow.created_at), desc(NoteRow.id))
        )
        try:
            async with self._session() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch notes",
                context={"error_type": type(e).__name__},
            )
        return [_to_schema(row) for row in rows]

    async def _get(self, user_id: str, note_id: str) -> Note:
        row_id = _parse_id(note_id, self._max_row_id)
        if row_id is None:
            raise NotFoundError(resource_id=note_id)

        query = select(NoteRow).where(NoteRow.id == row_id, NoteRow.user_id == user_id)
        try:
            async with self._session() as session:
                result = await session.execute(query)
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to fetch note",
                context={"note_id": note_id},
            )

        if row is None:
            raise NotFoundError(resource_id=note_id)
        return _to_schema(row)

    async def _delete(self, user_id: str, note_id: str) -> None:
        row_id = _parse_id(note_id, self._max_row_id)
        if row_id is None:
            raise NotFoundError(resource_id=note_id)

        stmt = delete(NoteRow).where(NoteRow.id == row_id, NoteRow.user_id == user_id)
        try:
            async with self._session() as session, session.begin():
                result = await session.execute(stmt)
                deleted = result.rowcount
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to delete note",
                context={"note_id": note_id},
            )

        if deleted == 0:
            raise NotFoundError(resource_id=note_id)
