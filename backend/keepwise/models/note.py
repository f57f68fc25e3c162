"""
KeepWise Backend — Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic revisions 001/002
       create the same shape (see keepwise/migrations/versions).
Who:   Used by SqlNoteStore for CRUD operations.

Table Design:
    - INTEGER autoincrement primary key: ids are small and readable in URLs
      (/api/notes/42); ownership checks, not id secrecy, protect notes
    - user_id: owner uid from the token verifier; every query filters on it
    - url / highlighted_text / summary: TEXT, never empty (validated before insert)
    - created_at: UTC with timezone, assigned at insert time

    Index on user_id:
        Every query is "notes of this user"; without it each list is a full scan.
    Index on created_at DESC:
        Serves the newest-first ordering of the list operation.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from keepwise.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A captured page excerpt with its summary, owned by one user.

    Lifecycle:
        1. Inserted by SqlNoteStore.create() once all fields are validated
        2. Never updated
        3. Deleted by its owner through SqlNoteStore.delete()

    Query Patterns:
        - List:   SELECT ... WHERE user_id = :uid ORDER BY created_at DESC, id DESC
        - Get:    SELECT ... WHERE id = :id AND user_id = :uid
        - Delete: DELETE ... WHERE id = :id AND user_id = :uid
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        server_default="anonymous",
        comment="Owner uid as resolved by the token verifier",
    )

    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Address of the page the text was captured from",
    )

    highlighted_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="The text the user selected on the page",
    )

    summary: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Summary of highlighted_text",
    )

    # Python-side default gives microsecond resolution on every dialect;
    # SQLite's CURRENT_TIMESTAMP only has whole seconds
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this note was created (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_user_id", "user_id"),
        Index("idx_notes_created_at", created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id='{self.user_id}', created_at='{self.created_at}')>"
