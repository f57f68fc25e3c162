"""
KeepWise Backend — Abstract Note Store Interface
=================================================

What:  The storage contract every note backend implements.
How:   Concrete stores (SqlNoteStore, FirestoreNoteStore) implement the
       underscore hooks; the public methods here apply the rules both
       backends must share (field validation, id normalization, logging).
Who:   Called by the notes routes through the `get_note_store` dependency.

Contract (identical for every backend):
    create(user_id, url, highlighted_text, summary) -> id
        ValidationError if any field is missing, empty or whitespace-only.
    list(user_id) -> [Note]
        Only the caller's notes, newest first. Empty list when none.
    get(user_id, note_id) -> Note
        NotFoundError when the note is missing OR owned by another user.
    delete(user_id, note_id) -> None
        NotFoundError under the same conditions; a second delete of the same
        id therefore reports NotFound.

Scoping:
    Every hook receives the owner's uid and must filter on it inside the
    backend query itself. Loading a note and comparing owners in Python
    afterwards is allowed only where the backend cannot express the filter
    (document lookups by key).
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from keepwise.exceptions import ValidationError
from keepwise.schemas.note import Note, NoteId

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("url", "highlighted_text", "summary")


def validate_note_fields(
    url: Optional[str],
    highlighted_text: Optional[str],
    summary: Optional[str],
) -> None:
    """
    Raise ValidationError naming every missing or blank field.

    Values are checked, never rewritten: accepted text is stored exactly as sent.
    """
    values = {"url": url, "highlighted_text": highlighted_text, "summary": summary}
    missing = [
        name for name in REQUIRED_FIELDS
        if not isinstance(values[name], str) or not values[name].strip()
    ]
    if missing:
        raise ValidationError(
            message=f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )


class NoteStore(ABC):
    """
    Abstract base for note persistence backends.

    Implementations:
        - SqlNoteStore: one relational table, async SQLAlchemy
        - FirestoreNoteStore: one Firestore collection, firebase-admin
    """

    #: Short backend name reported by /health
    name: str = "abstract"

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backend for use. Must be idempotent.

        Relational stores bring the schema to the latest migration here.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections and clients."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Lightweight reachability check. Never raises."""
        ...

    # ── Public operations ─────────────────────────────────────────────────

    async def create(
        self,
        user_id: str,
        url: Optional[str],
        highlighted_text: Optional[str],
        summary: Optional[str],
    ) -> NoteId:
        """Validate, then insert. Returns the store-assigned id."""
        validate_note_fields(url, highlighted_text, summary)
        note_id = await self._insert(user_id, url, highlighted_text, summary)
        logger.info("Note %s created for user %s", note_id, user_id)
        return note_id

    async def list(self, user_id: str) -> List[Note]:
        notes = await self._list(user_id)
        logger.debug("Listed %d notes for user %s", len(notes), user_id)
        return notes

    async def get(self, user_id: str, note_id: NoteId) -> Note:
        return await self._get(user_id, str(note_id))

    async def delete(self, user_id: str, note_id: NoteId) -> None:
        await self._delete(user_id, str(note_id))
        logger.info("Note %s deleted by user %s", note_id, user_id)

    # ── Backend hooks ─────────────────────────────────────────────────────

    @abstractmethod
    async def _insert(
        self, user_id: str, url: str, highlighted_text: str, summary: str
    ) -> NoteId:
        ...

    @abstractmethod
    async def _list(self, user_id: str) -> List[Note]:
        ...

    @abstractmethod
    async def _get(self, user_id: str, note_id: str) -> Note:
        ...

    @abstractmethod
    async def _delete(self, user_id: str, note_id: str) -> None:
        ...
