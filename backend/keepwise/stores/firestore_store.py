"""
KeepWise Backend — Firestore Note Store
========================================

What:  NoteStore backed by one Cloud Firestore collection.
How:   firebase-admin's async Firestore client; every note is a document whose
       generated key is the note id. created_at is the Firestore server
       timestamp, so clock skew between API instances cannot reorder notes.
Who:   Built by `build_note_store()` when NOTE_STORE=firestore.

Document shape:
    notes/{auto-id}
        user_id:          str
        url:              str
        highlighted_text: str
        summary:          str
        created_at:       timestamp (server-assigned)

Indexes:
    list() filters on user_id and orders by created_at DESC, which needs a
    composite index (user_id ASC, created_at DESC) on the collection.
    Firestore answers the first such query with a link to create it.
"""

import logging
from typing import Any, List, Optional

from firebase_admin import firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from keepwise.config import Settings
from keepwise.exceptions import DatabaseError, NotFoundError, StoreUnavailableError
from keepwise.schemas.note import Note
from keepwise.services.firebase_app import get_firebase_app
from keepwise.stores.base import NoteStore

logger = logging.getLogger(__name__)


def _valid_key(note_id: str) -> bool:
    # "/" would address a sub-path rather than a document in this collection
    return bool(note_id) and "/" not in note_id


def _to_schema(snapshot: Any) -> Note:
    data = snapshot.to_dict() or {}
    return Note(
        id=snapshot.id,
        user_id=data.get("user_id", ""),
        url=data.get("url", ""),
        highlighted_text=data.get("highlighted_text", ""),
        summary=data.get("summary", ""),
        created_at=data["created_at"],
    )


class FirestoreNoteStore(NoteStore):
    """
    Document implementation of the note store.

    Args:
        collection_name: Firestore collection holding the notes
        config:          Settings carrying the Firebase credentials
        client:          Pre-built AsyncClient (tests pass an in-memory double)
    """

    name = "firestore"

    def __init__(self, collection_name: str, config: Settings, client: Optional[Any] = None):
        self.collection_name = collection_name
        self._config = config
        self._client = client
        self._collection: Optional[Any] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        if self._collection is not None:
            return
        if self._client is None:
            try:
                app = get_firebase_app(self._config)
            except ValueError as e:
                raise StoreUnavailableError(
                    message="Firestore note store is not configured",
                    context={"reason": str(e)},
                )
            self._client = firestore_async.client(app)
        self._collection = self._client.collection(self.collection_name)
        logger.info("FirestoreNoteStore ready (collection=%s)", self.collection_name)

    async def close(self) -> None:
        self._collection = None

    async def ping(self) -> bool:
        if self._collection is None:
            return False
        try:
            async for _ in self._collection.limit(1).stream():
                break
            return True
        except Exception as e:
            logger.warning("Firestore ping failed: %s", str(e))
            return False

    def _notes(self) -> Any:
        if self._collection is None:
            raise StoreUnavailableError(context={"reason": "initialize() not called"})
        return self._collection

    # ── Operations ────────────────────────────────────────────────────────

    async def _insert(
        self, user_id: str, url: str, highlighted_text: str, summary: str
    ) -> str:
        ref = self._notes().document()
        try:
            await ref.set({
                "user_id": user_id,
                "url": url,
                "highlighted_text": highlighted_text,
                "summary": summary,
                "created_at": firestore.SERVER_TIMESTAMP,
            })
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore error saving note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to save note",
                context={"error_type": type(e).__name__},
            )
        return ref.id

    async def _list(self, user_id: str) -> List[Note]:
        query = (
            self._notes()
            .where(filter=FieldFilter("user_id", "==", user_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
        )
        try:
            return [_to_schema(snapshot) async for snapshot in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch notes",
                context={"error_type": type(e).__name__},
            )

    async def _fetch_owned(self, user_id: str, note_id: str, failure_message: str) -> Any:
        """Load the document and return its snapshot only when user_id owns it."""
        if not _valid_key(note_id):
            raise NotFoundError(resource_id=note_id)

        try:
            snapshot = await self._notes().document(note_id).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore error reading note %s: %s", note_id, str(e))
            raise DatabaseError(message=failure_message, context={"note_id": note_id})

        # Documents are addressed by key, so ownership is checked after the read
        if not snapshot.exists or (snapshot.to_dict() or {}).get("user_id") != user_id:
            raise NotFoundError(resource_id=note_id)
        return snapshot

    async def _get(self, user_id: str, note_id: str) -> Note:
        snapshot = await self._fetch_owned(user_id, note_id, "Failed to fetch note")
        return _to_schema(snapshot)

    async def _delete(self, user_id: str, note_id: str) -> None:
        snapshot = await self._fetch_owned(user_id, note_id, "Failed to delete note")
        try:
            await snapshot.reference.delete()
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(message="Failed to delete note", context={"note_id": note_id})
