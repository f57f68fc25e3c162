"""
KeepWise Backend — Note Stores
===============================

What:  Persistence backends behind the NoteStore interface.
How:   `build_note_store()` picks the backend named by NOTE_STORE.

Store Inventory:
    - base.py:            NoteStore ABC + shared field validation
    - sql_store.py:       SqlNoteStore (async SQLAlchemy, Alembic migrations)
    - firestore_store.py: FirestoreNoteStore (firebase-admin async Firestore)
"""

from keepwise.config import Settings
from keepwise.stores.base import NoteStore


def build_note_store(config: Settings) -> NoteStore:
    """Instantiate (but do not initialize) the configured note store."""
    if config.note_store == "firestore":
        from keepwise.stores.firestore_store import FirestoreNoteStore

        return FirestoreNoteStore(config.firestore_collection, config)

    from keepwise.stores.sql_store import SqlNoteStore

    return SqlNoteStore(config.database_url, config)
