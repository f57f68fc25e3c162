"""
KeepWise Backend — Firestore Note Store Tests
==============================================

What:  FirestoreNoteStore against the in-memory Firestore double (conftest).
Why:   Both stores share one contract; these mirror the relational tests
       where behavior is meant to be identical.
"""

from unittest.mock import patch

import pytest
from google.api_core import exceptions as google_exceptions

from keepwise.config import Settings
from keepwise.exceptions import (
    DatabaseError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from keepwise.stores.firestore_store import FirestoreNoteStore


class TestFirestoreNoteStore:

    @pytest.mark.asyncio
    async def test_create_and_get(self, firestore_store, fake_firestore):
        note_id = await firestore_store.create("u1", "https://example.com", "Lorem ipsum", "A Latin filler text.")

        assert isinstance(note_id, str)
        stored = fake_firestore.collection("notes").docs[note_id]
        assert stored["user_id"] == "u1"

        note = await firestore_store.get("u1", note_id)
        assert note.id == note_id
        assert note.url == "https://example.com"
        assert note.summary == "A Latin filler text."
        assert note.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_validation_shared_with_sql_store(self, firestore_store, fake_firestore):
        with pytest.raises(ValidationError) as exc_info:
            await firestore_store.create("u1", "https://a", " ", None)

        assert exc_info.value.message == "Missing required fields: highlighted_text, summary"
        assert fake_firestore.collection("notes").docs == {}

    @pytest.mark.asyncio
    async def test_list_scoped_and_newest_first(self, firestore_store):
        first = await firestore_store.create("u1", "https://a", "t1", "s1")
        await firestore_store.create("u2", "https://b", "t2", "s2")
        third = await firestore_store.create("u1", "https://c", "t3", "s3")

        notes = await firestore_store.list("u1")

        assert [n.id for n in notes] == [third, first]
        assert await firestore_store.list("u3") == []

    @pytest.mark.asyncio
    async def test_other_users_note_is_not_found(self, firestore_store):
        note_id = await firestore_store.create("u1", "https://a", "t", "s")

        with pytest.raises(NotFoundError):
            await firestore_store.get("u2", note_id)
        with pytest.raises(NotFoundError):
            await firestore_store.delete("u2", note_id)

        assert (await firestore_store.get("u1", note_id)).id == note_id

    @pytest.mark.asyncio
    async def test_delete_twice(self, firestore_store):
        note_id = await firestore_store.create("u1", "https://a", "t", "s")

        await firestore_store.delete("u1", note_id)
        with pytest.raises(NotFoundError):
            await firestore_store.delete("u1", note_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["", "notes/abc", "a/b/c"])
    async def test_path_like_ids_are_not_found(self, firestore_store, bad_id):
        with pytest.raises(NotFoundError):
            await firestore_store.get("u1", bad_id)

    @pytest.mark.asyncio
    async def test_ping(self, firestore_store):
        assert await firestore_store.ping() is True
        await firestore_store.close()
        assert await firestore_store.ping() is False

    @pytest.mark.asyncio
    async def test_backend_error_becomes_database_error(self, firestore_store, fake_firestore):
        ref_type = type(fake_firestore.collection("notes").document())

        async def failing_set(self, data):
            raise google_exceptions.ServiceUnavailable("down")

        with patch.object(ref_type, "set", failing_set):
            with pytest.raises(DatabaseError) as exc_info:
                await firestore_store.create("u1", "https://a", "t", "s")

        assert exc_info.value.message == "Failed to save note"


class TestFirestoreConfiguration:

    @pytest.mark.asyncio
    async def test_unconfigured_store_is_unavailable(self):
        config = Settings(
            _env_file=None,
            firebase_credentials_path=None,
            firebase_project_id=None,
            firebase_client_email=None,
            firebase_private_key=None,
        )
        store = FirestoreNoteStore("notes", config)

        with patch("keepwise.services.firebase_app.firebase_admin.get_app", side_effect=ValueError):
            with pytest.raises(StoreUnavailableError):
                await store.initialize()

    @pytest.mark.asyncio
    async def test_use_before_initialize(self, fake_firestore):
        store = FirestoreNoteStore("notes", Settings(_env_file=None), client=fake_firestore)
        with pytest.raises(StoreUnavailableError):
            await store.list("u1")
