"""
KeepWise Client — Notes API Client & Token Cache Tests
=======================================================

What:  NotesClient against httpx.MockTransport, plus TokenCache refresh.
How:   Handlers return canned server responses; the error mapping and the
       Authorization header are asserted on the client side.
"""

import asyncio

import httpx
import pytest
from httpx import ASGITransport

from keepwise.client.api_client import (
    ApiError,
    AuthenticationRequiredError,
    NotesClient,
    NotFoundError,
    ServerUnreachableError,
    ValidationError,
)
from keepwise.client.token import TokenCache
from keepwise.main import create_app
from keepwise.services.auth_base import AnonymousTokenVerifier

BASE_URL = "http://localhost:3000/api"

NOTE_JSON = {
    "id": 1,
    "user_id": "u1",
    "url": "https://example.com",
    "highlighted_text": "Lorem ipsum",
    "summary": "Filler",
    "created_at": "2025-01-01T10:00:00Z",
}


def client_for(handler, token=None) -> NotesClient:
    return NotesClient(
        base_url=BASE_URL,
        token_cache=TokenCache(token),
        transport=httpx.MockTransport(handler),
    )


class TestNotesClient:

    @pytest.mark.asyncio
    async def test_create_sends_bearer_and_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={"success": True, "id": 7, "message": "Note saved successfully"})

        async with client_for(handler, token="tok-1") as client:
            note_id = await client.create_note("https://example.com", "text", "sum")

        assert note_id == 7
        assert seen["auth"] == "Bearer tok-1"
        assert seen["path"] == "/api/notes"
        assert b'"highlighted_text":"text"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_success_without_id_is_malformed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "message": "Note saved successfully"})

        async with client_for(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.create_note("https://example.com", "text", "sum")

        assert exc_info.value.message == "Malformed response from server"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"success": True, "notes": [NOTE_JSON]})

        async with client_for(handler) as client:
            notes = await client.list_notes()

        assert len(notes) == 1
        assert notes[0].id == 1
        assert notes[0].created_at.tzinfo is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_type",
        [
            (400, ValidationError),
            (401, AuthenticationRequiredError),
            (403, AuthenticationRequiredError),
            (404, NotFoundError),
            (500, ApiError),
        ],
    )
    async def test_error_mapping(self, status, error_type):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "server says no", "request_id": "r1"})

        async with client_for(handler) as client:
            with pytest.raises(error_type) as exc_info:
                await client.get_note(1)

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "server says no"

    @pytest.mark.asyncio
    async def test_connection_failure_is_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(ServerUnreachableError):
                await client.list_notes()

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with client_for(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.delete_note(3)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_health_uses_server_origin(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/health"
            return httpx.Response(503, json={"status": "unhealthy", "store": "sql:disconnected"})

        async with client_for(handler) as client:
            assert client.server_url == "http://localhost:3000"
            body = await client.health()

        assert body["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_round_trip_against_app(self, sql_store):
        app = create_app(store=sql_store, verifier=AnonymousTokenVerifier())
        client = NotesClient(base_url="http://test/api", transport=ASGITransport(app=app))

        async with client:
            note_id = await client.create_note("https://example.com", "Lorem", "Filler")
            note = await client.get_note(note_id)
            assert note.user_id == "anonymous"
            assert [n.id for n in await client.list_notes()] == [note_id]
            assert await client.delete_note(note_id) == "Note deleted successfully"
            with pytest.raises(NotFoundError):
                await client.get_note(note_id)


class TestTokenCache:

    @pytest.mark.asyncio
    async def test_refresh_replaces_token(self):
        cache = TokenCache("old")

        async def fetch():
            return "new"

        assert await cache.refresh(fetch) == "new"
        assert cache.token == "new"

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_token(self):
        cache = TokenCache("old")

        async def fetch():
            raise RuntimeError("identity provider down")

        assert await cache.refresh(fetch) == "old"

    @pytest.mark.asyncio
    async def test_refresh_returning_none_signs_out(self):
        cache = TokenCache("old")

        async def fetch():
            return None

        await cache.refresh(fetch)
        assert cache.token is None

    @pytest.mark.asyncio
    async def test_background_refresh(self):
        cache = TokenCache()
        calls = []

        async def fetch():
            calls.append(1)
            return f"tok-{len(calls)}"

        cache.start_refresh(fetch, interval=0.01)
        await asyncio.sleep(0.1)
        await cache.stop()

        assert len(calls) >= 2
        assert cache.token == f"tok-{len(calls)}"
