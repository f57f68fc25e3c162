"""
KeepWise Client — Notes API Client
===================================

What:  Async client for the Notes API used by the capture UI and viewer.
How:   httpx.AsyncClient with the API base URL (API_BASE_URL); the cached
       bearer token is attached to every request when present.

Error mapping:
    connection refused / timeout   → ServerUnreachableError
    401, 403                       → AuthenticationRequiredError (status kept)
    404                            → NotFoundError
    400                            → ValidationError
    anything else non-2xx          → ApiError

Each error carries the server's `error` message when the body has one.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from keepwise.client.token import TokenCache
from keepwise.config import settings
from keepwise.schemas.note import Note, NoteId

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request reached the server (or tried to) and did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ServerUnreachableError(ApiError):
    def __init__(self, message: str = "Unable to connect to server"):
        super().__init__(message, status_code=None)


class AuthenticationRequiredError(ApiError):
    """401 (no token) or 403 (token rejected): the user must sign in again."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase or f"HTTP {response.status_code}"


class NotesClient:
    """
    Args:
        base_url:    API root, e.g. http://localhost:3000/api
        token_cache: Source of the bearer token (optional)
        timeout:     Per-request timeout in seconds
        transport:   Custom httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_cache: Optional[TokenCache] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token_cache = token_cache or TokenCache()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def server_url(self) -> str:
        """Origin of the API server, e.g. http://localhost:3000."""
        url = httpx.URL(self.base_url)
        return f"{url.scheme}://{url.netloc.decode('ascii')}"

    async def __aenter__(self) -> "NotesClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Transport ─────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_cache.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, type(e).__name__)
            raise ServerUnreachableError()

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationRequiredError(_error_message(response), status)
        if status == 404:
            raise NotFoundError(_error_message(response), status)
        if status == 400:
            raise ValidationError(_error_message(response), status)
        if not response.is_success:
            raise ApiError(_error_message(response), status)

        try:
            body = response.json()
        except ValueError:
            raise ApiError("Malformed response from server", status)
        if not isinstance(body, dict):
            raise ApiError("Malformed response from server", status)
        return body

    # ── Notes API ─────────────────────────────────────────────────────────

    async def create_note(self, url: str, highlighted_text: str, summary: str) -> NoteId:
        """POST /api/notes. Returns the new note's id."""
        body = await self._request(
            "POST",
            "/notes",
            json={"url": url, "highlighted_text": highlighted_text, "summary": summary},
        )
        if not body.get("success"):
            raise ApiError(body.get("error") or "Failed to save note")
        if body.get("id") is None:
            raise ApiError("Malformed response from server")
        return body["id"]

    async def list_notes(self) -> List[Note]:
        body = await self._request("GET", "/notes")
        return [Note.model_validate(item) for item in body.get("notes", [])]

    async def get_note(self, note_id: NoteId) -> Note:
        body = await self._request("GET", f"/notes/{note_id}")
        return Note.model_validate(body["note"])

    async def delete_note(self, note_id: NoteId) -> str:
        body = await self._request("DELETE", f"/notes/{note_id}")
        return body.get("message", "")

    async def health(self) -> Dict[str, Any]:
        """GET /health on the server origin. A 503 still returns the body."""
        try:
            response = await self._client.get(f"{self.server_url}/health")
        except httpx.TransportError:
            raise ServerUnreachableError()
        try:
            return response.json()
        except ValueError:
            raise ApiError("Malformed response from server", response.status_code)
