"""
KeepWise Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract between the extension, the
       notes viewer and the backend.
How:   FastAPI uses these models to parse request bodies, serialize
       responses, and generate the OpenAPI document.

Envelope convention:
    success → {"success": true, ...payload}
    failure → {"error": "<message>", "request_id": "<id>"}
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

# Relational stores hand out integers, document stores hand out string keys
NoteId = Union[int, str]


# ══════════════════════════════════════════════════════════════════════════
# Domain model returned by every store
# ══════════════════════════════════════════════════════════════════════════


class Note(BaseModel):
    """
    What:  One persisted note, identical in shape for both storage backends.
    Who:   Returned by NoteStore.list()/get() and embedded in API responses.
    """
    id: NoteId = Field(description="Store-assigned identifier")
    user_id: str = Field(description="Owner uid")
    url: str = Field(description="Source page address")
    highlighted_text: str = Field(description="Text selected on the page")
    summary: str = Field(description="Summary of the highlighted text")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """
    What:  Body of POST /api/notes.

    All three fields are optional at the schema level on purpose: missing
    and empty values must both produce the store's 400 ValidationError with
    one message, instead of FastAPI's 422 for missing keys. Unknown keys
    (a client-sent created_at or user_id, say) are ignored.
    """
    url: Optional[str] = Field(default=None, description="Source page address")
    highlighted_text: Optional[str] = Field(default=None, description="Selected text")
    summary: Optional[str] = Field(default=None, description="Summary text")

    model_config = {"extra": "ignore"}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreatedResponse(BaseModel):
    """Returned by POST /api/notes."""
    success: bool = True
    id: NoteId = Field(description="Identifier of the new note")
    message: str = Field(default="Note saved successfully")


class NoteListResponse(BaseModel):
    """Returned by GET /api/notes: newest first, never paginated."""
    success: bool = True
    notes: List[Note] = Field(description="All notes of the caller")


class NoteDetailResponse(BaseModel):
    """Returned by GET /api/notes/{id}."""
    success: bool = True
    note: Note


class MessageResponse(BaseModel):
    """Returned by DELETE /api/notes/{id}."""
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """
    What:  Error envelope for every failed request.

    Example:
        {"error": "Missing required fields: url, summary", "request_id": "a1b2c3d4"}
    """
    error: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and container health checks.
    """
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    store: str = Field(description="Note store backend and reachability, e.g. sql:connected")
    auth_provider: str = Field(description="Configured identity provider")
    uptime_seconds: float = Field(description="Seconds since service started")
