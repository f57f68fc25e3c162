"""
KeepWise Backend — Notes Route Handlers
========================================

What:  Create, list, get and delete notes for the calling user.
How:   Each handler resolves the caller (get_current_user), runs exactly one
       store operation scoped to that uid, and wraps the result in the
       `{"success": true, ...}` envelope. Errors are raised as KeepWiseError
       subclasses and rendered by the global handlers in main.py.
Who:   Called by the browser extension (create) and the notes viewer
       (list, get, delete).

Route Inventory:
    POST   /api/notes        → NoteCreatedResponse
    GET    /api/notes        → NoteListResponse (newest first)
    GET    /api/notes/{id}   → NoteDetailResponse
    DELETE /api/notes/{id}   → MessageResponse
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from keepwise.dependencies import get_current_user, get_note_store
from keepwise.schemas.note import (
    ErrorResponse,
    MessageResponse,
    NoteCreate,
    NoteCreatedResponse,
    NoteDetailResponse,
    NoteListResponse,
)
from keepwise.services.auth_base import Identity
from keepwise.stores.base import NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

_AUTH_ERRORS = {
    401: {"description": "No bearer token", "model": ErrorResponse},
    403: {"description": "Token rejected", "model": ErrorResponse},
    500: {"description": "Store failure", "model": ErrorResponse},
}


@router.post(
    "/notes",
    response_model=NoteCreatedResponse,
    responses={
        400: {"description": "Missing required fields", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Save a note",
)
async def create_note(
    payload: Optional[NoteCreate] = Body(default=None),
    user: Identity = Depends(get_current_user),
    store: NoteStore = Depends(get_note_store),
) -> NoteCreatedResponse:
    """
    Persist `{url, highlighted_text, summary}` for the caller.

    id, user_id and created_at are always assigned server-side; the same
    keys in the body are ignored. A missing body counts as all fields missing.
    """
    payload = payload or NoteCreate()
    note_id = await store.create(
        user.uid,
        payload.url,
        payload.highlighted_text,
        payload.summary,
    )
    return NoteCreatedResponse(id=note_id)


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses=_AUTH_ERRORS,
    summary="List the caller's notes, newest first",
)
async def list_notes(
    user: Identity = Depends(get_current_user),
    store: NoteStore = Depends(get_note_store),
) -> NoteListResponse:
    notes = await store.list(user.uid)
    return NoteListResponse(notes=notes)


@router.get(
    "/notes/{note_id}",
    response_model=NoteDetailResponse,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Get one of the caller's notes",
)
async def get_note(
    note_id: str,
    user: Identity = Depends(get_current_user),
    store: NoteStore = Depends(get_note_store),
) -> NoteDetailResponse:
    """Notes of other users are reported as not found."""
    note = await store.get(user.uid, note_id)
    return NoteDetailResponse(note=note)


@router.delete(
    "/notes/{note_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Delete one of the caller's notes",
)
async def delete_note(
    note_id: str,
    user: Identity = Depends(get_current_user),
    store: NoteStore = Depends(get_note_store),
) -> MessageResponse:
    await store.delete(user.uid, note_id)
    return MessageResponse(message="Note deleted successfully")
