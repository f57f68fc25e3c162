"""
KeepWise Backend — FastAPI Dependencies
========================================

What:  Per-request providers for the caller's identity and the note store.
How:   Both read objects the app factory placed on `app.state`, so tests can
       inject their own verifier and store without patching modules.
"""

from typing import Optional

from fastapi import Header, Request

from keepwise.exceptions import StoreUnavailableError
from keepwise.services.auth_base import Identity, parse_bearer
from keepwise.stores.base import NoteStore


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Identity:
    """
    Resolve the caller from the Authorization header.

    Raises UnauthorizedError (401) without a bearer token and ForbiddenError
    (403) for a rejected one, unless authentication is disabled.
    """
    verifier = request.app.state.token_verifier
    identity = await verifier.verify(parse_bearer(authorization))
    # Read back by the access log
    request.state.uid = identity.uid
    return identity


def get_note_store(request: Request) -> NoteStore:
    store = getattr(request.app.state, "note_store", None)
    if store is None:
        raise StoreUnavailableError()
    return store
