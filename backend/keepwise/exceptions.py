"""
KeepWise Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each failure the API can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       `{"error": <message>}` JSON envelopes with the matching HTTP status.
Who:   Raised by token verifiers, note stores and the summarizer; caught by
       the global handlers or by the capture client.

Exception Hierarchy:
    KeepWiseError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized (no credential)
    ├── ForbiddenError           → 403 Forbidden (credential rejected)
    ├── IdentityProviderError    → 500 (token could not be checked)
    ├── NotFoundError            → 404 Not Found (missing OR not owned)
    ├── StoreUnavailableError    → 500 (backend not configured / not initialized)
    ├── DatabaseError            → 500 (backend operation failed)
    ├── LLMServiceError          → 503 (summarizer failed after retries)
    └── CircuitBreakerOpenError  → 503 (summarizer circuit open)

Ownership policy:
    A note owned by someone else is reported exactly like a note that does
    not exist. There is deliberately no "access denied" variant, so the API
    never reveals that another user's note id is in use.
"""

from typing import Any, Dict, List, Optional


class KeepWiseError(Exception):
    """
    Base exception for all KeepWise application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(KeepWiseError):
    """
    Raised when client input fails validation.

    When:    A required note field is missing or empty, or the body is not a
             JSON object.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        fields: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if fields:
            ctx["fields"] = list(fields)
        super().__init__(message=message, context=ctx)
        self.fields = list(fields or [])


class UnauthorizedError(KeepWiseError):
    """
    Raised when an identity provider is configured but the request carries no
    bearer token.

    HTTP:    401 Unauthorized
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Access token required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(KeepWiseError):
    """
    Raised when a bearer token is present but the identity provider rejects it
    (expired, malformed, revoked, wrong signature).

    HTTP:    403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityProviderError(KeepWiseError):
    """
    Raised when a token could not be checked at all because the identity
    provider is unreachable (e.g. Google's signing certificates failed to
    download). The token itself may be fine, so this is not a 403.

    HTTP:    500 Internal Server Error
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Unable to verify access token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(KeepWiseError):
    """
    Raised when a requested note does not exist for the calling user.

    When:    GET/DELETE /api/notes/{id} with an unknown id, a malformed id,
             or the id of a note owned by another user.
    HTTP:    404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Note",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            # Kept in the log context only; the response message never echoes ids
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class StoreUnavailableError(KeepWiseError):
    """
    Raised when the note store is not configured or not initialized.

    When:    NOTE_STORE=firestore without Firebase credentials, or a store
             method is called before initialize().
    HTTP:    500 Internal Server Error
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Note store is not available",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(KeepWiseError):
    """
    Raised when a store operation fails unexpectedly.

    When:    Connection lost mid-query, constraint violation, Firestore RPC
             failure, etc.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always the operation-level text
        ("Failed to save note"). Driver details are logged server-side only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(KeepWiseError):
    """
    Raised when the summarizer fails after all retries.

    HTTP:    503 Service Unavailable (when surfaced over HTTP)

    Attributes:
        retry_after: Suggested seconds before trying again, if known
    """

    status_code = 503

    def __init__(
        self,
        message: str = "Summarization service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(KeepWiseError):
    """
    Raised when the summarizer's circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    status_code = 503

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Summarization is temporarily unavailable due to repeated failures. "
            f"It will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
