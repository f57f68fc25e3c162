"""
KeepWise Backend — Abstract Token Verifier Interface
=====================================================

What:  Contract for turning a bearer credential into a user identity.
How:   Concrete verifiers implement `_verify_token()`; the shared `verify()`
       handles the "no credential" case the same way for all of them.
Who:   Called once per request by the `get_current_user` dependency.

Outcomes of verify(token):
    provider configured, token missing      → UnauthorizedError (401)
    provider configured, token rejected     → ForbiddenError (403)
    provider configured, token accepted     → Identity(uid, email, claims)
    no provider (AnonymousTokenVerifier)    → Identity("anonymous", ...)

Implementations:
    - AnonymousTokenVerifier: AUTH_PROVIDER=none (authentication disabled)
    - FirebaseTokenVerifier:  AUTH_PROVIDER=firebase (firebase_auth.py)
    - JWTTokenVerifier:       AUTH_PROVIDER=jwt (jwt_auth.py)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from keepwise.config import Settings
from keepwise.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

ANONYMOUS_UID = "anonymous"
ANONYMOUS_EMAIL = "anonymous@local.dev"


class Identity(BaseModel):
    """The caller as resolved from a verified token."""
    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an `Authorization: Bearer <token>` header value.

    Returns None when the header is absent, blank, uses another scheme, or
    carries an empty token. The scheme is matched case-insensitively.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class TokenVerifier(ABC):
    """Abstract identity provider adapter. Stateless between calls."""

    #: Provider name reported by /health
    provider: str = "abstract"

    async def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise UnauthorizedError()
        return await self._verify_token(token)

    @abstractmethod
    async def _verify_token(self, token: str) -> Identity:
        """
        Validate a non-empty token.

        Raises:
            ForbiddenError: expired, malformed, revoked, or missing a uid.
        """
        ...


class AnonymousTokenVerifier(TokenVerifier):
    """
    Degraded mode used when no identity provider is configured.

    Every caller, with or without a token, becomes the shared anonymous user,
    so all notes end up in one bucket. Startup logs a warning.
    """

    provider = "none"

    async def verify(self, token: Optional[str]) -> Identity:
        return Identity(uid=ANONYMOUS_UID, email=ANONYMOUS_EMAIL)

    async def _verify_token(self, token: str) -> Identity:
        return await self.verify(token)


def build_token_verifier(config: Settings) -> TokenVerifier:
    """Instantiate the verifier named by AUTH_PROVIDER."""
    if config.auth_provider == "firebase":
        from keepwise.services.firebase_auth import FirebaseTokenVerifier
        from keepwise.services.firebase_app import get_firebase_app

        return FirebaseTokenVerifier(
            app=get_firebase_app(config),
            check_revoked=config.firebase_check_revoked,
        )

    if config.auth_provider == "jwt":
        from keepwise.services.jwt_auth import JWTTokenVerifier

        return JWTTokenVerifier(
            secret=config.jwt_secret or "",
            algorithm=config.jwt_algorithm,
            audience=config.jwt_audience,
            issuer=config.jwt_issuer,
        )

    return AnonymousTokenVerifier()
