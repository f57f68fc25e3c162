"""
KeepWise Backend — Shared-Secret JWT Verifier
==============================================

What:  Verifies HS256 (or other configured algorithm) tokens signed with
       JWT_SECRET, for self-hosted deployments without Firebase.
How:   PyJWT decodes and validates signature and `exp`; `aud`/`iss` are
       checked only when JWT_AUDIENCE/JWT_ISSUER are set.

Claims:
    sub (or uid)  → Identity.uid (required)
    email         → Identity.email (optional)
"""

import logging
from typing import Optional

import jwt

from keepwise.exceptions import ForbiddenError
from keepwise.services.auth_base import Identity, TokenVerifier

logger = logging.getLogger(__name__)


class JWTTokenVerifier(TokenVerifier):
    provider = "jwt"

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._issuer = issuer

    async def _verify_token(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except jwt.PyJWTError as e:
            logger.warning("JWT rejected: %s", type(e).__name__)
            raise ForbiddenError(context={"reason": type(e).__name__})

        uid = payload.get("sub") or payload.get("uid")
        if not uid:
            raise ForbiddenError(context={"reason": "missing sub claim"})
        return Identity(uid=str(uid), email=payload.get("email"), claims=payload)
