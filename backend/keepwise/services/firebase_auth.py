"""
KeepWise Backend — Firebase ID Token Verifier
==============================================

What:  Verifies Firebase ID tokens issued to signed-in extension users.
How:   firebase_admin.auth.verify_id_token() checks signature, expiry,
       audience and issuer against Google's public keys. The SDK call is
       blocking (it may fetch certificates), so it runs in a worker thread.

Failure mapping:
    CertificateFetchError       → IdentityProviderError (500)
    any other rejection         → ForbiddenError (403)
"""

import asyncio
import logging
from typing import Any, Optional

from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin.auth import CertificateFetchError

from keepwise.exceptions import ForbiddenError, IdentityProviderError
from keepwise.services.auth_base import Identity, TokenVerifier

logger = logging.getLogger(__name__)


class FirebaseTokenVerifier(TokenVerifier):
    """
    Args:
        app:           Initialized firebase-admin App (None uses the default app)
        check_revoked: Also reject tokens revoked since issue (costs one RPC)
    """

    provider = "firebase"

    def __init__(self, app: Optional[Any] = None, check_revoked: bool = False):
        self._app = app
        self._check_revoked = check_revoked

    async def _verify_token(self, token: str) -> Identity:
        try:
            decoded = await asyncio.to_thread(
                auth.verify_id_token,
                token,
                app=self._app,
                check_revoked=self._check_revoked,
            )
        except CertificateFetchError as e:
            logger.error("Could not fetch Firebase signing certificates: %s", str(e))
            raise IdentityProviderError(context={"reason": type(e).__name__})
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            # Token contents are never logged
            logger.warning("Firebase token rejected: %s", type(e).__name__)
            raise ForbiddenError(context={"reason": type(e).__name__})

        uid = decoded.get("uid") or decoded.get("sub")
        if not uid:
            raise ForbiddenError(context={"reason": "missing uid"})
        return Identity(uid=uid, email=decoded.get("email"), claims=decoded)
