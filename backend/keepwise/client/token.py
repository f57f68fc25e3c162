"""
KeepWise Client — Bearer Token Cache
=====================================

What:  Holds the bearer token the capture client sends with API requests.
How:   The sign-in flow stores a token with set(); start_refresh() runs a
       background asyncio task that periodically asks the identity provider
       for a fresh one (Firebase ID tokens expire after an hour).

Refresh semantics:
    - Best effort: a failed refresh is logged and the previous token kept
    - A refresh returning None means the user signed out; the cache is cleared
    - Requests read whatever token is cached when they are sent; a 403 is
      not retried with a newer token
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from keepwise.config import settings

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[], Awaitable[Optional[str]]]


class TokenCache:
    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._task: Optional[asyncio.Task] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None

    async def refresh(self, fetch: TokenFetcher) -> Optional[str]:
        """Fetch a new token once. Returns the token cached afterwards."""
        try:
            token = await fetch()
        except Exception as e:
            logger.warning("Token refresh failed, keeping previous token: %s", str(e))
            return self._token
        self.set(token)
        return self._token

    def start_refresh(self, fetch: TokenFetcher, interval: Optional[float] = None) -> asyncio.Task:
        """
        Start the periodic refresh task on the running loop.

        Args:
            fetch:    Coroutine function returning a fresh token (or None)
            interval: Seconds between refreshes (default TOKEN_REFRESH_INTERVAL)
        """
        if self._task is not None and not self._task.done():
            return self._task

        period = settings.token_refresh_interval if interval is None else interval

        async def _loop() -> None:
            while True:
                await asyncio.sleep(period)
                await self.refresh(fetch)

        self._task = asyncio.create_task(_loop(), name="keepwise-token-refresh")
        logger.debug("Token refresh scheduled every %.0fs", period)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
