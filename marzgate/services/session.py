from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

import aiohttp

from .errors import UpstreamAuthError
from .panel import read_body

logger = logging.getLogger(__name__)


class SessionProvider:
    """Fetches a fresh admin token from Marzban on every call."""

    def __init__(self, base_url: str, username: str, password: str, session: aiohttp.ClientSession) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.session = session

    async def acquire(self) -> str:
        form = {"username": self.username, "password": self.password}
        try:
            async with self.session.post(f"{self.base_url}/api/admin/token", data=form) as resp:
                body = await read_body(resp)
                if not 200 <= resp.status < 300:
                    logger.warning("panel auth failed: %s %s", resp.status, body)
                    raise UpstreamAuthError(f"auth failed: {resp.status}", status=resp.status, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            logger.warning("panel auth transport error: %r", err)
            raise UpstreamAuthError(str(err) or err.__class__.__name__) from err

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise UpstreamAuthError("auth token missing", status=resp.status, body=body)
        return token

    def invalidate(self, token: str) -> None:
        pass


class CachingSessionProvider:
    """Keeps one token for ``ttl_seconds`` and drops it when the panel rejects it."""

    def __init__(
        self, provider: SessionProvider, ttl_seconds: int, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.provider = provider
        self.ttl = ttl_seconds
        self.clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> str:
        async with self._lock:
            if self._token and self.clock() < self._expires_at:
                return self._token
            self._token = await self.provider.acquire()
            self._expires_at = self.clock() + self.ttl
            return self._token

    def invalidate(self, token: str) -> None:
        # A token refreshed since the rejected call stays cached.
        if token != self._token:
            return
        self._token = None
        self._expires_at = 0.0
