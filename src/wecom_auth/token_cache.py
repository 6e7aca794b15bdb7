"""Per-adapter cache for the WeCom application token."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import weakref
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Returns (token, expires_in_seconds).
TokenFetcher = Callable[[], Awaitable[tuple[str, float]]]


@dataclass(frozen=True)
class AppToken:
    value: str
    expires_at: float


class AppTokenCache:
    """Caches the application token and refreshes it shortly before expiry.

    A token is served from cache until ``margin`` seconds before the expiry the
    provider declared. One adapter may be shared by tasks of one event loop and
    by threads each running their own loop; either way a stale token triggers
    a single refresh.

    Tasks of the same loop queue on a per-loop ``asyncio.Lock``, so at most one
    task per loop ever waits on the cross-thread refresh lock.
    """

    def __init__(
        self,
        fetcher: TokenFetcher,
        *,
        margin: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self.margin = margin
        self._clock = clock
        self._token: AppToken | None = None
        # Guards _token and _loop_locks; never held across an await.
        self._state_lock = threading.Lock()
        # Held for the whole refresh, across threads.
        self._refresh_lock = threading.Lock()
        self._loop_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = (
            weakref.WeakKeyDictionary()
        )

    def _fresh_value(self) -> str | None:
        with self._state_lock:
            token = self._token
        if token is not None and self._clock() < token.expires_at - self.margin:
            return token.value
        return None

    def _loop_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._state_lock:
            lock = self._loop_locks.get(loop)
            if lock is None:
                lock = self._loop_locks[loop] = asyncio.Lock()
            return lock

    async def get_token(self) -> str:
        value = self._fresh_value()
        if value is not None:
            return value

        async with self._loop_lock():
            value = self._fresh_value()
            if value is not None:
                return value

            with self._refresh_lock:
                # Another thread may have refreshed while we waited.
                value = self._fresh_value()
                if value is not None:
                    return value

                value, expires_in = await self._fetcher()
                with self._state_lock:
                    self._token = AppToken(value=value, expires_at=self._clock() + expires_in)
            logger.debug(
                "Application token refreshed",
                extra={"expires_in": expires_in},
            )
            return value

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        with self._state_lock:
            self._token = None

    @property
    def expires_at(self) -> float | None:
        with self._state_lock:
            return self._token.expires_at if self._token is not None else None
