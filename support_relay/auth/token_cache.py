"""
Access Token Cache

Process-wide cache for short-lived helpdesk access tokens, injected into
providers rather than held as hidden module state so tests can substitute
the clock.

Design Considerations:
- Entries are replaced as whole (token, expires_at) tuples under a lock
- Expired entries are never returned
- Refreshes are single-flighted per key to avoid token-exchange storms
"""

import asyncio
import logging
import threading
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Refresh callback returns (token, ttl_seconds)
TokenRefresher = Callable[[], Awaitable[Tuple[str, float]]]


class TokenCache:
    """
    In-memory token cache with get/set-with-expiry semantics.

    Args:
        clock: Monotonic time source in seconds, overridable for tests
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._refresh_locks: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> Optional[str]:
        """Return the cached token for key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            token, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return token

    def set(self, key: str, token: str, ttl: float) -> None:
        """Store token for ttl seconds. A non-positive ttl stores nothing."""
        with self._lock:
            if ttl <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = (token, self._clock() + ttl)

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _refresh_lock(self, key: str) -> asyncio.Lock:
        with self._lock:
            lock = self._refresh_locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._refresh_locks[key] = lock
            return lock

    async def get_or_refresh(self, key: str, refresh: TokenRefresher) -> str:
        """
        Return a valid token, calling refresh at most once per concurrent miss.

        Args:
            key: Cache key identifying the credential set
            refresh: Coroutine factory returning (token, ttl_seconds)

        Returns:
            A token that has not reached its expiry
        """
        token = self.get(key)
        if token:
            return token

        async with self._refresh_lock(key):
            # Another coroutine may have refreshed while we waited
            token = self.get(key)
            if token:
                return token

            token, ttl = await refresh()
            self.set(key, token, ttl)
            logger.debug(f"Refreshed access token for {key} (ttl={ttl:.0f}s)")
            return token
