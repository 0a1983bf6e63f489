"""Shared mutable state read and written by the HTTP middlewares.

Both records are owned by one ApiClient and live as long as it does. Each
is guarded by a single asyncio.Lock held only for the copy or replace of
its fields; no I/O or sleep ever happens while a lock is held.
"""

import asyncio
import logging
from typing import Optional, Tuple

from rbxconfigs.domain.models.common import CsrfToken, SessionCredential

logger = logging.getLogger(__name__)


class SharedRateState:
    """Last-known rate budget as reported by the server."""

    def __init__(self) -> None:
        self.remaining: Optional[int] = None
        self.reset_after_seconds: Optional[int] = None
        # Bumped by every ingest, so a waiter can tell whether its window is still current
        self._generation = 0
        self._lock = asyncio.Lock()

    async def snapshot(self) -> Tuple[Optional[int], Optional[int]]:
        """Returns ``(remaining, reset_after_seconds)``."""
        async with self._lock:
            return self.remaining, self.reset_after_seconds

    async def window(self) -> Tuple[Optional[int], Optional[int], int]:
        """Returns ``(remaining, reset_after_seconds, generation)``."""
        async with self._lock:
            return self.remaining, self.reset_after_seconds, self._generation

    async def ingest(self, remaining: Optional[int], reset_after_seconds: Optional[int]) -> None:
        """Replaces each field whose new value is known.

        A None argument leaves the cached value untouched.
        """
        async with self._lock:
            if remaining is not None:
                self.remaining = remaining
            if reset_after_seconds is not None:
                self.reset_after_seconds = reset_after_seconds
            if remaining is not None or reset_after_seconds is not None:
                self._generation += 1

    async def consume_window(self, generation: int) -> bool:
        """Forgets the reset window a waiter has just slept through.

        Only clears the window if nothing was ingested since ``generation``
        was read, so a window reported meanwhile is kept even when it
        repeats the same values.

        Returns:
            True if the window was cleared.
        """
        async with self._lock:
            if self._generation != generation:
                return False
            self.reset_after_seconds = None
            return True


class SharedAuthState:
    """Session credential plus the most recently observed CSRF token."""

    def __init__(self, session_credential: Optional[SessionCredential] = None) -> None:
        self._session_credential = session_credential
        self._csrf_token: Optional[CsrfToken] = None
        self._write_conflict_observed = False
        self._lock = asyncio.Lock()

    @property
    def session_credential(self) -> Optional[SessionCredential]:
        # Set once at construction; never refreshed.
        return self._session_credential

    async def get_csrf_token(self) -> Optional[CsrfToken]:
        async with self._lock:
            return self._csrf_token

    async def set_csrf_token(self, token: CsrfToken) -> None:
        async with self._lock:
            self._csrf_token = token

    async def mark_write_conflict(self) -> bool:
        """Sets the write-conflict flag.

        Returns:
            True if this call raised the flag, False if it was already set.
        """
        async with self._lock:
            if self._write_conflict_observed:
                return False
            self._write_conflict_observed = True
            return True

    async def clear_write_conflict(self) -> None:
        async with self._lock:
            self._write_conflict_observed = False

    async def write_conflict_observed(self) -> bool:
        async with self._lock:
            return self._write_conflict_observed
