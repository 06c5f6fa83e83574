"""Session anchor persistence — saves the session start so it survives restarts."""

from __future__ import annotations

import asyncio
import logging

from secure_otp.config import settings
from secure_otp.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class SessionAnchorStore:
    """Save / load / delete the session start timestamp.

    Writes run one at a time in the order they were requested, so a clear
    issued after a save always lands last even when the backend yields
    mid-write.  Storage failures are logged and swallowed: losing the anchor
    only means a restarted process cannot resume the timer.
    """

    def __init__(self, storage: KeyValueStore, key: str | None = None) -> None:
        self._storage = storage
        self._key = key or settings.session_start_key
        self._lock = asyncio.Lock()

    async def save(self, timestamp: int) -> None:
        async with self._lock:
            try:
                await self._storage.set(self._key, str(timestamp))
            except Exception:
                logger.warning("Failed to save session start", exc_info=True)

    async def load(self) -> int | None:
        """Return the persisted anchor, or ``None`` if there is no usable one."""
        async with self._lock:
            try:
                raw = await self._storage.get(self._key)
            except Exception:
                logger.warning("Failed to load session start", exc_info=True)
                return None
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring malformed session start %r", raw)
            return None

    async def clear(self) -> None:
        async with self._lock:
            try:
                await self._storage.remove(self._key)
            except Exception:
                logger.warning("Failed to clear session start", exc_info=True)
