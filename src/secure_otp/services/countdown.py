"""OTP countdown — polls the store for the seconds left on an identity's OTP."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from secure_otp.config import settings
from secure_otp.services.otp_store import OtpStore

logger = logging.getLogger(__name__)


class OtpCountdown:
    """Periodically re-reads :meth:`OtpStore.remaining_seconds`.

    Holds no timer state of its own: every reading is recomputed from the
    record's creation time, so a suspended loop catches up on the next poll.
    Polling stops once the reading reaches zero.
    """

    def __init__(
        self,
        store: OtpStore,
        identity: str,
        *,
        interval: float | None = None,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self._interval = (
            interval if interval is not None else settings.countdown_interval_seconds
        )
        self._listeners: list[Callable[[int], None]] = [on_tick] if on_tick else []
        self._task: asyncio.Task[None] | None = None
        self._remaining = 0

    @property
    def remaining(self) -> int:
        """The most recent reading."""
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def add_listener(self, listener: Callable[[int], None]) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        """(Re)start polling with an immediate reading.  Call after a resend."""
        self.stop()
        if self.refresh() > 0:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def refresh(self) -> int:
        """Take one reading now and publish it."""
        self._remaining = self._store.remaining_seconds(self._identity)
        for listener in list(self._listeners):
            listener(self._remaining)
        return self._remaining

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self.refresh() <= 0:
                logger.debug("Countdown for %s reached zero", self._identity)
                break
        self._task = None
