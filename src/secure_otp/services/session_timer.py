"""Session timer — live elapsed time since the session began.

The timer keeps a single anchor (epoch ms) and derives the displayed value
as ``now - anchor`` on every tick, so missed ticks while the process was
suspended never skew it.  The anchor is persisted through
:class:`SessionAnchorStore` so a restarted process can resume the session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from secure_otp.clock import Clock, SystemClock
from secure_otp.config import settings
from secure_otp.services.lifecycle import AppLifecycle, AppState
from secure_otp.services.session_anchor import SessionAnchorStore

logger = logging.getLogger(__name__)

ZERO_ELAPSED = "00:00"


def format_elapsed(ms: int) -> str:
    """Format a duration as ``MM:SS``; minutes are not wrapped at 60."""
    total_seconds = max(0, ms) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


class SessionTimer:
    """Elapsed-time tracker for the authenticated session.

    ``start`` must be called from inside a running event loop: it schedules
    the periodic tick task and the anchor write on that loop.
    """

    def __init__(
        self,
        anchor_store: SessionAnchorStore | None = None,
        clock: Clock | None = None,
        lifecycle: AppLifecycle | None = None,
        *,
        tick_interval: float | None = None,
    ) -> None:
        self._anchor_store = anchor_store
        self._clock = clock or SystemClock()
        self._tick_interval = (
            tick_interval if tick_interval is not None else settings.session_tick_seconds
        )
        self._anchor: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._elapsed = ZERO_ELAPSED
        self._listeners: list[Callable[[str], None]] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._subscription = (
            lifecycle.subscribe(self._on_app_state_change) if lifecycle else None
        )

    # ── State ────────────────────────────────────────────

    @property
    def elapsed(self) -> str:
        """Last emitted ``MM:SS`` reading."""
        return self._elapsed

    @property
    def session_start(self) -> int | None:
        return self._anchor

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Receive every emitted reading."""
        self._listeners.append(listener)

    # ── Start / Stop ─────────────────────────────────────

    def start(self, anchor: int | None = None) -> None:
        """Begin timing from *anchor* (default: now).  No-op if running."""
        if self._task is not None:
            logger.debug("Session timer already running; start ignored")
            return

        self._anchor = anchor if anchor is not None else self._clock.now_ms()
        logger.info("Session timer started at %d", self._anchor)

        if self._anchor_store is not None:
            self._spawn(self._anchor_store.save(self._anchor))

        self.tick()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Halt ticking, forget the anchor and reset the display."""
        if self._task is None and self._anchor is None:
            return

        # Cancel and clear together so no scheduled tick sees the old anchor
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._anchor = None
        self._emit(ZERO_ELAPSED)
        logger.info("Session timer stopped")

        if self._anchor_store is not None:
            self._spawn(self._anchor_store.clear())

    def recover(self, persisted_anchor: int | None) -> bool:
        """Resume a session from a previously persisted anchor.

        Returns ``True`` if the timer was started.
        """
        if persisted_anchor is None:
            return False
        logger.info("Recovering session from anchor %d", persisted_anchor)
        self.start(persisted_anchor)
        return True

    async def restore(self) -> bool:
        """Load the persisted anchor and :meth:`recover` from it."""
        if self._anchor_store is None:
            return False
        return self.recover(await self._anchor_store.load())

    def tick(self) -> None:
        """Recompute the elapsed time from the anchor and emit it."""
        if self._anchor is None:
            return
        self._emit(format_elapsed(self._clock.now_ms() - self._anchor))

    # ── Teardown ─────────────────────────────────────────

    def close(self) -> None:
        """Stop ticking and unsubscribe, leaving the persisted anchor intact."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None

    async def drain(self) -> None:
        """Wait for outstanding anchor writes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    # ── Private helpers ──────────────────────────────────

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self.tick()

    def _emit(self, value: str) -> None:
        self._elapsed = value
        for listener in list(self._listeners):
            listener(value)

    def _on_app_state_change(self, state: AppState) -> None:
        if state is AppState.ACTIVE and self._anchor is not None:
            # Back in the foreground: refresh now instead of on the next tick
            self.tick()

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
