"""Process lifecycle signals — foreground / background notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

logger = logging.getLogger(__name__)

Listener = Callable[["AppState"], None]


class AppState(StrEnum):
    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class Subscription:
    """Handle returned by :meth:`AppLifecycle.subscribe`."""

    def __init__(self, lifecycle: AppLifecycle, listener: Listener) -> None:
        self._lifecycle = lifecycle
        self._listener = listener

    def remove(self) -> None:
        """Stop receiving notifications.  Calling twice is harmless."""
        self._lifecycle._unsubscribe(self._listener)


class AppLifecycle:
    """Broadcasts state changes of the hosting process to subscribers."""

    def __init__(self, state: AppState = AppState.ACTIVE) -> None:
        self._state = state
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def set_state(self, state: AppState) -> None:
        """Record a new state and notify subscribers if it changed."""
        if state == self._state:
            return
        logger.debug("App state %s → %s", self._state, state)
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Lifecycle listener %r failed", listener)

    def _unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
