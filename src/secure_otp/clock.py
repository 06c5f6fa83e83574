"""Clock sources — every timestamp in the system is epoch milliseconds."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Supplies the current wall-clock time."""

    @abstractmethod
    def now_ms(self) -> int:
        """Milliseconds since the Unix epoch."""


class SystemClock(Clock):
    """Reads the host wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """Clock that only moves when told to (simulations and tests)."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> None:
        self._now += ms

    def set(self, ms: int) -> None:
        self._now = ms
