"""Event log — append-only diagnostics record persisted as one JSON array.

Each event is appended to a list kept in memory and the whole list is
written back under ``settings.event_log_key`` after every append.  The log
is loaded lazily from storage on first use.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from secure_otp.clock import Clock, SystemClock
from secure_otp.config import settings
from secure_otp.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class EventKind(StrEnum):
    OTP_GENERATED = "otp_generated"
    OTP_VALIDATION_SUCCESS = "otp_validation_success"
    OTP_VALIDATION_FAILURE = "otp_validation_failure"
    LOGOUT = "logout"


class EventRecord(BaseModel):
    """Payload stored per event."""

    event: EventKind
    email: str
    timestamp: int
    meta: dict[str, Any] | None = None


_records_adapter = TypeAdapter(list[EventRecord])


class EventLog:
    """Appends :class:`EventRecord` entries to a key-value store."""

    def __init__(
        self,
        storage: KeyValueStore,
        clock: Clock | None = None,
        key: str | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock or SystemClock()
        self._key = key or settings.event_log_key
        self._initialized = False
        self._logs: list[EventRecord] = []

    async def init(self) -> None:
        """Load previously persisted events.  Safe to call repeatedly."""
        if self._initialized:
            return
        try:
            raw = await self._storage.get(self._key)
            if raw:
                self._logs = _records_adapter.validate_json(raw)
        except ValidationError:
            # Corrupted log: start fresh
            logger.warning("Discarding unreadable event log", exc_info=True)
            self._logs = []
        except Exception:
            logger.warning("Failed to load persisted event log", exc_info=True)
            self._logs = []
        self._initialized = True

    async def log_event(
        self,
        kind: EventKind,
        identity: str,
        meta: dict[str, Any] | None = None,
    ) -> EventRecord:
        """Record *kind* for *identity* and persist the log.

        A persistence failure is logged; the event stays in memory.
        """
        await self.init()
        record = EventRecord(
            event=kind, email=identity, timestamp=self._clock.now_ms(), meta=meta
        )
        self._logs.append(record)

        try:
            await self._storage.set(
                self._key,
                _records_adapter.dump_json(self._logs, exclude_none=True).decode(),
            )
        except Exception:
            logger.warning("Failed to persist event %s", kind, exc_info=True)

        logger.debug("Event %s for %s %s", kind, identity, meta or "")
        return record

    async def get_all_logs(self) -> list[EventRecord]:
        await self.init()
        return list(self._logs)
