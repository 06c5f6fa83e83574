"""In-memory OTP store with expiry and an attempt budget."""

from __future__ import annotations

import logging
import math
import random
import string
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from secure_otp.clock import Clock, SystemClock
from secure_otp.config import settings

logger = logging.getLogger(__name__)


class OtpOutcome(StrEnum):
    """Every possible result of :meth:`OtpStore.validate`."""

    SUCCESS = "success"
    NO_OTP = "no_otp"
    EXPIRED = "expired"
    MAX_ATTEMPTS = "max_attempts"
    INCORRECT = "incorrect"


@dataclass
class OtpRecord:
    """The stored state of the OTP issued to one identity."""

    code: str
    created_at: int
    attempts: int = 0


@dataclass(frozen=True)
class OtpValidationResult:
    """Value object returned by :meth:`OtpStore.validate`."""

    outcome: OtpOutcome

    @property
    def success(self) -> bool:
        return self.outcome is OtpOutcome.SUCCESS

    @property
    def reason(self) -> OtpOutcome | None:
        """Failure reason, or ``None`` when validation succeeded."""
        return None if self.success else self.outcome


def random_digits(length: int) -> str:
    """Non-cryptographic numeric code, zero-padded to *length*."""
    return "".join(random.choices(string.digits, k=length))


class OtpStore:
    """Keeps at most one OTP per identity (e.g. an email address).

    Each entry maps ``identity → OtpRecord``.  The mapping is only reachable
    through the public methods; stale records are purged lazily when a
    validation finds them expired.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        code_length: int | None = None,
        expiry_ms: int | None = None,
        max_attempts: int | None = None,
        code_generator: Callable[[int], str] | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._code_length = code_length if code_length is not None else settings.otp_length
        self._expiry_ms = expiry_ms if expiry_ms is not None else settings.otp_expiry_ms
        self._max_attempts = (
            max_attempts if max_attempts is not None else settings.otp_max_attempts
        )
        self._code_generator = code_generator or random_digits
        self._store: dict[str, OtpRecord] = {}

    @property
    def expiry_ms(self) -> int:
        return self._expiry_ms

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def generate(self, identity: str) -> str:
        """Generate and store a fresh OTP for *identity*.

        Any previous record for the identity is overwritten, which is how a
        resend invalidates the old code.
        """
        code = self._code_generator(self._code_length)
        replaced = identity in self._store
        self._store[identity] = OtpRecord(code=code, created_at=self._clock.now_ms())
        logger.info(
            "OTP %s for %s", "regenerated" if replaced else "generated", identity
        )
        return code

    def validate(self, identity: str, candidate: str | None) -> OtpValidationResult:
        """Check *candidate* against the stored OTP for *identity*.

        Checks run in a fixed order and the first that applies wins:
        missing record, expiry, exhausted attempts, mismatch, match.
        """
        record = self._store.get(identity)
        if record is None:
            return OtpValidationResult(OtpOutcome.NO_OTP)

        if self._clock.now_ms() - record.created_at > self._expiry_ms:
            # Expired: remove it
            self._store.pop(identity, None)
            logger.info("OTP expired for %s", identity)
            return OtpValidationResult(OtpOutcome.EXPIRED)

        if record.attempts >= self._max_attempts:
            return OtpValidationResult(OtpOutcome.MAX_ATTEMPTS)

        if (candidate or "").strip() != record.code:
            record.attempts += 1
            logger.info(
                "Incorrect OTP for %s (%d/%d)",
                identity,
                record.attempts,
                self._max_attempts,
            )
            # The attempt that exhausts the budget reports the lock
            if record.attempts >= self._max_attempts:
                return OtpValidationResult(OtpOutcome.MAX_ATTEMPTS)
            return OtpValidationResult(OtpOutcome.INCORRECT)

        # Consume the OTP on successful verification
        self._store.pop(identity, None)
        logger.info("OTP verified for %s", identity)
        return OtpValidationResult(OtpOutcome.SUCCESS)

    def remaining_seconds(self, identity: str) -> int:
        """Whole seconds (rounded up) until the OTP for *identity* expires."""
        record = self._store.get(identity)
        if record is None:
            return 0
        remaining = self._expiry_ms - (self._clock.now_ms() - record.created_at)
        return math.ceil(remaining / 1000) if remaining > 0 else 0

    def remaining_attempts(self, identity: str) -> int:
        record = self._store.get(identity)
        if record is None:
            return 0
        return max(0, self._max_attempts - record.attempts)

    def has_otp(self, identity: str) -> bool:
        return identity in self._store

    def clear(self, identity: str) -> None:
        """Drop the OTP for *identity* (e.g. on logout)."""
        if self._store.pop(identity, None) is not None:
            logger.info("OTP cleared for %s", identity)
