"""Tests for the OtpStore — generation, expiry, lockout and single use."""

import re

import pytest

from secure_otp.clock import ManualClock
from secure_otp.services.otp_store import OtpOutcome, OtpStore

EMAIL = "a@x.com"


@pytest.fixture
def clock():
    return ManualClock(start_ms=1_700_000_000_000)


@pytest.fixture
def store(clock):
    return OtpStore(clock, code_length=6, expiry_ms=60_000, max_attempts=3)


def _wrong(code: str) -> str:
    """A code of the same shape that is guaranteed not to match."""
    return "".join("1" if c == "0" else "0" for c in code)


# ── Generation ───────────────────────────────────────────

def test_generate_returns_six_digit_code(store):
    code = store.generate(EMAIL)
    assert re.fullmatch(r"\d{6}", code)


def test_generated_code_validates(store):
    code = store.generate(EMAIL)
    result = store.validate(EMAIL, code)
    assert result.success is True
    assert result.reason is None
    assert result.outcome is OtpOutcome.SUCCESS


def test_regenerate_invalidates_previous_code(clock):
    codes = iter(["111111", "222222"])
    store = OtpStore(clock, code_generator=lambda length: next(codes))

    first = store.generate(EMAIL)
    second = store.generate(EMAIL)

    assert store.validate(EMAIL, first).outcome is OtpOutcome.INCORRECT
    assert store.validate(EMAIL, second).success


def test_regenerate_resets_attempts(store):
    code = store.generate(EMAIL)
    store.validate(EMAIL, _wrong(code))
    store.validate(EMAIL, _wrong(code))
    assert store.remaining_attempts(EMAIL) == 1

    store.generate(EMAIL)
    assert store.remaining_attempts(EMAIL) == 3


def test_identities_are_isolated(store):
    code_a = store.generate("a@x.com")
    code_b = store.generate("b@x.com")
    assert store.validate("a@x.com", code_a).success
    assert store.has_otp("b@x.com")
    assert store.validate("b@x.com", code_b).success


# ── Validation ordering ──────────────────────────────────

def test_unknown_identity_is_no_otp(store):
    assert store.validate("nobody@x.com", "123456").outcome is OtpOutcome.NO_OTP


def test_success_is_single_use(store):
    code = store.generate(EMAIL)
    assert store.validate(EMAIL, code).success
    assert store.validate(EMAIL, code).outcome is OtpOutcome.NO_OTP


def test_candidate_whitespace_is_trimmed(store):
    code = store.generate(EMAIL)
    assert store.validate(EMAIL, f"  {code}\n").success


def test_three_wrong_codes_lock_the_otp(store):
    code = store.generate(EMAIL)
    wrong = _wrong(code)

    outcomes = [store.validate(EMAIL, wrong).outcome for _ in range(3)]
    assert outcomes == [
        OtpOutcome.INCORRECT,
        OtpOutcome.INCORRECT,
        OtpOutcome.MAX_ATTEMPTS,
    ]
    assert store.remaining_attempts(EMAIL) == 0

    # A fourth attempt stays locked, even with the right code
    assert store.validate(EMAIL, wrong).outcome is OtpOutcome.MAX_ATTEMPTS
    assert store.validate(EMAIL, code).outcome is OtpOutcome.MAX_ATTEMPTS
    assert store.remaining_attempts(EMAIL) == 0
    assert store.has_otp(EMAIL)


@pytest.mark.parametrize("candidate", ["", "   ", None])
def test_empty_candidate_counts_as_incorrect(store, candidate):
    store.generate(EMAIL)
    assert store.validate(EMAIL, candidate).outcome is OtpOutcome.INCORRECT
    assert store.remaining_attempts(EMAIL) == 2


def test_expired_code_is_rejected_and_removed(store, clock):
    code = store.generate(EMAIL)
    clock.advance(60_001)

    assert store.validate(EMAIL, code).outcome is OtpOutcome.EXPIRED
    assert not store.has_otp(EMAIL)
    assert store.validate(EMAIL, code).outcome is OtpOutcome.NO_OTP


def test_code_is_valid_at_exact_expiry_boundary(store, clock):
    code = store.generate(EMAIL)
    clock.advance(60_000)
    assert store.validate(EMAIL, code).success


def test_expiry_takes_precedence_over_lockout(store, clock):
    code = store.generate(EMAIL)
    for _ in range(3):
        store.validate(EMAIL, _wrong(code))
    clock.advance(61_000)

    assert store.validate(EMAIL, code).outcome is OtpOutcome.EXPIRED
    assert store.validate(EMAIL, code).outcome is OtpOutcome.NO_OTP


# ── Remaining seconds / attempts ─────────────────────────

def test_remaining_seconds_counts_down_and_clamps(store, clock):
    store.generate(EMAIL)
    assert store.remaining_seconds(EMAIL) == 60

    readings = []
    for _ in range(70):
        clock.advance(1_000)
        readings.append(store.remaining_seconds(EMAIL))

    assert readings == sorted(readings, reverse=True)
    assert readings[-1] == 0
    assert min(readings) == 0


def test_remaining_seconds_rounds_up(store, clock):
    store.generate(EMAIL)
    clock.advance(59_001)
    assert store.remaining_seconds(EMAIL) == 1
    clock.advance(999)
    assert store.remaining_seconds(EMAIL) == 0


def test_remaining_seconds_has_no_side_effects(store, clock):
    code = store.generate(EMAIL)
    clock.advance(30_000)
    for _ in range(5):
        store.remaining_seconds(EMAIL)
    assert store.remaining_attempts(EMAIL) == 3
    assert store.validate(EMAIL, code).success


def test_remaining_values_without_record(store):
    assert store.remaining_seconds(EMAIL) == 0
    assert store.remaining_attempts(EMAIL) == 0


# ── Clear ────────────────────────────────────────────────

def test_clear_removes_record(store):
    code = store.generate(EMAIL)
    store.clear(EMAIL)
    assert store.validate(EMAIL, code).outcome is OtpOutcome.NO_OTP


def test_clear_absent_identity_is_harmless(store):
    store.clear("ghost@x.com")
    assert not store.has_otp("ghost@x.com")


def test_defaults_come_from_settings():
    store = OtpStore(ManualClock())
    assert store.expiry_ms == 60_000
    assert store.max_attempts == 3
    assert len(store.generate(EMAIL)) == 6


def test_explicit_zero_limits_are_respected(clock):
    store = OtpStore(clock, expiry_ms=0, max_attempts=0)
    code = store.generate(EMAIL)

    assert store.expiry_ms == 0
    assert store.max_attempts == 0
    assert store.validate(EMAIL, code).outcome is OtpOutcome.MAX_ATTEMPTS

    clock.advance(1)
    assert store.validate(EMAIL, code).outcome is OtpOutcome.EXPIRED
