"""Authentication agent — handles the email → OTP → session flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from secure_otp.config import settings
from secure_otp.services.event_log import EventKind, EventLog
from secure_otp.services.otp_store import OtpOutcome, OtpStore
from secure_otp.services.session_timer import SessionTimer

logger = logging.getLogger(__name__)

# ── Session-state keys used by this agent ────────────────
AUTH_STATUS_KEY = "auth_status"
AUTH_EMAIL_KEY = "auth_email"

# Possible auth states
STATUS_AWAITING_EMAIL = "awaiting_email"
STATUS_AWAITING_OTP = "awaiting_otp"
STATUS_AUTHENTICATED = "authenticated"

# Commands
RESEND_COMMAND = "resend"
LOGOUT_COMMAND = "logout"

FAILURE_MESSAGES: dict[OtpOutcome, str] = {
    OtpOutcome.EXPIRED: "⏰ OTP has expired. Please type *resend* for a new one.",
    OtpOutcome.INCORRECT: "❌ Incorrect OTP. Please try again.",
    OtpOutcome.MAX_ATTEMPTS: "🚫 Maximum attempts exceeded. Please type *resend*.",
    OtpOutcome.NO_OTP: "⚠️ No OTP found. Please type *resend* to request one.",
}


@dataclass
class AgentResponse:
    """Reply produced for one user message."""

    reply_text: str
    end_conversation: bool = False


class AuthAgent:
    """Verifies an email identity with a one-time passcode.

    Flow
    ----
    1. The user enters an email; a fresh OTP is generated for it.
    2. The user enters the code (or *resend* to replace it).
    3. On success the session timer starts and the user is authenticated.
    4. *logout* stops the timer and clears any OTP left for the email.

    Delivery is out of scope: the code is written to the log instead.
    """

    def __init__(
        self,
        otp_store: OtpStore,
        event_log: EventLog,
        session_timer: SessionTimer,
    ) -> None:
        self._otp_store = otp_store
        self._event_log = event_log
        self._timer = session_timer

    async def handle(self, message: str, session_state: dict) -> AgentResponse:
        """Route to the appropriate auth sub-step based on session state.

        *session_state* is a mutable dict kept by the caller across turns;
        the agent reads and writes its ``auth_*`` keys.
        """
        status = session_state.get(AUTH_STATUS_KEY, STATUS_AWAITING_EMAIL)
        text = message.strip()

        if status == STATUS_AUTHENTICATED:
            return await self._handle_session(text, session_state)

        if status == STATUS_AWAITING_OTP:
            if text.lower() == RESEND_COMMAND:
                return await self._resend(session_state)
            return await self._handle_otp(text, session_state)

        return await self._handle_email(text, session_state)

    # ── Private helpers ──────────────────────────────────

    async def _handle_email(self, email: str, session_state: dict) -> AgentResponse:
        """Accept the identity and issue the first OTP."""
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            return AgentResponse(reply_text="📧 Please enter a valid email address.")

        session_state[AUTH_EMAIL_KEY] = email
        session_state[AUTH_STATUS_KEY] = STATUS_AWAITING_OTP
        self._issue(email)
        await self._event_log.log_event(
            EventKind.OTP_GENERATED, email, {"resend": False}
        )
        return AgentResponse(
            reply_text=(
                f"A verification code has been sent to *{self._mask_email(email)}*.\n"
                f"Please enter the *{settings.otp_length}-digit OTP* within "
                f"{self._otp_store.remaining_seconds(email)} seconds."
            )
        )

    async def _resend(self, session_state: dict) -> AgentResponse:
        """Replace the current OTP; the previous code stops working."""
        email = session_state.get(AUTH_EMAIL_KEY, "")
        self._issue(email)
        await self._event_log.log_event(EventKind.OTP_GENERATED, email, {"resend": True})
        return AgentResponse(
            reply_text=(
                "🔄 New OTP sent! Any previous code is no longer valid.\n"
                f"You have {self._otp_store.remaining_attempts(email)} attempts."
            )
        )

    async def _handle_otp(self, otp: str, session_state: dict) -> AgentResponse:
        """Verify the OTP provided by the user."""
        if not otp:
            return AgentResponse(reply_text="Please enter the OTP.")

        email = session_state.get(AUTH_EMAIL_KEY, "")
        result = self._otp_store.validate(email, otp)

        if result.success:
            session_state[AUTH_STATUS_KEY] = STATUS_AUTHENTICATED
            self._timer.start()
            await self._event_log.log_event(EventKind.OTP_VALIDATION_SUCCESS, email)
            logger.info("%s authenticated via OTP", email)
            return AgentResponse(
                reply_text=(
                    "✅ OTP verified successfully!\n\n"
                    "Your session has started. Type *logout* to end it."
                )
            )

        await self._event_log.log_event(
            EventKind.OTP_VALIDATION_FAILURE, email, {"reason": str(result.reason)}
        )
        reply = FAILURE_MESSAGES[result.reason]
        if result.reason is OtpOutcome.INCORRECT:
            reply += (
                f"\n{self._otp_store.remaining_attempts(email)} attempts left, "
                f"code expires in {self._otp_store.remaining_seconds(email)}s."
            )
        return AgentResponse(reply_text=reply)

    async def _handle_session(self, text: str, session_state: dict) -> AgentResponse:
        email = session_state.get(AUTH_EMAIL_KEY, "")
        if text.lower() != LOGOUT_COMMAND:
            return AgentResponse(
                reply_text=f"⏱️ Session active for *{self._timer.elapsed}*."
            )

        self._timer.stop()
        self._otp_store.clear(email)
        await self._event_log.log_event(EventKind.LOGOUT, email)
        session_state.clear()
        logger.info("%s logged out", email)
        return AgentResponse(
            reply_text="👋 You have been logged out.", end_conversation=True
        )

    def _issue(self, email: str) -> None:
        code = self._otp_store.generate(email)
        # In a real system this would send an email; here we log it for testing
        logger.info("📧 OTP for %s: %s", email, code)

    @staticmethod
    def _mask_email(email: str) -> str:
        """Mask an email for privacy: ``j***n@example.com``."""
        local, _, domain = email.rpartition("@")
        if len(local) <= 2:
            masked_local = local[0] + "***"
        else:
            masked_local = local[0] + "***" + local[-1]
        return f"{masked_local}@{domain}"
