"""Interactive terminal simulator — walk through the OTP and session flow."""

import asyncio

from secure_otp.agents.auth_agent import (
    AUTH_EMAIL_KEY,
    AUTH_STATUS_KEY,
    STATUS_AUTHENTICATED,
    STATUS_AWAITING_OTP,
)
from secure_otp.main import lifespan
from secure_otp.services.countdown import OtpCountdown
from secure_otp.services.lifecycle import AppState

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


async def prompt(text: str) -> str:
    # Read in a worker thread so the timers keep ticking on the loop
    return (await asyncio.to_thread(input, text)).strip()


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print("  🔐  SecureOTP — Simulator")
    print(f"{'=' * 52}{RESET}\n")

    print(f"{DIM}Tip: enter an email, then the code printed in the logs{RESET}")
    print(f"{DIM}     'resend' for a new code, 'logout' to end the session{RESET}")
    print(f"{DIM}     'status' shows timers, 'bg' / 'fg' simulate backgrounding{RESET}")
    print(f"{DIM}     'quit' exits{RESET}\n")

    async with lifespan() as app:
        state: dict = {}
        countdown: OtpCountdown | None = None
        if app.session_timer.is_running:
            state[AUTH_STATUS_KEY] = STATUS_AUTHENTICATED
            print(f"{YELLOW}Resumed session, {app.session_timer.elapsed} elapsed{RESET}\n")

        while True:
            try:
                user_input = await prompt(f"{BLUE}{BOLD}You:{RESET} ")
            except (KeyboardInterrupt, EOFError):
                print(f"\n{DIM}Goodbye!{RESET}")
                break

            if not user_input:
                continue

            command = user_input.lower()
            if command == "quit":
                print(f"{DIM}Goodbye!{RESET}")
                break
            if command == "bg":
                app.lifecycle.set_state(AppState.BACKGROUND)
                print(f"{DIM}(backgrounded){RESET}\n")
                continue
            if command == "fg":
                app.lifecycle.set_state(AppState.ACTIVE)
                print(f"{DIM}(foreground, session {app.session_timer.elapsed}){RESET}\n")
                continue

            if command == "status":
                if countdown is not None:
                    print(f"{DIM}OTP expires in {countdown.remaining}s{RESET}")
                print(f"{DIM}Session: {app.session_timer.elapsed}{RESET}\n")
                continue

            response = await app.agent.handle(user_input, state)
            print(f"{GREEN}{BOLD}Agent:{RESET} {response.reply_text}\n")

            awaiting_otp = state.get(AUTH_STATUS_KEY) == STATUS_AWAITING_OTP
            if awaiting_otp and (countdown is None or command == "resend"):
                countdown = countdown or OtpCountdown(app.otp_store, state[AUTH_EMAIL_KEY])
                countdown.start()
            elif not awaiting_otp and countdown is not None:
                countdown.stop()
                countdown = None


if __name__ == "__main__":
    asyncio.run(main())
