"""SecureOTP — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Persistence ───────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./secure_otp.db"
    event_log_key: str = "@SecureOTP:analytics"
    session_start_key: str = "@SecureOTP:session_start"

    # ── OTP policy ────────────────────────────────────────
    otp_length: int = 6
    otp_expiry_ms: int = 60_000
    otp_max_attempts: int = 3

    # ── Timers ────────────────────────────────────────────
    countdown_interval_seconds: float = 1.0
    session_tick_seconds: float = 1.0

    # ── App ───────────────────────────────────────────────
    app_name: str = "SecureOTP"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
