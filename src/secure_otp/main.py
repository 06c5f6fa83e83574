"""Application wiring — builds every collaborator and manages their lifetime."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from secure_otp.agents.auth_agent import AuthAgent
from secure_otp.clock import Clock, SystemClock
from secure_otp.config import settings
from secure_otp.database.engine import async_session_factory, init_db
from secure_otp.services.event_log import EventLog
from secure_otp.services.lifecycle import AppLifecycle
from secure_otp.services.otp_store import OtpStore
from secure_otp.services.session_anchor import SessionAnchorStore
from secure_otp.services.session_timer import SessionTimer
from secure_otp.storage.base import KeyValueStore
from secure_otp.storage.sql import SqlKeyValueStore

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Container for the collaborators shared by one process."""

    otp_store: OtpStore
    event_log: EventLog
    lifecycle: AppLifecycle
    session_timer: SessionTimer
    agent: AuthAgent


@asynccontextmanager
async def lifespan(
    storage: KeyValueStore | None = None,
    clock: Clock | None = None,
) -> AsyncIterator[App]:
    """Startup / shutdown lifecycle hook.

    Without an explicit *storage* the SQL database at
    ``settings.database_url`` is initialised and used.
    """
    logger.info("Starting %s …", settings.app_name)
    if storage is None:
        await init_db()
        logger.info("Database initialised")
        storage = SqlKeyValueStore(async_session_factory)

    clock = clock or SystemClock()
    otp_store = OtpStore(clock)
    event_log = EventLog(storage, clock)
    lifecycle = AppLifecycle()
    session_timer = SessionTimer(SessionAnchorStore(storage), clock, lifecycle)
    app = App(
        otp_store=otp_store,
        event_log=event_log,
        lifecycle=lifecycle,
        session_timer=session_timer,
        agent=AuthAgent(otp_store, event_log, session_timer),
    )

    if await session_timer.restore():
        logger.info("Resumed persisted session (%s elapsed)", session_timer.elapsed)

    try:
        yield app
    finally:
        session_timer.close()
        await session_timer.drain()
        logger.info("Shutting down %s …", settings.app_name)
