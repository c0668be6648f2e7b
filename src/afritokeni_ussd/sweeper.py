"""Background sweeper.

A single asyncio task started by the FastAPI lifespan. Every interval it:
    1. Evicts expired USSD sessions (memory backend; redis expires keys itself).
    2. Purges expired verification codes.
    3. Expires overdue escrow agreements.

A failing pass is logged and the loop keeps running.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.services.escrow_service import EscrowService
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.infrastructure.code_store import VerificationCodeStore
    from afritokeni_ussd.infrastructure.session_store import SessionStore
    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)


@dataclass(frozen=True)
class SweepReport:
    sessions: int
    codes: int
    agreements: int


class Sweeper:
    def __init__(
        self,
        store: SessionStore,
        codes: VerificationCodeStore,
        db_scope: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        interval_seconds: float = 60,
        escrow_timeout_hours: int = 24,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._codes = codes
        self._db_scope = db_scope
        self._interval = interval_seconds
        self._escrow_timeout_hours = escrow_timeout_hours
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    async def run_once(self) -> SweepReport:
        sessions = await self._store.sweep()
        codes = await self._codes.purge_expired()
        async with self._db_scope() as db:
            escrow = EscrowService(db, self._escrow_timeout_hours, self._clock)
            expired = await escrow.expire_overdue()
        report = SweepReport(sessions=sessions, codes=codes, agreements=len(expired))
        if sessions or codes or expired:
            logger.info(
                "sweeper.pass_completed",
                sessions=report.sessions,
                codes=report.codes,
                agreements=report.agreements,
            )
        return report

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("sweeper.pass_failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="afritokeni-sweeper")
            logger.info("sweeper.started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("sweeper.stopped")
