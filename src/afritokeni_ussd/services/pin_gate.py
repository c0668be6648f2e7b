"""PIN security gate.

Two counters apply to every check:
    - a per-flow counter kept in the session flow; the flow ends after
      ``max_attempts`` wrong PINs.
    - a persistent per-account counter; after ``lockout_threshold``
      consecutive wrong PINs across dial-ins the account is locked for
      ``lockout_minutes``. A correct PIN resets it.

Malformed input (not 4 digits) is a validation error and counts towards
neither.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import PinCheckResult
from afritokeni_ussd.domain.pin import is_well_formed, verify_pin
from afritokeni_ussd.infrastructure.database.repositories import AccountRepository
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.utils.time import ensure_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.infrastructure.database.orm_models import UserAccount
    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)


@dataclass(frozen=True)
class PinOutcome:
    result: PinCheckResult
    attempts: int
    remaining: int
    locked_minutes: int = 0


class PinGate:
    def __init__(
        self,
        session: AsyncSession,
        max_attempts: int = 3,
        lockout_threshold: int = 5,
        lockout_minutes: int = 30,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = AccountRepository(session)
        self._max_attempts = max_attempts
        self._lockout_threshold = lockout_threshold
        self._lockout = timedelta(minutes=lockout_minutes)
        self._clock = clock

    def locked_minutes(self, account: UserAccount) -> int:
        """Whole minutes left on a lockout, 0 when the account is not locked."""
        if account.pin_locked_until is None:
            return 0
        left = (ensure_utc(account.pin_locked_until) - self._clock()).total_seconds()
        return max(0, math.ceil(left / 60))

    async def check(self, account: UserAccount, candidate: str, attempts: int) -> PinOutcome:
        """Check ``candidate`` given ``attempts`` wrong PINs already in this flow."""
        minutes = self.locked_minutes(account)
        if minutes:
            logger.info("pin.rejected_locked", identity=account.phone_or_email)
            return PinOutcome(PinCheckResult.LOCKED, attempts, 0, minutes)

        if not is_well_formed(candidate):
            return PinOutcome(
                PinCheckResult.MALFORMED, attempts, self._max_attempts - attempts
            )

        if account.pin_hash and await asyncio.to_thread(
            verify_pin, candidate, account.pin_hash
        ):
            if account.pin_failed_attempts or account.pin_locked_until:
                account.pin_failed_attempts = 0
                account.pin_locked_until = None
                await self._repo.save(account)
            logger.info("pin.verified", identity=account.phone_or_email)
            return PinOutcome(PinCheckResult.VERIFIED, attempts, self._max_attempts - attempts)

        attempts += 1
        account.pin_failed_attempts += 1
        if account.pin_failed_attempts >= self._lockout_threshold:
            account.pin_failed_attempts = 0
            account.pin_locked_until = self._clock() + self._lockout
            await self._repo.save(account)
            logger.warning("pin.lockout", identity=account.phone_or_email)
            return PinOutcome(
                PinCheckResult.LOCKED, attempts, 0, self.locked_minutes(account)
            )
        await self._repo.save(account)

        remaining = self._max_attempts - attempts
        logger.info("pin.mismatch", identity=account.phone_or_email, remaining=remaining)
        if remaining <= 0:
            return PinOutcome(PinCheckResult.EXHAUSTED, attempts, 0)
        return PinOutcome(PinCheckResult.MISMATCH, attempts, remaining)
