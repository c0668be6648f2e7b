"""Registration verification codes.

At most one outstanding code per phone number: issuing a new one overwrites
the old. A code is deleted on its first successful match, on expiry, and once
its wrong-attempt allowance is spent.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from afritokeni_ussd.domain.enums import CodeCheckResult
from afritokeni_ussd.domain.phone import digits_only
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)

CODE_LENGTH = 6


def generate_code() -> str:
    """Six digits, never starting with zero."""
    return str(100_000 + secrets.randbelow(900_000))


class VerificationCodeStore(Protocol):
    async def issue(self, phone_number: str) -> str: ...

    async def check(self, phone_number: str, candidate: str) -> CodeCheckResult: ...

    async def purge_expired(self) -> int: ...


@dataclass
class IssuedCode:
    code: str
    issued_at: datetime
    attempts: int = 0


def _evaluate(
    issued: IssuedCode,
    candidate: str,
    now: datetime,
    ttl: timedelta,
    max_attempts: int,
) -> tuple[CodeCheckResult, bool]:
    """Return the outcome and whether the code must be discarded."""
    if now - issued.issued_at > ttl:
        return CodeCheckResult.EXPIRED, True
    if hmac.compare_digest(issued.code.encode(), candidate.encode()):
        return CodeCheckResult.ACCEPTED, True
    issued.attempts += 1
    if issued.attempts >= max_attempts:
        return CodeCheckResult.EXHAUSTED, True
    return CodeCheckResult.MISMATCH, False


class InMemoryCodeStore:
    """Process-local code store."""

    def __init__(
        self,
        ttl_seconds: int = 600,
        max_attempts: int = 3,
        clock: Clock = utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._clock = clock
        self._codes: dict[str, IssuedCode] = {}

    async def issue(self, phone_number: str) -> str:
        code = generate_code()
        self._codes[digits_only(phone_number)] = IssuedCode(code=code, issued_at=self._clock())
        return code

    async def check(self, phone_number: str, candidate: str) -> CodeCheckResult:
        key = digits_only(phone_number)
        issued = self._codes.get(key)
        if issued is None:
            return CodeCheckResult.MISSING
        result, discard = _evaluate(
            issued, candidate, self._clock(), self._ttl, self._max_attempts
        )
        if discard:
            del self._codes[key]
        return result

    async def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, c in self._codes.items() if now - c.issued_at > self._ttl]
        for key in stale:
            del self._codes[key]
        return len(stale)


class RedisCodeStore:
    """Code store backed by redis hashes that expire with the code."""

    KEY_PREFIX = "ussd:code:"

    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 600,
        max_attempts: int = 3,
        clock: Clock = utcnow,
    ) -> None:
        self._redis = client
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._clock = clock

    def _key(self, phone_number: str) -> str:
        return f"{self.KEY_PREFIX}{digits_only(phone_number)}"

    async def issue(self, phone_number: str) -> str:
        code = generate_code()
        key = self._key(phone_number)
        await self._redis.delete(key)
        await self._redis.hset(
            key,
            mapping={"code": code, "issued_at": self._clock().isoformat(), "attempts": 0},
        )
        await self._redis.expire(key, int(self._ttl.total_seconds()))
        return code

    async def check(self, phone_number: str, candidate: str) -> CodeCheckResult:
        key = self._key(phone_number)
        async with self._redis.lock(f"{key}:lock", timeout=5, blocking_timeout=5):
            raw = await self._redis.hgetall(key)
            if not raw:
                return CodeCheckResult.MISSING
            issued = IssuedCode(
                code=raw["code"],
                issued_at=datetime.fromisoformat(raw["issued_at"]),
                attempts=int(raw.get("attempts", 0)),
            )
            result, discard = _evaluate(
                issued, candidate, self._clock(), self._ttl, self._max_attempts
            )
            if discard:
                await self._redis.delete(key)
            else:
                await self._redis.hset(key, "attempts", issued.attempts)
            return result

    async def purge_expired(self) -> int:
        # Redis evicts on TTL.
        return 0
