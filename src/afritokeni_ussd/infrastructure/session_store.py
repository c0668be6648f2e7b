"""Short-lived USSD session storage.

Two backends share one contract:
    - InMemorySessionStore: a dict plus per-session asyncio locks. Suits a
      single worker process and the test suite.
    - RedisSessionStore: JSON documents with a TTL plus a redis lock per
      session, for several workers behind one gateway.

Both treat a record idle for longer than the timeout as absent, even before
it is physically evicted. A missing key is never an error.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Protocol

from afritokeni_ussd.domain.phone import digits_only
from afritokeni_ussd.domain.session import UssdSession
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.utils.time import utcnow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from contextlib import AbstractAsyncContextManager

    import redis.asyncio as aioredis

    from afritokeni_ussd.utils.time import Clock

logger = get_logger(__name__)


class SessionStore(Protocol):
    """Contract every session backend fulfils."""

    async def get(self, session_id: str) -> UssdSession | None: ...

    async def get_or_create(self, session_id: str, phone_number: str) -> UssdSession: ...

    async def save(self, session: UssdSession) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def count(self) -> int: ...

    async def clear(self) -> int: ...

    async def sweep(self) -> int: ...

    def lock(self, session_id: str) -> AbstractAsyncContextManager[None]: ...


def _new_session(session_id: str, phone_number: str, now: Clock) -> UssdSession:
    ts = now()
    return UssdSession(
        session_id=session_id,
        phone_number=digits_only(phone_number),
        created_at=ts,
        last_activity=ts,
    )


class InMemorySessionStore:
    """Process-local session store."""

    def __init__(self, timeout_seconds: int = 180, clock: Clock = utcnow) -> None:
        self._timeout = timeout_seconds
        self._clock = clock
        self._sessions: dict[str, UssdSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, session_id: str) -> UssdSession | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock(), self._timeout):
            self._sessions.pop(session_id, None)
            logger.debug("session.expired", session_id=session_id)
            return None
        # Callers mutate a copy; nothing is visible to others until save().
        return session.model_copy(deep=True)

    async def get_or_create(self, session_id: str, phone_number: str) -> UssdSession:
        session = await self.get(session_id)
        if session is not None and session.phone_number == digits_only(phone_number):
            return session
        if session is not None:
            logger.warning("session.phone_mismatch", session_id=session_id)
        session = _new_session(session_id, phone_number, self._clock)
        self._sessions[session_id] = session.model_copy(deep=True)
        logger.info("session.created", session_id=session_id, phone=session.phone_number)
        return session

    async def save(self, session: UssdSession) -> None:
        session.touch(self._clock())
        self._sessions[session.session_id] = session.model_copy(deep=True)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def count(self) -> int:
        now = self._clock()
        return sum(1 for s in self._sessions.values() if not s.is_expired(now, self._timeout))

    async def clear(self) -> int:
        cleared = len(self._sessions)
        self._sessions.clear()
        self._locks = {k: v for k, v in self._locks.items() if v.locked()}
        return cleared

    async def sweep(self) -> int:
        """Physically evict expired sessions. Returns how many were removed."""
        now = self._clock()
        stale = [sid for sid, s in self._sessions.items() if s.is_expired(now, self._timeout)]
        for session_id in stale:
            await self.delete(session_id)
        # Idle locks of ended sessions go here, never on release.
        self._locks = {
            sid: lock
            for sid, lock in self._locks.items()
            if sid in self._sessions or lock.locked()
        }
        if stale:
            logger.info("session.swept", removed=len(stale))
        return len(stale)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Serialise turns for one session id."""
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            yield


class RedisSessionStore:
    """Session store backed by redis keys with a sliding TTL."""

    KEY_PREFIX = "ussd:session:"
    LOCK_PREFIX = "ussd:lock:"

    def __init__(
        self,
        client: aioredis.Redis,
        timeout_seconds: int = 180,
        lock_timeout_seconds: float = 10.0,
        clock: Clock = utcnow,
    ) -> None:
        self._redis = client
        self._timeout = timeout_seconds
        self._lock_timeout = lock_timeout_seconds
        self._clock = clock

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def get(self, session_id: str) -> UssdSession | None:
        raw = await self._redis.get(self._key(session_id))
        if raw is None:
            return None
        session = UssdSession.model_validate_json(raw)
        if session.is_expired(self._clock(), self._timeout):
            await self._redis.delete(self._key(session_id))
            return None
        return session

    async def get_or_create(self, session_id: str, phone_number: str) -> UssdSession:
        session = await self.get(session_id)
        if session is not None and session.phone_number == digits_only(phone_number):
            return session
        if session is not None:
            logger.warning("session.phone_mismatch", session_id=session_id)
        session = _new_session(session_id, phone_number, self._clock)
        await self._write(session)
        logger.info("session.created", session_id=session_id, phone=session.phone_number)
        return session

    async def save(self, session: UssdSession) -> None:
        session.touch(self._clock())
        await self._write(session)

    async def _write(self, session: UssdSession) -> None:
        await self._redis.set(
            self._key(session.session_id),
            session.model_dump_json(),
            ex=self._timeout,
        )

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    async def count(self) -> int:
        total = 0
        async for _ in self._redis.scan_iter(match=f"{self.KEY_PREFIX}*"):
            total += 1
        return total

    async def clear(self) -> int:
        keys = [key async for key in self._redis.scan_iter(match=f"{self.KEY_PREFIX}*")]
        if keys:
            await self._redis.delete(*keys)
        return len(keys)

    async def sweep(self) -> int:
        # Redis evicts on TTL.
        return 0

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        async with self._redis.lock(
            f"{self.LOCK_PREFIX}{session_id}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        ):
            yield
