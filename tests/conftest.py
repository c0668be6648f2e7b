"""Shared test fixtures for the AfriTokeni USSD test suite.

Provides:
    - A throwaway SQLite database per test (aiosqlite, tables created up front)
    - In-memory collaborators: simulated ledger, logging SMS sender, code store
    - A controllable clock
    - Factories for accounts and agents, and a dialer that drives the router
      the way the gateway does (accumulated '*'-joined text)
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from afritokeni_ussd.config import Settings
from afritokeni_ussd.infrastructure.code_store import InMemoryCodeStore
from afritokeni_ussd.infrastructure.database.orm_models import Base
from afritokeni_ussd.infrastructure.ledger import SimulatedLedger
from afritokeni_ussd.infrastructure.rates import StaticRateProvider
from afritokeni_ussd.infrastructure.session_store import InMemorySessionStore
from afritokeni_ussd.infrastructure.sms import LoggingSmsSender
from afritokeni_ussd.services.account_service import AccountService
from afritokeni_ussd.services.agent_service import AgentService
from afritokeni_ussd.ussd.context import Collaborators
from afritokeni_ussd.ussd.router import UssdRouter

CODE_PATTERN = re.compile(r"\b(\d{6})\b")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        app_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """One long-lived session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def db_scope(session_factory):
    """Unit-of-work factory matching engine.session_scope, bound to the test DB."""

    @asynccontextmanager
    async def scope():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def ledger() -> SimulatedLedger:
    return SimulatedLedger()


@pytest.fixture
def sms() -> LoggingSmsSender:
    return LoggingSmsSender()


@pytest.fixture
def codes(clock: FakeClock) -> InMemoryCodeStore:
    return InMemoryCodeStore(ttl_seconds=600, max_attempts=3, clock=clock)


@pytest.fixture
def collaborators(settings, ledger, sms, codes) -> Collaborators:
    return Collaborators(
        sms=sms,
        ledger=ledger,
        rates=StaticRateProvider.from_settings(settings),
        codes=codes,
    )


@pytest.fixture
def store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(timeout_seconds=180, clock=clock)


@pytest.fixture
def ussd_router(store, collaborators, settings, db_scope, clock) -> UssdRouter:
    return UssdRouter(store, collaborators, settings, db_scope, clock)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_account(db_scope, ledger):
    """Register a user with a PIN and optional opening balances."""

    async def factory(
        phone: str = "256700123456",
        pin: str | None = "1234",
        first_name: str = "Jane",
        last_name: str = "Doe",
        balances: dict[str, Decimal] | None = None,
    ):
        async with db_scope() as session:
            svc = AccountService(session)
            account = await svc.register(phone, first_name, last_name)
            if pin is not None:
                await svc.set_pin(account, pin)
        for asset, amount in (balances or {}).items():
            ledger.credit(account.principal_id, asset, amount)
        return account

    return factory


@pytest.fixture
def make_agent(db_scope):
    counter = {"n": 0}

    async def factory(
        business_name: str = "Kampala Central Agent",
        city: str = "Kampala",
        commission_rate: Decimal | None = None,
    ):
        counter["n"] += 1
        async with db_scope() as session:
            return await AgentService(session).register(
                business_name=business_name,
                phone_number=f"25677000000{counter['n']}",
                city=city,
                principal_id=f"agent-principal-{counter['n']}",
                commission_rate=commission_rate,
            )

    return factory


class Dialer:
    """Replays a handset's session against the router, gateway style."""

    def __init__(self, router: UssdRouter, phone: str, session_id: str) -> None:
        self.router = router
        self.phone = phone
        self.session_id = session_id
        self.inputs: list[str] = []

    async def start(self) -> str:
        self.inputs = []
        response = await self.router.handle(self.session_id, self.phone, "")
        return response.render()

    async def press(self, token: str) -> str:
        self.inputs.append(token)
        response = await self.router.handle(self.session_id, self.phone, "*".join(self.inputs))
        return response.render()


@pytest.fixture
def dial(ussd_router):
    def factory(phone: str = "256700123456", session_id: str = "ATUid_test_1") -> Dialer:
        return Dialer(ussd_router, phone, session_id)

    return factory


def last_code(sms: LoggingSmsSender) -> str:
    """The verification code in the most recent outgoing SMS."""
    match = CODE_PATTERN.search(sms.outbox[-1][1])
    assert match is not None, sms.outbox[-1][1]
    return match.group(1)


@pytest.fixture
def read_code(sms):
    return lambda: last_code(sms)
