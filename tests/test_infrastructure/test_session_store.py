"""Tests for the in-memory session store."""

from __future__ import annotations

import asyncio

import pytest

from afritokeni_ussd.domain.enums import Menu
from afritokeni_ussd.infrastructure.session_store import InMemorySessionStore


class TestInMemorySessionStore:
    @pytest.mark.asyncio
    async def test_get_or_create_new_session(self, store: InMemorySessionStore) -> None:
        session = await store.get_or_create("s1", "+256 700 123456")
        assert session.phone_number == "256700123456"
        assert session.current_menu is Menu.REGISTRATION_CHECK
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_changes_invisible_until_saved(self, store: InMemorySessionStore) -> None:
        session = await store.get_or_create("s1", "256700123456")
        session.enter(Menu.MAIN)
        assert (await store.get("s1")).current_menu is Menu.REGISTRATION_CHECK

        await store.save(session)
        assert (await store.get("s1")).current_menu is Menu.MAIN

    @pytest.mark.asyncio
    async def test_idle_session_expires(self, store: InMemorySessionStore, clock) -> None:
        await store.get_or_create("s1", "256700123456")
        clock.advance(seconds=181)
        assert await store.get("s1") is None
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_save_slides_the_timeout(self, store: InMemorySessionStore, clock) -> None:
        session = await store.get_or_create("s1", "256700123456")
        clock.advance(seconds=120)
        await store.save(session)
        clock.advance(seconds=120)
        assert await store.get("s1") is not None

    @pytest.mark.asyncio
    async def test_phone_mismatch_starts_fresh(self, store: InMemorySessionStore) -> None:
        session = await store.get_or_create("s1", "256700123456")
        session.enter(Menu.MAIN)
        await store.save(session)

        other = await store.get_or_create("s1", "254712345678")
        assert other.phone_number == "254712345678"
        assert other.current_menu is Menu.REGISTRATION_CHECK

    @pytest.mark.asyncio
    async def test_sweep_evicts_only_stale(self, store: InMemorySessionStore, clock) -> None:
        await store.get_or_create("old", "256700123456")
        clock.advance(seconds=100)
        await store.get_or_create("new", "256700123457")
        clock.advance(seconds=100)

        assert await store.sweep() == 1
        assert await store.get("new") is not None

    @pytest.mark.asyncio
    async def test_clear_and_delete(self, store: InMemorySessionStore) -> None:
        await store.get_or_create("a", "256700123456")
        await store.get_or_create("b", "256700123457")
        await store.delete("a")
        await store.delete("missing")
        assert await store.clear() == 1
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_lock_serialises_turns(self, store: InMemorySessionStore) -> None:
        order: list[str] = []

        async def turn(name: str) -> None:
            async with store.lock("s1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(turn("a"), turn("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]
