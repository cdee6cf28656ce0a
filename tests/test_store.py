"""Tests for session stores."""

import asyncio
from datetime import UTC, datetime, timedelta, timezone

import pytest

from curation_tournament.core.errors import ConcurrentAdvanceConflict, SessionNotFound
from curation_tournament.models import SessionStatus
from curation_tournament.services.bracket import build_bracket
from curation_tournament.services.storage import (
    DBSessionStore,
    InMemorySessionStore,
    SessionStore,
)


def _session(day: int = 1, status: SessionStatus = SessionStatus.SETUP):
    session = build_bracket(["w1", "w2", "w3", "w4"], "sue")
    session.created_at = datetime(2026, 1, day, 12, tzinfo=UTC)
    session.updated_at = session.created_at
    session.status = status
    return session


@pytest.fixture(params=["memory", "sqlite", "duckdb"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield InMemorySessionStore()
        return
    db_store = DBSessionStore(f"{request.param}:///{tmp_path / 'sessions.db'}")
    yield db_store
    await db_store.close()


class TestSessionStore:
    """Contract tests run against every adapter."""

    async def test_satisfies_protocol(self, store):
        assert isinstance(store, SessionStore)

    async def test_get_missing(self, store):
        assert await store.get("tournament-missing") is None

    async def test_create_and_get(self, store):
        session = _session()
        assert await store.put(session, None) == 1

        stored = await store.get(session.id)
        assert stored.version == 1
        assert stored.session == session

    async def test_reads_are_independent_copies(self, store):
        session = _session()
        await store.put(session, None)

        first = await store.get(session.id)
        first.session.status = SessionStatus.CANCELLED
        second = await store.get(session.id)
        assert second.session.status is SessionStatus.SETUP

    async def test_update_bumps_version(self, store):
        session = _session()
        await store.put(session, None)

        session.status = SessionStatus.ACTIVE
        session.get_bracket("bracket-1").resolve("w1", "strong")
        assert await store.put(session, 1) == 2

        stored = await store.get(session.id)
        assert stored.version == 2
        assert stored.session.status is SessionStatus.ACTIVE
        assert stored.session.get_bracket("bracket-1").reasoning == "strong"

    async def test_duplicate_create_conflicts(self, store):
        session = _session()
        await store.put(session, None)
        with pytest.raises(ConcurrentAdvanceConflict):
            await store.put(session, None)

    async def test_stale_version_conflicts(self, store):
        session = _session()
        await store.put(session, None)
        await store.put(session, 1)

        with pytest.raises(ConcurrentAdvanceConflict):
            await store.put(session, 1)
        assert (await store.get(session.id)).version == 2

    async def test_update_missing(self, store):
        with pytest.raises(SessionNotFound):
            await store.put(_session(), 1)

    async def test_list_newest_first(self, store):
        sessions = [_session(day) for day in (3, 1, 2)]
        for session in sessions:
            await store.put(session, None)

        listed, total = await store.list()
        assert total == 3
        assert [s.id for s in listed] == [sessions[0].id, sessions[2].id, sessions[1].id]

    async def test_list_window_and_filter(self, store):
        for day in range(1, 6):
            status = SessionStatus.ACTIVE if day % 2 else SessionStatus.SETUP
            await store.put(_session(day, status), None)

        listed, total = await store.list(offset=1, limit=2)
        assert total == 5
        assert [s.created_at.day for s in listed] == [4, 3]

        listed, total = await store.list(SessionStatus.ACTIVE)
        assert total == 3
        assert all(s.status is SessionStatus.ACTIVE for s in listed)


@pytest.fixture
async def shared_db(tmp_path):
    """Two independent stores over one SQLite file."""
    url = f"sqlite:///{tmp_path / 'shared.db'}"
    first, second = DBSessionStore(url), DBSessionStore(url)
    yield first, second
    await first.close()
    await second.close()


class TestSharedDatabase:
    """Writers in separate stores (or processes) sharing one database."""

    async def test_stale_write_from_other_store(self, shared_db):
        first, second = shared_db
        session = _session()
        await first.put(session, None)

        winner = session.model_copy(deep=True)
        winner.status = SessionStatus.ACTIVE
        assert await first.put(winner, 1) == 2

        loser = session.model_copy(deep=True)
        loser.status = SessionStatus.CANCELLED
        with pytest.raises(ConcurrentAdvanceConflict):
            await second.put(loser, 1)

        stored = await second.get(session.id)
        assert stored.version == 2
        assert stored.session.status is SessionStatus.ACTIVE

    async def test_racing_writes_one_wins(self, shared_db):
        first, second = shared_db
        session = _session()
        await first.put(session, None)

        results = await asyncio.gather(
            first.put(session, 1),
            second.put(session, 1),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConcurrentAdvanceConflict) for r in results) == 1
        assert [r for r in results if isinstance(r, int)] == [2]
        assert (await first.get(session.id)).version == 2

    async def test_duplicate_create_across_stores(self, shared_db):
        first, second = shared_db
        session = _session()
        await first.put(session, None)

        with pytest.raises(ConcurrentAdvanceConflict):
            await second.put(session, None)

    async def test_offset_timestamps_sort_in_utc(self, shared_db):
        first, _ = shared_db
        early = _session(day=2)
        # 2026-01-02 13:00 at +05:00 is 08:00 UTC, before the 12:00 UTC session
        early.created_at = datetime(2026, 1, 2, 13, tzinfo=timezone(timedelta(hours=5)))
        late = _session(day=2)
        await first.put(early, None)
        await first.put(late, None)

        sessions, _ = await first.list()
        assert [s.id for s in sessions] == [late.id, early.id]
