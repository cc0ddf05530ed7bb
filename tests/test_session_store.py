"""Tests for the session registry: lookup, retention, locking, teardown."""

import asyncio

import pytest

from card_agent.config import SessionConfig
from card_agent.errors import InvalidStateError, NotFoundError
from card_agent.pipeline.session_store import SessionStore
from card_agent.schemas.session_schema import IssueType, Session
from tests.conftest import FakeClock


def _session(session_id: str) -> Session:
    return Session(
        session_id=session_id,
        customer_id="cust_1001",
        card_last4="4242",
        transcript="Please waive my annual fee",
        issue_type=IssueType.FEE_WAIVER,
    )


class TestLookup:
    def test_add_and_get(self, session_store):
        session = _session("sess_a")
        session_store.add(session)
        assert session_store.get("sess_a") is session
        assert "sess_a" in session_store
        assert len(session_store) == 1

    def test_unknown_id(self, session_store):
        with pytest.raises(NotFoundError):
            session_store.get("sess_missing")

    def test_duplicate_id_rejected(self, session_store):
        session_store.add(_session("sess_a"))
        with pytest.raises(InvalidStateError):
            session_store.add(_session("sess_a"))

    def test_empty_transcript_never_stored(self):
        with pytest.raises(ValueError):
            _session_with_text("   ")


def _session_with_text(text: str) -> Session:
    return Session(
        session_id="sess_blank",
        customer_id="cust_1001",
        card_last4="4242",
        transcript=text,
        issue_type=IssueType.BILLING_DISPUTE,
    )


class TestRetention:
    def test_expired_session_is_gone(self):
        clock = FakeClock()
        store = SessionStore(SessionConfig(ttl_sec=60, max_sessions=10), clock=clock)
        store.add(_session("sess_a"))
        clock.now = 61
        with pytest.raises(NotFoundError):
            store.get("sess_a")
        assert len(store) == 0

    def test_evict_expired_counts(self):
        clock = FakeClock()
        store = SessionStore(SessionConfig(ttl_sec=60, max_sessions=10), clock=clock)
        store.add(_session("sess_a"))
        clock.now = 30
        store.add(_session("sess_b"))
        clock.now = 70
        assert store.evict_expired() == 1
        assert "sess_b" in store

    def test_least_recent_evicted_at_capacity(self):
        store = SessionStore(SessionConfig(ttl_sec=3600, max_sessions=2))
        store.add(_session("sess_a"))
        store.add(_session("sess_b"))
        store.add(_session("sess_c"))
        assert "sess_a" not in store
        assert "sess_b" in store and "sess_c" in store

    def test_use_refreshes_ttl(self):
        clock = FakeClock()
        store = SessionStore(SessionConfig(ttl_sec=60, max_sessions=10), clock=clock)
        store.add(_session("sess_a"))
        clock.now = 50
        store.get("sess_a")
        clock.now = 100
        assert store.get("sess_a").session_id == "sess_a"

    @pytest.mark.asyncio
    async def test_used_session_survives_capacity_eviction(self):
        store = SessionStore(SessionConfig(ttl_sec=3600, max_sessions=2))
        store.add(_session("sess_a"))
        store.add(_session("sess_b"))
        async with store.locked("sess_a"):
            pass
        store.add(_session("sess_c"))
        assert "sess_a" in store and "sess_c" in store
        assert "sess_b" not in store

    @pytest.mark.asyncio
    async def test_locked_session_not_evicted(self):
        store = SessionStore(SessionConfig(ttl_sec=3600, max_sessions=1))
        store.add(_session("sess_a"))
        async with store.locked("sess_a"):
            store.add(_session("sess_b"))
            assert "sess_a" in store
        assert len(store) == 2


class TestLocking:
    @pytest.mark.asyncio
    async def test_locked_yields_session(self, session_store):
        session_store.add(_session("sess_a"))
        async with session_store.locked("sess_a") as session:
            assert session.session_id == "sess_a"

    @pytest.mark.asyncio
    async def test_locked_unknown_id(self, session_store):
        with pytest.raises(NotFoundError):
            async with session_store.locked("sess_missing"):
                pass

    @pytest.mark.asyncio
    async def test_lock_serializes_holders(self, session_store):
        session_store.add(_session("sess_a"))
        order: list[str] = []

        async def hold(name: str) -> None:
            async with session_store.locked("sess_a"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(hold("first"), hold("second"))
        assert order == ["first-in", "first-out", "second-in", "second-out"]


class TestTeardown:
    def test_close_drops_sessions_and_refuses_new(self, session_store):
        session_store.add(_session("sess_a"))
        session_store.close()
        assert len(session_store) == 0
        with pytest.raises(InvalidStateError):
            session_store.add(_session("sess_b"))
