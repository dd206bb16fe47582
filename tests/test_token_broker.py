"""
Tests for the token broker and its session stores.

These tests verify:
- store/resolve round trips and overwrite semantics
- NotFound for unknown and revoked ids
- Collision detection in mint()
- TTL expiry in ExpiringSessionStore
- Store selection from settings
"""

import pytest

from workspace_relay.core.config import Settings
from workspace_relay.environments.base import SessionCollisionError, SessionNotFoundError
from workspace_relay.services.token_broker import (
    ExpiringSessionStore,
    InMemorySessionStore,
    TokenBroker,
    build_token_broker,
)

from tests.conftest import make_tokens


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# BROKER TESTS
# ---------------------------------------------------------------------------

class TestTokenBroker:
    """Tests for TokenBroker."""

    def test_resolve_returns_stored_pair(self, broker):
        """resolve(s) after store(s, pair) returns exactly pair."""
        pair = make_tokens(access_token="ya29.first")
        sid = broker.mint()
        broker.store(sid, pair)

        assert broker.resolve(sid) is pair

    def test_store_overwrites_instead_of_merging(self, broker):
        """A second store replaces the whole pair."""
        sid = broker.mint()
        broker.store(sid, make_tokens(access_token="ya29.first", refresh_token="1//first"))
        second = make_tokens(access_token="ya29.second", refresh_token=None)
        broker.store(sid, second)

        resolved = broker.resolve(sid)
        assert resolved is second
        assert resolved.refresh_token is None
        assert len(broker) == 1

    def test_resolve_unknown_id_raises_not_found(self, broker):
        with pytest.raises(SessionNotFoundError):
            broker.resolve("never-stored")

    def test_resolve_empty_id_raises_not_found(self, broker):
        with pytest.raises(SessionNotFoundError):
            broker.resolve("")
        with pytest.raises(SessionNotFoundError):
            broker.resolve(None)

    def test_fresh_broker_knows_nothing(self, broker):
        """A restarted process (new broker) has no sessions."""
        sid = broker.mint()
        broker.store(sid, make_tokens())

        restarted = TokenBroker()
        with pytest.raises(SessionNotFoundError):
            restarted.resolve(sid)

    def test_mint_generates_distinct_url_safe_ids(self, broker):
        ids = {broker.mint() for _ in range(50)}

        assert len(ids) == 50
        for sid in ids:
            assert len(sid) >= 40
            assert all(c.isalnum() or c in "-_" for c in sid)

    def test_mint_collision_is_an_error(self):
        """A colliding id is reported, never handed out over a live session."""
        broker = TokenBroker(id_factory=lambda: "same-id")
        broker.store(broker.mint(), make_tokens(access_token="ya29.live"))

        with pytest.raises(SessionCollisionError):
            broker.mint()
        assert broker.resolve("same-id").access_token == "ya29.live"

    def test_revoke_forgets_session(self, broker, session_id):
        assert broker.revoke(session_id) is True
        assert broker.revoke(session_id) is False
        with pytest.raises(SessionNotFoundError):
            broker.resolve(session_id)


# ---------------------------------------------------------------------------
# STORE TESTS
# ---------------------------------------------------------------------------

class TestInMemorySessionStore:

    def test_get_set_delete(self):
        store = InMemorySessionStore()
        pair = make_tokens()

        assert store.get("k") is None
        store.set("k", pair)
        assert store.get("k") is pair
        assert "k" in store
        assert store.delete("k") is True
        assert "k" not in store
        assert len(store) == 0


class TestExpiringSessionStore:

    def test_record_expires_after_ttl(self):
        clock = FakeClock()
        store = ExpiringSessionStore(ttl_seconds=60, clock=clock)
        store.set("k", make_tokens())

        clock.now += 59
        assert store.get("k") is not None

        clock.now += 1
        assert store.get("k") is None
        assert len(store) == 0

    def test_set_restarts_ttl(self):
        clock = FakeClock()
        store = ExpiringSessionStore(ttl_seconds=60, clock=clock)
        store.set("k", make_tokens(access_token="ya29.old"))
        clock.now += 50
        store.set("k", make_tokens(access_token="ya29.new"))
        clock.now += 50

        assert store.get("k").access_token == "ya29.new"

    def test_set_purges_other_expired_records(self):
        clock = FakeClock()
        store = ExpiringSessionStore(ttl_seconds=10, clock=clock)
        store.set("old", make_tokens())
        clock.now += 11
        store.set("new", make_tokens())

        assert len(store) == 1
        assert "old" not in store

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ExpiringSessionStore(ttl_seconds=0)

    def test_broker_over_expiring_store(self):
        clock = FakeClock()
        broker = TokenBroker(store=ExpiringSessionStore(ttl_seconds=5, clock=clock))
        sid = broker.mint()
        broker.store(sid, make_tokens())
        clock.now += 5

        with pytest.raises(SessionNotFoundError):
            broker.resolve(sid)


class TestBuildTokenBroker:

    def test_default_store_never_expires(self):
        broker = build_token_broker(Settings(SESSION_TTL_SECONDS=0))
        assert isinstance(broker.store_backend, InMemorySessionStore)

    def test_ttl_selects_expiring_store(self):
        broker = build_token_broker(Settings(SESSION_TTL_SECONDS=3600))
        assert isinstance(broker.store_backend, ExpiringSessionStore)
        assert broker.store_backend.ttl_seconds == 3600
