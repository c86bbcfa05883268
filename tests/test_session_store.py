"""Unit tests for the in-memory session store."""

from datetime import timedelta

from models.pipeline import PipelineState
from services.session_store import SessionStore


class TestSessionStore:
    """Tests for SessionStore."""

    def test_create_and_get(self):
        store = SessionStore()

        session = store.create()

        assert store.get(session.session_id) is session
        assert session.state is PipelineState.FORM
        assert len(store) == 1

    def test_get_unknown(self):
        store = SessionStore()

        assert store.get("nope") is None
        assert store.get(None) is None

    def test_get_or_create(self):
        store = SessionStore()
        session = store.create()

        assert store.get_or_create(session.session_id) is session
        assert store.get_or_create("unknown") is not session
        assert len(store) == 2

    def test_discard(self):
        store = SessionStore()
        session = store.create()

        assert store.discard(session.session_id)
        assert not store.discard(session.session_id)
        assert len(store) == 0

    def test_purge_expired(self):
        store = SessionStore(ttl_seconds=60)
        stale = store.create()
        fresh = store.create()
        stale.last_seen_at -= timedelta(seconds=120)

        assert store.purge_expired() == 1
        assert store.get(stale.session_id) is None
        assert store.get(fresh.session_id) is fresh

    def test_in_flight_sessions_survive_purge(self):
        store = SessionStore(ttl_seconds=60)
        busy = store.create()
        busy.last_seen_at -= timedelta(seconds=120)
        busy.try_begin("submit_draft")

        assert store.purge_expired() == 0

    def test_clear(self):
        store = SessionStore()
        store.create()
        store.create()

        assert store.clear() == 2
        assert len(store) == 0
