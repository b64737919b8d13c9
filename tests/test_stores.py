# Tests for oauth/stores.py

import asyncio

import pytest

from oauth.stores import CredentialStore, PendingAuthorization, Session, run_sweeper

DAY = 24 * 60 * 60


def make_session(token: str, created_at: float) -> Session:
    return Session(
        session_token=token,
        access_token="a",
        workspace_id="w",
        base_url="https://x.atlassian.net",
        space_keys=("ENG",),
        created_at=created_at,
    )


@pytest.fixture
def store():
    return CredentialStore()


class TestCredentialStore:
    def test_put_get_delete(self, store):
        entry = make_session("t1", 0)
        store.put("t1", entry)
        assert store.get("t1") is entry
        assert store.delete("t1") is True
        assert store.get("t1") is None
        assert store.delete("t1") is False

    def test_get_session_ignores_pending(self, store):
        store.add_pending("state-1")
        assert store.get_session("state-1") is None
        assert isinstance(store.get("state-1"), PendingAuthorization)

    def test_get_session_empty_token(self, store):
        assert store.get_session("") is None
        assert store.get_session(None) is None

    def test_consume_pending_is_single_use(self, store):
        store.add_pending("state-1")
        first = store.consume_pending("state-1")
        assert first is not None
        assert first.state == "state-1"
        assert store.consume_pending("state-1") is None

    def test_consume_pending_rejects_session_token(self, store):
        store.add_session(make_session("t1", 0))
        assert store.consume_pending("t1") is None
        assert store.get_session("t1") is not None

    def test_revoke(self, store):
        store.add_session(make_session("t1", 0))
        assert store.revoke("t1") is True
        assert store.get_session("t1") is None
        assert store.revoke("t1") is False

    def test_revoke_does_not_remove_pending(self, store):
        store.add_pending("state-1")
        assert store.revoke("state-1") is False
        assert "state-1" in store

    def test_session_count(self, store):
        store.add_pending("state-1")
        store.add_session(make_session("t1", 0))
        store.add_session(make_session("t2", 0))
        assert store.session_count() == 2
        assert len(store) == 3


class TestSweep:
    def test_removes_old_sessions_keeps_new(self, store):
        now = 10 * DAY
        store.add_session(make_session("old", now - DAY - 1))
        store.add_session(make_session("new", now - DAY + 60))

        removed = store.sweep(now, max_age=DAY)

        assert removed == 1
        assert store.get_session("old") is None
        assert store.get_session("new") is not None

    def test_pending_uses_same_policy_by_default(self, store):
        now = 10 * DAY
        store.put("stale", PendingAuthorization(state="stale", created_at=now - DAY - 1))
        store.put("fresh", PendingAuthorization(state="fresh", created_at=now - 60))

        assert store.sweep(now, max_age=DAY) == 1
        assert "stale" not in store
        assert "fresh" in store

    def test_pending_max_age_override(self, store):
        now = 10 * DAY
        store.put("p", PendingAuthorization(state="p", created_at=now - 601))
        store.add_session(make_session("s", now - 601))

        assert store.sweep(now, max_age=DAY, pending_max_age=600) == 1
        assert "p" not in store
        assert store.get_session("s") is not None

    def test_sweep_empty(self, store):
        assert store.sweep(0, max_age=DAY) == 0


async def test_run_sweeper_removes_expired_entries(store):
    store.add_session(make_session("ancient", 0))
    task = asyncio.create_task(run_sweeper(store, interval=0.01, max_age=DAY))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert store.get_session("ancient") is None
