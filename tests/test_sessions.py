import re
from pathlib import Path

import pytest

from scenestore.core import credentials
from scenestore.core.config import Settings
from scenestore.core.errors import AlreadyEnded, Conflict, NotFound, Unauthorized
from scenestore.services.store import open_store


class _Clock:
    def __init__(self, start: int = 1_700_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def _open(tmp_path: Path, **kwargs):
    return open_store(tmp_path / "scenes.db", settings=Settings(), hash_rounds=4, **kwargs)


def test_start_session_is_active(tmp_path):
    clock = _Clock()
    with _open(tmp_path, clock=clock) as store:
        user = store.accounts.create_user("alice", "pw")
        session = store.sessions.start_session(user)

        assert re.fullmatch(r"[0-9a-f]{64}", session.session_key)
        assert session.active is True
        assert session.end_time is None
        assert session.start_time == clock.now
        assert store.sessions.resolve_session(session.session_key).id == user.id


def test_login_verifies_credentials(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        session = store.sessions.login("alice", "pw")
        assert session.user == user.id
        with pytest.raises(Unauthorized):
            store.sessions.login("alice", "bad")


def test_end_session_twice(tmp_path):
    clock = _Clock()
    with _open(tmp_path, clock=clock) as store:
        user = store.accounts.create_user("alice", "pw")
        session = store.sessions.start_session(user)

        ended = store.sessions.end_session(session.session_key)
        assert ended.active is False
        assert ended.end_time == clock.now
        with pytest.raises(Unauthorized):
            store.sessions.resolve_session(session.session_key)
        with pytest.raises(AlreadyEnded):
            store.sessions.end_session(session.session_key)
        assert store.sessions.get_session(session.session_key).end_time == ended.end_time


def test_unknown_session_keys(tmp_path):
    with _open(tmp_path) as store:
        with pytest.raises(NotFound):
            store.sessions.end_session("f" * 64)
        with pytest.raises(NotFound):
            store.sessions.get_session("f" * 64)
        with pytest.raises(Unauthorized):
            store.sessions.resolve_session("f" * 64)
        with pytest.raises(Unauthorized):
            store.sessions.resolve_session("")


def test_start_session_for_deleted_user(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        store.accounts.delete_user(user)
        with pytest.raises(NotFound):
            store.sessions.start_session(user)


def test_list_and_end_all_sessions(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        other = store.accounts.create_user("bob", "pw")
        first = store.sessions.start_session(user)
        store.sessions.start_session(user)
        store.sessions.start_session(user)
        bystander = store.sessions.start_session(other)
        store.sessions.end_session(first.session_key)

        assert len(store.sessions.list_sessions(user)) == 3
        assert len(store.sessions.list_sessions(user, active_only=True)) == 2
        assert store.sessions.end_all_sessions(user) == 2
        assert store.sessions.list_sessions(user, active_only=True) == []
        assert store.sessions.resolve_session(bystander.session_key).id == other.id


def test_session_key_collision_retries(tmp_path, monkeypatch):
    keys = iter(["a" * 64, "a" * 64, "b" * 64])
    monkeypatch.setattr(credentials, "generate_session_key", lambda: next(keys))
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        assert store.sessions.start_session(user).session_key == "a" * 64
        assert store.sessions.start_session(user).session_key == "b" * 64


def test_session_key_exhaustion_conflicts(tmp_path, monkeypatch):
    monkeypatch.setattr(credentials, "generate_session_key", lambda: "c" * 64)
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        store.sessions.start_session(user)
        with pytest.raises(Conflict):
            store.sessions.start_session(user)
        assert len(store.sessions.list_sessions(user)) == 1
