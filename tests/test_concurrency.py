import sqlite3
import threading
from pathlib import Path

import pytest

from scenestore.core.cancellation import CancellationToken
from scenestore.core.config import Settings
from scenestore.core.errors import (
    AlreadyEnded,
    Conflict,
    InvalidArgument,
    LockTimeout,
    OperationCancelled,
)
from scenestore.storage import cascade
from scenestore.storage.database import DatabaseClosed
from scenestore.storage.sqlite import projects as projects_sql
from scenestore.services.store import open_store


def _open(tmp_path: Path, **kwargs):
    return open_store(tmp_path / "scenes.db", settings=Settings(), hash_rounds=4, **kwargs)


def _count(store, table: str) -> int:
    return store.db.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def _project_with_scenes(store, scenes: int = 3):
    user = store.accounts.create_user("alice", "pw")
    project = store.projects.create_project(user)
    for index in range(scenes):
        scene = store.projects.create_scene(project, f"S{index}", 100, 100)
        store.scene_graph.upsert_layer(scene, 0, None, 0)
        store.scene_graph.upsert_sprite(scene, 0, 0, None, None, 0, 0, 1, 1, 0)
    return user, project


def test_lock_timeout_is_retryable(tmp_path):
    with _open(tmp_path, lock_timeout=0.1) as store:
        user = store.accounts.create_user("alice", "pw")
        holding = threading.Event()
        release = threading.Event()

        def hold_lock():
            with store.db.unit_of_work():
                holding.set()
                release.wait(5)

        thread = threading.Thread(target=hold_lock)
        thread.start()
        try:
            assert holding.wait(5)
            with pytest.raises(LockTimeout) as excinfo:
                store.projects.create_project(user)
            assert excinfo.value.retryable is True
        finally:
            release.set()
            thread.join()

        assert store.projects.create_project(user).user == user.id


def test_cancelled_before_start_changes_nothing(tmp_path):
    with _open(tmp_path) as store:
        _, project = _project_with_scenes(store)
        token = CancellationToken()
        token.cancel("user pressed stop")

        with pytest.raises(OperationCancelled, match="user pressed stop"):
            store.projects.delete_project(project, cancel_token=token)
        assert _count(store, "scenes") == 3


def test_cancel_mid_cascade_rolls_back(tmp_path, monkeypatch):
    with _open(tmp_path) as store:
        _, project = _project_with_scenes(store)
        token = CancellationToken()
        real_purge_scene = cascade.purge_scene

        def purge_then_cancel(uow, scene_id):
            summary = real_purge_scene(uow, scene_id)
            token.cancel()
            return summary

        monkeypatch.setattr(cascade, "purge_scene", purge_then_cancel)

        with pytest.raises(OperationCancelled):
            store.projects.delete_project(project, cancel_token=token)

        assert _count(store, "projects") == 1
        assert _count(store, "scenes") == 3
        assert _count(store, "layers") == 3
        assert _count(store, "sprites") == 3


def test_storage_failure_mid_cascade_rolls_back(tmp_path, monkeypatch):
    with _open(tmp_path) as store:
        _, project = _project_with_scenes(store)

        def broken_delete(conn, project_id):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(projects_sql, "delete_project_row", broken_delete)

        with pytest.raises(sqlite3.OperationalError):
            store.projects.delete_project(project)

        assert _count(store, "scenes") == 3
        assert _count(store, "sprites") == 3
        assert store.verify() == []


def test_nested_operations_share_one_transaction(tmp_path):
    with _open(tmp_path) as store:
        with pytest.raises(RuntimeError, match="abort"):
            with store.unit_of_work() as uow:
                user = store.accounts.create_user("alice", "pw", uow=uow)
                store.projects.create_project(user)
                raise RuntimeError("abort")

        assert _count(store, "users") == 0
        assert _count(store, "projects") == 0

        with store.unit_of_work() as uow:
            user = store.accounts.create_user("alice", "pw", uow=uow)
            project = store.projects.create_project(user, uow=uow)
        assert store.projects.list_projects(user) == [project]


def test_integrity_error_surfaces_as_conflict(tmp_path):
    with _open(tmp_path) as store:
        store.accounts.create_user("alice", "pw")
        with pytest.raises(Conflict):
            with store.unit_of_work() as uow:
                uow.conn.execute(
                    "INSERT INTO users(username, salt, hashed_password, recovery_key, created_time)"
                    " VALUES ('alice', 's', 'h', 'r', 0)"
                )
        assert _count(store, "users") == 1


def test_read_only_unit_of_work_refuses_writes(tmp_path):
    with _open(tmp_path) as store:
        with store.unit_of_work(write=False) as uow:
            with pytest.raises(InvalidArgument) as excinfo:
                store.accounts.create_user("alice", "pw", uow=uow)
        assert excinfo.value.kind == "invalid_argument"
        assert _count(store, "users") == 0


def test_concurrent_user_creation(tmp_path):
    with _open(tmp_path) as store:
        errors = []

        def worker(prefix: str):
            try:
                for index in range(5):
                    store.accounts.create_user(f"{prefix}-{index}", "pw")
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert _count(store, "users") == 20


def test_concurrent_end_session_ends_once(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        session = store.sessions.start_session(user)
        barrier = threading.Barrier(4)
        outcomes = []

        def worker():
            barrier.wait()
            try:
                store.sessions.end_session(session.session_key)
                outcomes.append("ended")
            except AlreadyEnded:
                outcomes.append("already")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["already", "already", "already", "ended"]


def test_closed_database_refuses_work(tmp_path):
    store = _open(tmp_path)
    store.close()
    with pytest.raises(DatabaseClosed):
        store.accounts.create_user("alice", "pw")


def test_concurrent_media_dedup_keeps_one_row(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        digest = "ab" * 32
        barrier = threading.Barrier(6)
        keys = []
        errors = []

        def worker(index: int):
            barrier.wait()
            try:
                asset = store.media.register_media(user, f"img/copy-{index}.png", "Copy", digest)
                keys.append(asset.media_key)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(keys) == 6
        assert len(set(keys)) == 1
        assert [asset.media_key for asset in store.media.list_media(user)] == keys[:1]
