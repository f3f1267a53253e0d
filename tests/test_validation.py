import sqlite3
from pathlib import Path

import pytest

from scenestore.core.config import Settings
from scenestore.services.store import open_store
from scenestore.storage.database import Database
from scenestore.storage.sqlite import schema


def _open(tmp_path: Path):
    return open_store(tmp_path / "scenes.db", settings=Settings(), hash_rounds=4)


def _kinds(issues):
    return sorted(issue["kind"] for issue in issues)


def test_clean_database_has_no_issues(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        project = store.projects.create_project(user)
        scene = store.projects.create_scene(project, "Main", 10, 10, default_layers=True)
        store.scene_graph.upsert_sprite(scene, 0, 1, None, None, 0, 0, 1, 1, 0)
        assert store.verify() == []


def test_sweep_reports_rows_written_by_other_tools(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        project = store.projects.create_project(user)
        scene = store.projects.create_scene(project, "Main", 10, 10)
        conn = store.db.conn
        conn.execute(
            "INSERT INTO sprites(id, scene, layer, x, y, w, h, z) VALUES (0, ?, 9, 0, 0, 1, 1, 0)",
            (scene.id,),
        )
        conn.execute(
            "INSERT INTO user_sessions(user, session_key, active, start_time, end_time)"
            " VALUES (?, ?, 0, 1, NULL)",
            (user.id, "d" * 64),
        )
        conn.execute("UPDATE scenes SET w = 0 WHERE id = ?", (scene.id,))
        conn.execute(
            "INSERT INTO projects(project_key, user, title) VALUES (?, ?, NULL)",
            (project.project_key, user.id),
        )

        issues = store.verify()

    assert _kinds(issues) == [
        "dangling_sprite_layer",
        "duplicate_project_key",
        "inconsistent_session_state",
        "non_positive_canvas",
    ]


def test_reads_tolerate_rows_the_sweep_reports(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        project = store.projects.create_project(user)
        scene = store.projects.create_scene(project, "Main", 10, 10)
        store.db.conn.execute(
            "INSERT INTO layers(id, scene, title, z, visible, locked)"
            " VALUES (5, ?, NULL, NULL, NULL, NULL)",
            (scene.id,),
        )
        store.scene_graph.upsert_layer(scene, 6, "Top", 1)
        store.scene_graph.upsert_sprite(scene, 0, 5, None, None, 0, 0, 5, 5, 0)
        assert store.verify() == []

        bare = store.scene_graph.get_layer(scene, 5)
        assert (bare.z, bare.visible, bare.locked) == (0, True, False)
        assert [layer.id for layer in store.scene_graph.list_layers(scene)] == [5, 6]
        visible = store.scene_graph.draw_order(scene, visible_only=True)
        assert [sprite.id for sprite in visible] == [0]
        assert store.scene_graph.sprite_at(scene, 2, 2).id == 0
        assert store.scene_graph.draw_order_frame(scene)["layer_visible"].tolist() == [True]
        assert store.scene_graph.move_layer(scene, 5, up=True) is True
        assert [layer.id for layer in store.scene_graph.list_layers(scene)] == [6, 5]

        store.db.conn.execute("UPDATE scenes SET w = 0 WHERE id = ?", (scene.id,))
        assert _kinds(store.verify()) == ["non_positive_canvas"]
        assert [s.width for s in store.projects.list_scenes(project)] == [0]


def test_new_database_records_schema_metadata(tmp_path):
    with Database(tmp_path / "meta.db", app_version="9.9") as db:
        meta = db.read_meta()
        assert db.schema_version == schema.SCHEMA_VERSION
    assert meta["format"] == "scenestore-sqlite"
    assert meta["schema_version"] == str(schema.SCHEMA_VERSION)
    assert meta["app_version"] == "9.9"
    assert "created_utc" in meta


def test_reopen_keeps_data(tmp_path):
    with _open(tmp_path) as store:
        store.accounts.create_user("alice", "pw")
    with _open(tmp_path) as store:
        assert store.accounts.verify_credentials("alice", "pw").username == "alice"


def test_migrates_version_one_database(tmp_path):
    path = tmp_path / "old.db"
    Database(path).close()
    conn = sqlite3.connect(path)
    conn.execute("DROP INDEX projects_user_key")
    conn.execute("PRAGMA user_version = 1")
    conn.commit()
    conn.close()

    with Database(path) as db:
        assert db.schema_version == 2
        names = {
            row[0]
            for row in db.conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
        }
    assert "projects_user_key" in names


def test_newer_schema_is_refused(tmp_path):
    path = tmp_path / "future.db"
    Database(path).close()
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA user_version = 99")
    conn.commit()
    conn.close()

    with pytest.raises(RuntimeError, match="newer"):
        Database(path)
