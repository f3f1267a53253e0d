"""Project and scene row helpers."""

from __future__ import annotations

import sqlite3

__all__ = [
    "insert_project",
    "get_project_by_id",
    "get_project_by_key",
    "project_key_in_use",
    "list_projects",
    "project_ids_for_user",
    "rename_project",
    "delete_project_row",
    "insert_scene",
    "get_scene_by_id",
    "get_scene_by_key",
    "scene_key_in_use",
    "list_scenes",
    "scene_ids_for_project",
    "update_scene",
    "delete_scene_row",
]

_PROJECT_COLUMNS = "id, project_key, user, title"
_SCENE_COLUMNS = "id, scene_key, project, title, w, h"


# ---- Projects ---------------------------------------------------------------


def insert_project(
    conn: sqlite3.Connection, *, project_key: str, user_id: int, title: str | None
) -> int:
    cur = conn.execute(
        "INSERT INTO projects(project_key, user, title) VALUES (?, ?, ?)",
        (project_key, int(user_id), title),
    )
    rowid = cur.lastrowid
    if rowid is None:
        raise RuntimeError("Failed to insert project row")
    return int(rowid)


def get_project_by_id(conn: sqlite3.Connection, project_id: int) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?", (int(project_id),)
    ).fetchone()


def get_project_by_key(
    conn: sqlite3.Connection, user_id: int, project_key: str
) -> sqlite3.Row | None:
    """Project keys are only unique per user, so lookups are owner-scoped."""

    return conn.execute(
        f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE user = ? AND project_key = ? "
        "ORDER BY id ASC LIMIT 1",
        (int(user_id), project_key),
    ).fetchone()


def project_key_in_use(conn: sqlite3.Connection, user_id: int, project_key: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM projects WHERE user = ? AND project_key = ?",
        (int(user_id), project_key),
    ).fetchone()
    return row is not None


def list_projects(conn: sqlite3.Connection, user_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE user = ? ORDER BY id ASC",
        (int(user_id),),
    ).fetchall()


def project_ids_for_user(conn: sqlite3.Connection, user_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT id FROM projects WHERE user = ? ORDER BY id ASC", (int(user_id),)
    ).fetchall()
    return [int(row[0]) for row in rows]


def rename_project(conn: sqlite3.Connection, project_id: int, title: str | None) -> None:
    conn.execute("UPDATE projects SET title = ? WHERE id = ?", (title, int(project_id)))


def delete_project_row(conn: sqlite3.Connection, project_id: int) -> int:
    cur = conn.execute("DELETE FROM projects WHERE id = ?", (int(project_id),))
    return int(cur.rowcount)


# ---- Scenes -----------------------------------------------------------------


def insert_scene(
    conn: sqlite3.Connection,
    *,
    scene_key: str,
    project_id: int,
    title: str | None,
    width: int,
    height: int,
) -> int:
    cur = conn.execute(
        "INSERT INTO scenes(scene_key, project, title, w, h) VALUES (?, ?, ?, ?, ?)",
        (scene_key, int(project_id), title, int(width), int(height)),
    )
    rowid = cur.lastrowid
    if rowid is None:
        raise RuntimeError("Failed to insert scene row")
    return int(rowid)


def get_scene_by_id(conn: sqlite3.Connection, scene_id: int) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_SCENE_COLUMNS} FROM scenes WHERE id = ?", (int(scene_id),)
    ).fetchone()


def get_scene_by_key(
    conn: sqlite3.Connection, project_id: int, scene_key: str
) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_SCENE_COLUMNS} FROM scenes WHERE project = ? AND scene_key = ? "
        "ORDER BY id ASC LIMIT 1",
        (int(project_id), scene_key),
    ).fetchone()


def scene_key_in_use(conn: sqlite3.Connection, project_id: int, scene_key: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM scenes WHERE project = ? AND scene_key = ?",
        (int(project_id), scene_key),
    ).fetchone()
    return row is not None


def list_scenes(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_SCENE_COLUMNS} FROM scenes WHERE project = ? ORDER BY id ASC",
        (int(project_id),),
    ).fetchall()


def scene_ids_for_project(conn: sqlite3.Connection, project_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT id FROM scenes WHERE project = ? ORDER BY id ASC", (int(project_id),)
    ).fetchall()
    return [int(row[0]) for row in rows]


def update_scene(
    conn: sqlite3.Connection, scene_id: int, *, title: str | None, width: int, height: int
) -> None:
    conn.execute(
        "UPDATE scenes SET title = ?, w = ?, h = ? WHERE id = ?",
        (title, int(width), int(height), int(scene_id)),
    )


def delete_scene_row(conn: sqlite3.Connection, scene_id: int) -> int:
    cur = conn.execute("DELETE FROM scenes WHERE id = ?", (int(scene_id),))
    return int(cur.rowcount)
