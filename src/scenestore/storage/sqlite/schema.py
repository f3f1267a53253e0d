"""
Schema, pragmas and migrations for the SceneStore database.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from typing import Any

log = logging.getLogger(__name__)

__all__ = [
    "SCHEMA_VERSION",
    "apply_default_pragmas",
    "apply_cloud_safe_pragmas",
    "ensure_schema",
    "run_migrations",
    "get_user_version",
    "set_user_version",
    "read_meta",
    "write_meta",
]

SCHEMA_VERSION = 2

_BASE_DDL = """
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    salt CHAR(64) NOT NULL,
    hashed_password CHAR(64) NOT NULL,
    recovery_key CHAR(64) NOT NULL,
    created_time INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_sessions (
    id INTEGER PRIMARY KEY,
    user INTEGER REFERENCES users(id) ON DELETE CASCADE NOT NULL,
    session_key CHAR(64) NOT NULL UNIQUE,
    active BOOLEAN DEFAULT TRUE NOT NULL,
    start_time INTEGER NOT NULL,
    end_time INTEGER
);

CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY,
    media_key CHAR(16) NOT NULL UNIQUE,
    user INTEGER REFERENCES users(id) ON DELETE CASCADE NOT NULL,
    relative_path TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    hashed_value CHAR(64) NOT NULL,
    UNIQUE(user, hashed_value)
);

CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY,
    project_key CHAR(16) NOT NULL,
    user INTEGER REFERENCES users(id) ON DELETE CASCADE NOT NULL,
    title TEXT
);

CREATE TABLE IF NOT EXISTS scenes (
    id INTEGER PRIMARY KEY,
    scene_key CHAR(16) NOT NULL,
    project INTEGER REFERENCES projects(id) ON DELETE CASCADE NOT NULL,
    title TEXT,
    w INTEGER NOT NULL,
    h INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS layers (
    id INTEGER NOT NULL,
    scene INTEGER REFERENCES scenes(id) ON DELETE CASCADE NOT NULL,
    title TEXT,
    z INTEGER,
    visible INTEGER,
    locked INTEGER,
    UNIQUE(id, scene)
);

CREATE TABLE IF NOT EXISTS sprites (
    id INTEGER NOT NULL,
    scene INTEGER REFERENCES scenes(id) ON DELETE CASCADE NOT NULL,
    layer INTEGER NOT NULL,
    media_key CHAR(16) REFERENCES media(media_key) ON DELETE SET NULL,
    r REAL,
    g REAL,
    b REAL,
    a REAL,
    x REAL NOT NULL,
    y REAL NOT NULL,
    w REAL NOT NULL,
    h REAL NOT NULL,
    z INTEGER NOT NULL,
    UNIQUE(id, scene)
);
"""

# v2: lookup indexes for the owner-scoped queries the stores issue
_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS user_sessions_user ON user_sessions(user);
CREATE INDEX IF NOT EXISTS projects_user_key ON projects(user, project_key);
CREATE INDEX IF NOT EXISTS scenes_project_key ON scenes(project, scene_key);
CREATE INDEX IF NOT EXISTS sprites_scene_layer ON sprites(scene, layer);
CREATE INDEX IF NOT EXISTS sprites_media_key ON sprites(media_key);
"""


def apply_default_pragmas(conn: sqlite3.Connection, *, busy_timeout_ms: int = 10_000) -> None:
    """
    Apply default pragmas for LOCAL storage (fast, optimized).

    WAL with NORMAL synchronous; foreign keys are always enforced so the
    declared cascades back up the explicit ones issued by the stores.
    """
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA synchronous = NORMAL;")
    conn.execute("PRAGMA temp_store = MEMORY;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")


def apply_cloud_safe_pragmas(conn: sqlite3.Connection, *, busy_timeout_ms: int = 10_000) -> None:
    """
    Apply pragmas for network or synced folders (reliable, slower).

    DELETE journal mode keeps the database a single file (no -wal/-shm).
    """
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = DELETE;")
    conn.execute("PRAGMA synchronous = FULL;")
    conn.execute("PRAGMA temp_store = MEMORY;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")


def ensure_schema(
    conn: sqlite3.Connection,
    *,
    schema_version: int = SCHEMA_VERSION,
    now: str,
    app_version: str | None = None,
) -> None:
    """
    Ensure that all schema objects exist and seed metadata defaults.
    """

    conn.executescript(_BASE_DDL + _INDEX_DDL)
    set_user_version(conn, schema_version)

    existing = read_meta(conn)
    meta_values: dict[str, str] = {
        "format": "scenestore-sqlite",
        "schema_version": str(schema_version),
        "modified_utc": now,
    }
    if "created_utc" not in existing:
        meta_values["created_utc"] = now
    if app_version is not None:
        meta_values["app_version"] = str(app_version)

    write_meta(conn, meta_values)


def run_migrations(
    conn: sqlite3.Connection,
    start: int,
    target: int = SCHEMA_VERSION,
    *,
    now: str,
    app_version: str | None = None,
) -> None:
    """Execute schema migrations between ``start`` and ``target`` versions."""

    version = start
    while version < target:
        if version == 0:
            ensure_schema(conn, schema_version=target, now=now, app_version=app_version)
            version = target
        elif version == 1:
            log.info("Migrating schema from v1 to v2 (owner lookup indexes)")
            conn.executescript(_INDEX_DDL)
            version = 2
        else:
            raise RuntimeError(f"Unknown schema version {version}. Cannot migrate.")
    if start > target:
        raise RuntimeError(
            f"Database schema version {start} is newer than supported version {target}."
        )
    set_user_version(conn, target)
    write_meta(conn, {"schema_version": str(target), "modified_utc": now})


def get_user_version(conn: sqlite3.Connection) -> int:
    """Return the PRAGMA user_version value."""

    cur = conn.execute("PRAGMA user_version")
    row = cur.fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def set_user_version(conn: sqlite3.Connection, version: int) -> None:
    """Update the PRAGMA user_version value."""

    conn.execute(f"PRAGMA user_version = {int(version)}")


def read_meta(conn: sqlite3.Connection) -> dict[str, Any]:
    """Return all key/value entries from the meta table."""

    cur = conn.execute("SELECT key, value FROM meta")
    return {row[0]: row[1] for row in cur.fetchall()}


def write_meta(conn: sqlite3.Connection, values: Mapping[str, Any]) -> None:
    """Upsert values into the meta table."""

    if not values:
        return
    rows = [(str(key), str(value)) for key, value in values.items()]
    conn.executemany(
        "INSERT OR REPLACE INTO meta(key, value) VALUES(?, ?)",
        rows,
    )
