"""Database-wide integrity checks."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

log = logging.getLogger(__name__)

__all__ = ["quick_validate"]


def _dangling_sprite_layers(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT s.scene, s.id, s.layer
          FROM sprites AS s
          LEFT JOIN layers AS l ON l.scene = s.scene AND l.id = s.layer
         WHERE l.id IS NULL
         ORDER BY s.scene, s.id
        """
    ).fetchall()
    return [
        {
            "kind": "dangling_sprite_layer",
            "scene_id": int(row[0]),
            "sprite_id": int(row[1]),
            "layer_id": int(row[2]),
        }
        for row in rows
    ]


def _dangling_sprite_media(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT s.scene, s.id, s.media_key
          FROM sprites AS s
          LEFT JOIN media AS m ON m.media_key = s.media_key
         WHERE s.media_key IS NOT NULL AND m.id IS NULL
        """
    ).fetchall()
    return [
        {
            "kind": "dangling_sprite_media",
            "scene_id": int(row[0]),
            "sprite_id": int(row[1]),
            "media_key": row[2],
        }
        for row in rows
    ]


def _inconsistent_sessions(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT id, active, end_time
          FROM user_sessions
         WHERE (active = 1 AND end_time IS NOT NULL)
            OR (active = 0 AND end_time IS NULL)
        """
    ).fetchall()
    return [
        {
            "kind": "inconsistent_session_state",
            "session_id": int(row[0]),
            "active": bool(row[1]),
            "end_time": row[2],
        }
        for row in rows
    ]


def _bad_canvas_sizes(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute("SELECT id, w, h FROM scenes WHERE w <= 0 OR h <= 0").fetchall()
    return [
        {"kind": "non_positive_canvas", "scene_id": int(row[0]), "w": row[1], "h": row[2]}
        for row in rows
    ]


def _duplicate_project_keys(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT user, project_key, COUNT(*)
          FROM projects
         GROUP BY user, project_key
        HAVING COUNT(*) > 1
        """
    ).fetchall()
    return [
        {
            "kind": "duplicate_project_key",
            "user_id": int(row[0]),
            "project_key": row[1],
            "count": int(row[2]),
        }
        for row in rows
    ]


def _foreign_key_violations(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute("PRAGMA foreign_key_check").fetchall()
    return [
        {
            "kind": "foreign_key_violation",
            "table": row[0],
            "rowid": row[1],
            "parent": row[2],
        }
        for row in rows
    ]


def quick_validate(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """
    Sweep the database for rows that break the store invariants.

    Returns a list of issue dicts (empty when the database is consistent).
    The stores never produce these states; the sweep catches databases that
    were edited by other tools.
    """

    issues: list[dict[str, Any]] = []
    issues.extend(_dangling_sprite_layers(conn))
    issues.extend(_dangling_sprite_media(conn))
    issues.extend(_inconsistent_sessions(conn))
    issues.extend(_bad_canvas_sizes(conn))
    issues.extend(_duplicate_project_keys(conn))
    issues.extend(_foreign_key_violations(conn))
    if issues:
        log.warning("Integrity sweep found %d issue(s)", len(issues))
    else:
        log.debug("Integrity sweep clean")
    return issues
