"""Media registry helpers (metadata only; payloads live outside the database)."""

from __future__ import annotations

import hashlib
import sqlite3
from pathlib import Path

__all__ = [
    "DEFAULT_STREAM_READ_BYTES",
    "hash_file",
    "hash_bytes",
    "insert_media",
    "get_media_by_key",
    "find_media_by_hash",
    "find_media_by_path",
    "media_key_exists",
    "list_media",
    "media_keys_for_user",
    "clear_sprite_media_refs",
    "delete_media_row",
]

DEFAULT_STREAM_READ_BYTES = 512 * 1024  # 512 KiB chunks for hashing

_MEDIA_COLUMNS = "id, media_key, user, relative_path, title, hashed_value"


def hash_file(path: Path, *, read_size: int = DEFAULT_STREAM_READ_BYTES) -> str:
    """Return the SHA-256 hex digest for ``path``."""

    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(read_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest for ``data``."""

    return hashlib.sha256(data).hexdigest()


def insert_media(
    conn: sqlite3.Connection,
    *,
    media_key: str,
    user_id: int,
    relative_path: str,
    title: str,
    hashed_value: str,
) -> int:
    """Insert a new media metadata row and return its identifier."""

    cur = conn.execute(
        """
        INSERT INTO media(media_key, user, relative_path, title, hashed_value)
        VALUES (?, ?, ?, ?, ?)
        """,
        (media_key, int(user_id), relative_path, title, hashed_value),
    )
    rowid = cur.lastrowid
    if rowid is None:
        raise RuntimeError("Failed to insert media metadata row")
    return int(rowid)


def get_media_by_key(conn: sqlite3.Connection, media_key: str) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media WHERE media_key = ?", (media_key,)
    ).fetchone()


def find_media_by_hash(
    conn: sqlite3.Connection, user_id: int, hashed_value: str
) -> sqlite3.Row | None:
    """Return the media row for ``(user, hashed_value)`` when present."""

    return conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media WHERE user = ? AND hashed_value = ?",
        (int(user_id), hashed_value),
    ).fetchone()


def find_media_by_path(conn: sqlite3.Connection, relative_path: str) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media WHERE relative_path = ?", (relative_path,)
    ).fetchone()


def media_key_exists(conn: sqlite3.Connection, media_key: str) -> bool:
    row = conn.execute("SELECT 1 FROM media WHERE media_key = ?", (media_key,)).fetchone()
    return row is not None


def list_media(conn: sqlite3.Connection, user_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media WHERE user = ? ORDER BY id ASC",
        (int(user_id),),
    ).fetchall()


def media_keys_for_user(conn: sqlite3.Connection, user_id: int) -> list[str]:
    rows = conn.execute(
        "SELECT media_key FROM media WHERE user = ? ORDER BY id ASC", (int(user_id),)
    ).fetchall()
    return [str(row[0]) for row in rows]


def clear_sprite_media_refs(conn: sqlite3.Connection, media_key: str) -> int:
    """Null out ``media_key`` on every sprite that references it."""

    cur = conn.execute(
        "UPDATE sprites SET media_key = NULL WHERE media_key = ?", (media_key,)
    )
    return int(cur.rowcount)


def delete_media_row(conn: sqlite3.Connection, media_key: str) -> int:
    cur = conn.execute("DELETE FROM media WHERE media_key = ?", (media_key,))
    return int(cur.rowcount)
