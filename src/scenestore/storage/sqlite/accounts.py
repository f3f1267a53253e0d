"""User and session row helpers."""

from __future__ import annotations

import sqlite3

__all__ = [
    "insert_user",
    "get_user_by_id",
    "get_user_by_username",
    "update_credentials",
    "delete_user_row",
    "insert_session",
    "get_session",
    "session_key_exists",
    "end_session_row",
    "end_sessions_for_user",
    "list_sessions",
    "delete_sessions_for_user",
]

_USER_COLUMNS = "id, username, salt, hashed_password, recovery_key, created_time"
_SESSION_COLUMNS = "id, user, session_key, active, start_time, end_time"


# ---- Users ------------------------------------------------------------------


def insert_user(
    conn: sqlite3.Connection,
    *,
    username: str,
    salt: str,
    hashed_password: str,
    recovery_key: str,
    created_time: int,
) -> int:
    """Insert a user row and return its identifier."""

    cur = conn.execute(
        """
        INSERT INTO users(username, salt, hashed_password, recovery_key, created_time)
        VALUES (?, ?, ?, ?, ?)
        """,
        (username, salt, hashed_password, recovery_key, int(created_time)),
    )
    rowid = cur.lastrowid
    if rowid is None:
        raise RuntimeError("Failed to insert user row")
    return int(rowid)


def get_user_by_id(conn: sqlite3.Connection, user_id: int) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (int(user_id),)
    ).fetchone()


def get_user_by_username(conn: sqlite3.Connection, username: str) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?", (username,)
    ).fetchone()


def update_credentials(
    conn: sqlite3.Connection,
    user_id: int,
    *,
    salt: str,
    hashed_password: str,
    recovery_key: str,
) -> None:
    conn.execute(
        "UPDATE users SET salt = ?, hashed_password = ?, recovery_key = ? WHERE id = ?",
        (salt, hashed_password, recovery_key, int(user_id)),
    )


def delete_user_row(conn: sqlite3.Connection, user_id: int) -> int:
    cur = conn.execute("DELETE FROM users WHERE id = ?", (int(user_id),))
    return int(cur.rowcount)


# ---- Sessions ---------------------------------------------------------------


def insert_session(
    conn: sqlite3.Connection, *, user_id: int, session_key: str, start_time: int
) -> int:
    """Insert an active session row and return its identifier."""

    cur = conn.execute(
        """
        INSERT INTO user_sessions(user, session_key, active, start_time, end_time)
        VALUES (?, ?, 1, ?, NULL)
        """,
        (int(user_id), session_key, int(start_time)),
    )
    rowid = cur.lastrowid
    if rowid is None:
        raise RuntimeError("Failed to insert session row")
    return int(rowid)


def get_session(conn: sqlite3.Connection, session_key: str) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_SESSION_COLUMNS} FROM user_sessions WHERE session_key = ?",
        (session_key,),
    ).fetchone()


def session_key_exists(conn: sqlite3.Connection, session_key: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM user_sessions WHERE session_key = ?", (session_key,)
    ).fetchone()
    return row is not None


def end_session_row(conn: sqlite3.Connection, session_id: int, end_time: int) -> int:
    """Flip one active session to ended; returns the number of rows changed."""

    cur = conn.execute(
        "UPDATE user_sessions SET active = 0, end_time = ? WHERE id = ? AND active = 1",
        (int(end_time), int(session_id)),
    )
    return int(cur.rowcount)


def end_sessions_for_user(conn: sqlite3.Connection, user_id: int, end_time: int) -> int:
    cur = conn.execute(
        "UPDATE user_sessions SET active = 0, end_time = ? WHERE user = ? AND active = 1",
        (int(end_time), int(user_id)),
    )
    return int(cur.rowcount)


def list_sessions(
    conn: sqlite3.Connection, user_id: int, *, active_only: bool = False
) -> list[sqlite3.Row]:
    query = f"SELECT {_SESSION_COLUMNS} FROM user_sessions WHERE user = ?"
    if active_only:
        query += " AND active = 1"
    query += " ORDER BY start_time ASC, id ASC"
    return conn.execute(query, (int(user_id),)).fetchall()


def delete_sessions_for_user(conn: sqlite3.Connection, user_id: int) -> int:
    cur = conn.execute("DELETE FROM user_sessions WHERE user = ?", (int(user_id),))
    return int(cur.rowcount)
