"""
Utility helpers for the SQLite-backed stores.

Connection opening, the transaction context manager and the translation of
SQLite lock errors into the domain taxonomy.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from scenestore.core.errors import LockTimeout

__all__ = ["open_db", "transaction", "is_lock_error"]


# ---- Connections ------------------------------------------------------------


def open_db(path: str) -> sqlite3.Connection:
    """
    Open (creating if needed) a SQLite database in autocommit mode with
    ``sqlite3.Row`` rows.

    Transactions are managed explicitly via :func:`transaction`.
    """
    if path == ":memory:":
        conn = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
    else:
        uri = f"file:{path}?mode=rwc"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


# ---- Transactions -----------------------------------------------------------


def is_lock_error(exc: BaseException) -> bool:
    """Return True for SQLite "database is locked/busy" failures."""

    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return "locked" in message or "busy" in message


@contextmanager
def transaction(
    conn: sqlite3.Connection,
    *,
    begin: str = "BEGIN IMMEDIATE",
) -> Iterator[sqlite3.Connection]:
    """
    Transaction wrapper that commits on success and rolls back on error.
    Uses BEGIN IMMEDIATE by default so writers serialise at BEGIN rather than
    failing mid-transaction.
    """

    try:
        conn.execute(begin)
    except sqlite3.OperationalError as exc:
        if is_lock_error(exc):
            raise LockTimeout(f"database busy: {exc}") from exc
        raise
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException as exc:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        if is_lock_error(exc):
            raise LockTimeout(f"database busy: {exc}") from exc
        raise
