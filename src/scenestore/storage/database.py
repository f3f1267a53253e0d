"""Shared SQLite connection with a serialised unit-of-work entry point.

The database owns a single ``sqlite3.Connection`` (``check_same_thread=False``)
and a re-entrant lock. Every store operation runs inside
:meth:`Database.unit_of_work`, which provides two guarantees:

* Only one transaction runs at a time per process, so no reader observes a
  half-applied cascade.
* Lock waits are bounded; exceeding the timeout raises :class:`LockTimeout`
  instead of blocking forever.

Usage:
    db = Database("scenes.db")
    with db.unit_of_work() as uow:
        uow.conn.execute("INSERT ...")
    db.close()
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from scenestore.core.cancellation import CancellationToken
from scenestore.core.errors import Conflict, LockTimeout
from scenestore.storage import validation as _validation
from scenestore.storage.sqlite import schema as _schema
from scenestore.storage.sqlite.utils import open_db, transaction
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["Database", "DatabaseClosed"]


class DatabaseClosed(RuntimeError):
    """Raised when a unit of work is requested after the database is closed."""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Owner of the connection, the schema and the write lock."""

    def __init__(
        self,
        path: str | os.PathLike[str] = ":memory:",
        *,
        lock_timeout: float = 10.0,
        busy_timeout_ms: int = 10_000,
        journal_mode: str = "WAL",
        app_version: str | None = None,
    ) -> None:
        raw = os.fspath(path)
        if raw != ":memory:":
            Path(raw).parent.mkdir(parents=True, exist_ok=True)
        self.path = raw
        self.lock_timeout = float(lock_timeout)
        self._lock = threading.RLock()
        self._local = threading.local()
        self._closed = False

        self.conn = open_db(raw)
        pragma_fn = (
            _schema.apply_cloud_safe_pragmas
            if str(journal_mode).upper() == "DELETE"
            else _schema.apply_default_pragmas
        )
        try:
            pragma_fn(self.conn, busy_timeout_ms=busy_timeout_ms)
            self._prepare_schema(app_version)
        except Exception:
            self.conn.close()
            raise
        log.debug("Opened database path=%s journal=%s", raw, journal_mode)

    def _prepare_schema(self, app_version: str | None) -> None:
        with self._lock:
            version = _schema.get_user_version(self.conn)
            if version == 0:
                _schema.ensure_schema(self.conn, now=_utc_now(), app_version=app_version)
            elif version != _schema.SCHEMA_VERSION:
                _schema.run_migrations(
                    self.conn,
                    version,
                    _schema.SCHEMA_VERSION,
                    now=_utc_now(),
                    app_version=app_version,
                )

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    @contextmanager
    def unit_of_work(
        self,
        *,
        write: bool = True,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> Iterator[UnitOfWork]:
        """
        Open (or join) a transaction and yield its :class:`UnitOfWork`.

        Calls nested on the same thread join the active unit of work, so a
        store operation invoked from inside another one shares its
        transaction. ``sqlite3.IntegrityError`` escaping the block is
        surfaced as :class:`Conflict` after the rollback.
        """

        active: UnitOfWork | None = getattr(self._local, "uow", None)
        if active is not None:
            if write:
                active.require_write()
            active.add_token(cancel_token)
            active.checkpoint()
            yield active
            return

        if self._closed:
            raise DatabaseClosed("Database is closed")

        wait = self.lock_timeout if timeout is None else float(timeout)
        if not self._lock.acquire(timeout=wait):
            log.warning("Write lock busy for %.1fs path=%s", wait, self.path)
            raise LockTimeout(f"could not acquire database lock within {wait:g}s")
        try:
            tokens = [cancel_token] if cancel_token is not None else []
            uow = UnitOfWork(self.conn, write=write, cancel_tokens=tokens)
            self._local.uow = uow
            try:
                with transaction(self.conn, begin="BEGIN IMMEDIATE" if write else "BEGIN"):
                    uow.checkpoint()
                    yield uow
            except sqlite3.IntegrityError as exc:
                log.debug("Integrity error rolled back: %s", exc)
                raise Conflict(f"constraint violated: {exc}") from exc
            finally:
                self._local.uow = None
        finally:
            self._lock.release()

    def verify(self) -> list[dict[str, Any]]:
        """Run the integrity sweep and return any issues found."""

        with self.unit_of_work(write=False) as uow:
            return _validation.quick_validate(uow.conn)

    def read_meta(self) -> dict[str, Any]:
        with self.unit_of_work(write=False) as uow:
            return _schema.read_meta(uow.conn)

    @property
    def schema_version(self) -> int:
        with self._lock:
            return _schema.get_user_version(self.conn)

    def close(self) -> None:
        """Close the connection; later units of work raise :class:`DatabaseClosed`."""

        if self._closed:
            return
        with self._lock:
            self._closed = True
            self.conn.close()
        log.debug("Closed database path=%s", self.path)

    # ------------------------------------------------------------------ #
    # Context manager helpers                                            #
    # ------------------------------------------------------------------ #
    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
