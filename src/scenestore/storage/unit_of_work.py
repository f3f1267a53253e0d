"""Explicit transaction object handed to every store operation."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from scenestore.core.cancellation import CancellationToken
from scenestore.core.errors import InvalidArgument

__all__ = ["UnitOfWork"]


class UnitOfWork:
    """
    One open SQLite transaction plus its cancellation tokens.

    Instances are created by :meth:`Database.unit_of_work`; the database
    commits or rolls back when the surrounding ``with`` block exits. Store
    operations accept ``uow=`` so several of them can share one transaction.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        write: bool,
        cancel_tokens: Iterable[CancellationToken] = (),
    ) -> None:
        self.conn = conn
        self.write = write
        self._tokens: list[CancellationToken] = list(cancel_tokens)

    def add_token(self, token: CancellationToken | None) -> None:
        if token is not None and token not in self._tokens:
            self._tokens.append(token)

    def checkpoint(self) -> None:
        """Raise :class:`OperationCancelled` if any attached token fired."""

        for token in self._tokens:
            token.raise_if_cancelled()

    def require_write(self) -> None:
        if not self.write:
            raise InvalidArgument("operation needs a write unit of work")

    def __repr__(self) -> str:
        mode = "write" if self.write else "read"
        return f"<UnitOfWork {mode} tokens={len(self._tokens)}>"
