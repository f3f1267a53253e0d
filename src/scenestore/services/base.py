"""Shared plumbing for the store components."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from scenestore.core.cancellation import CancellationToken
from scenestore.services.types import Clock
from scenestore.storage.database import Database
from scenestore.storage.unit_of_work import UnitOfWork

__all__ = ["StoreComponent", "system_clock"]


def system_clock() -> int:
    return int(time.time())


class StoreComponent:
    """Base for stores that run every operation inside a unit of work."""

    def __init__(self, db: Database, *, clock: Clock | None = None) -> None:
        self.db = db
        self._clock: Clock = clock or system_clock

    def _now(self) -> int:
        return int(self._clock())

    @contextmanager
    def _work(
        self,
        uow: UnitOfWork | None = None,
        *,
        write: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[UnitOfWork]:
        """Use the caller's unit of work when given, otherwise open one."""

        if uow is not None:
            if write:
                uow.require_write()
            uow.add_token(cancel_token)
            uow.checkpoint()
            yield uow
            return
        with self.db.unit_of_work(write=write, cancel_token=cancel_token) as own:
            yield own
