# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Wiring of the five store components around one :class:`Database`."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from scenestore.core import config as _config
from scenestore.core.credentials import BcryptHasher
from scenestore.services.accounts import AccountStore
from scenestore.services.base import system_clock
from scenestore.services.media import MediaLibrary
from scenestore.services.projects import ProjectStore
from scenestore.services.scene_graph import SceneGraphStore
from scenestore.services.sessions import SessionManager
from scenestore.services.types import Clock, PasswordHasher, ValidationIssue
from scenestore.storage.database import Database

log = logging.getLogger(__name__)

__all__ = ["SceneStore", "open_store"]


@dataclass
class SceneStore:
    """Bundle of components sharing one database, lock and clock."""

    db: Database
    accounts: AccountStore
    sessions: SessionManager
    media: MediaLibrary
    projects: ProjectStore
    scene_graph: SceneGraphStore

    def unit_of_work(self, **kwargs: Any):
        """Shortcut for :meth:`Database.unit_of_work` to compose operations."""

        return self.db.unit_of_work(**kwargs)

    def verify(self) -> list[ValidationIssue]:
        """Run the integrity sweep; an empty list means the database is consistent."""

        return self.db.verify()  # type: ignore[return-value]

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> SceneStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_store(
    path: str | os.PathLike[str] | None = None,
    *,
    hasher: PasswordHasher | None = None,
    clock: Clock | None = None,
    settings: _config.Settings | None = None,
    hash_rounds: int | None = None,
    lock_timeout: float | None = None,
    journal_mode: str | None = None,
    app_version: str | None = None,
) -> SceneStore:
    """
    Open (creating if needed) the database at ``path`` and wire the stores.

    Values not passed explicitly come from ``settings`` or, failing that,
    from :func:`scenestore.core.config.load_settings`.
    """

    base = settings or _config.load_settings()
    effective = base.with_overrides(
        db_path=os.fspath(path) if path is not None else None,
        hash_rounds=hash_rounds,
        lock_timeout=lock_timeout,
        journal_mode=journal_mode,
    )
    db = Database(
        effective.db_path,
        lock_timeout=effective.lock_timeout,
        busy_timeout_ms=effective.busy_timeout_ms,
        journal_mode=effective.journal_mode,
        app_version=app_version,
    )
    clock = clock or system_clock
    accounts = AccountStore(
        db, hasher=hasher or BcryptHasher(effective.hash_rounds), clock=clock
    )
    store = SceneStore(
        db=db,
        accounts=accounts,
        sessions=SessionManager(db, accounts, clock=clock),
        media=MediaLibrary(db, clock=clock),
        projects=ProjectStore(db, clock=clock),
        scene_graph=SceneGraphStore(db, clock=clock),
    )
    log.debug("Opened store path=%s", effective.db_path)
    return store
