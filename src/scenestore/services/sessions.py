# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Login sessions: ACTIVE -> ENDED, one way."""

from __future__ import annotations

import logging

from scenestore.core import credentials as _credentials
from scenestore.core.errors import AlreadyEnded, Conflict, NotFound, Unauthorized
from scenestore.core.models import Session, User
from scenestore.services.accounts import AccountStore, require_user
from scenestore.services.base import StoreComponent
from scenestore.services.types import Clock
from scenestore.storage.database import Database
from scenestore.storage.sqlite import accounts as _accounts
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["SessionManager"]

MAX_KEY_ATTEMPTS = 8


def _key_hint(session_key: str) -> str:
    return f"{session_key[:6]}…" if isinstance(session_key, str) else "?"


class SessionManager(StoreComponent):
    """Issues, resolves and ends bearer-token sessions."""

    def __init__(
        self,
        db: Database,
        accounts: AccountStore,
        *,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(db, clock=clock)
        self.accounts = accounts

    def start_session(self, user: User, *, uow: UnitOfWork | None = None) -> Session:
        """Open an active session for ``user`` with a fresh random key."""

        with self._work(uow) as work:
            current = require_user(work, user)
            for _ in range(MAX_KEY_ATTEMPTS):
                session_key = _credentials.generate_session_key()
                if not _accounts.session_key_exists(work.conn, session_key):
                    break
            else:
                raise Conflict("could not allocate a unique session key")
            session_id = _accounts.insert_session(
                work.conn,
                user_id=current.id,
                session_key=session_key,
                start_time=self._now(),
            )
            session = Session.from_row(_accounts.get_session(work.conn, session_key))
        log.info("Started session id=%s for user id=%s", session_id, current.id)
        return session

    def login(self, username: str, password: str) -> Session:
        """Verify credentials and start a session in one call."""

        user = self.accounts.verify_credentials(username, password)
        return self.start_session(user)

    def get_session(self, session_key: str, *, uow: UnitOfWork | None = None) -> Session:
        with self._work(uow, write=False) as work:
            row = _accounts.get_session(work.conn, session_key)
        if row is None:
            raise NotFound("session does not exist")
        return Session.from_row(row)

    def end_session(self, session_key: str, *, uow: UnitOfWork | None = None) -> Session:
        """End an active session; a second call raises :class:`AlreadyEnded`."""

        with self._work(uow) as work:
            row = _accounts.get_session(work.conn, session_key)
            if row is None:
                raise NotFound("session does not exist")
            session = Session.from_row(row)
            if not session.active:
                raise AlreadyEnded("session already ended", end_time=session.end_time)
            _accounts.end_session_row(work.conn, session.id, self._now())
            ended = Session.from_row(_accounts.get_session(work.conn, session_key))
        log.info("Ended session id=%s key=%s", ended.id, _key_hint(session_key))
        return ended

    def resolve_session(self, session_key: str, *, uow: UnitOfWork | None = None) -> User:
        """Return the user behind an active session; :class:`Unauthorized` otherwise."""

        with self._work(uow, write=False) as work:
            row = _accounts.get_session(work.conn, session_key) if session_key else None
            if row is None or not bool(row["active"]):
                log.debug("Rejected session key=%s", _key_hint(session_key))
                raise Unauthorized("invalid or expired session")
            user_row = _accounts.get_user_by_id(work.conn, int(row["user"]))
        if user_row is None:
            raise Unauthorized("invalid or expired session")
        return User.from_row(user_row)

    def list_sessions(
        self, user: User, *, active_only: bool = False, uow: UnitOfWork | None = None
    ) -> list[Session]:
        with self._work(uow, write=False) as work:
            current = require_user(work, user)
            rows = _accounts.list_sessions(work.conn, current.id, active_only=active_only)
        return [Session.from_row(row) for row in rows]

    def end_all_sessions(self, user: User, *, uow: UnitOfWork | None = None) -> int:
        """End every active session of ``user``; returns how many were ended."""

        with self._work(uow) as work:
            current = require_user(work, user)
            count = _accounts.end_sessions_for_user(work.conn, current.id, self._now())
        log.info("Ended %d session(s) for user id=%s", count, current.id)
        return count
