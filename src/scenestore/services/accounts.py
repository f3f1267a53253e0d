# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""User accounts: registration, credential checks and recovery."""

from __future__ import annotations

import logging

from scenestore.core import credentials as _credentials
from scenestore.core.cancellation import CancellationToken
from scenestore.core.errors import Conflict, InvalidArgument, NotFound, Unauthorized
from scenestore.core.models import User
from scenestore.services.base import StoreComponent
from scenestore.services.types import Clock, PasswordHasher, SaltingHasher
from scenestore.storage import cascade as _cascade
from scenestore.storage.database import Database
from scenestore.storage.sqlite import accounts as _accounts
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["AccountStore", "require_user"]


def require_user(uow: UnitOfWork, user: User | int) -> User:
    """Reload ``user`` inside ``uow``; :class:`NotFound` if it was deleted."""

    user_id = user.id if isinstance(user, User) else int(user)
    row = _accounts.get_user_by_id(uow.conn, user_id)
    if row is None:
        raise NotFound(f"user {user_id} does not exist", user_id=user_id)
    return User.from_row(row)


class AccountStore(StoreComponent):
    """Users, credentials and recovery keys."""

    def __init__(
        self,
        db: Database,
        *,
        hasher: PasswordHasher | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(db, clock=clock)
        self.hasher: PasswordHasher = hasher or _credentials.BcryptHasher()

    def _new_salt(self) -> str:
        if isinstance(self.hasher, SaltingHasher):
            return self.hasher.gensalt()
        return _credentials.generate_salt()

    def _digest(self, password: str, salt: str) -> str:
        try:
            digest = self.hasher(password, salt)
        except ValueError as exc:
            raise InvalidArgument(f"password hasher rejected input: {exc}") from exc
        if not isinstance(digest, str) or not digest:
            raise InvalidArgument("password hasher must return a non-empty string")
        return digest

    @staticmethod
    def _check_username(username: str) -> str:
        if not isinstance(username, str) or not username.strip():
            raise InvalidArgument("username must be a non-empty string")
        return username

    @staticmethod
    def _check_password(password: str, field: str = "password") -> str:
        if not isinstance(password, str) or not password:
            raise InvalidArgument(f"{field} must be a non-empty string")
        return password

    # ------------------------------------------------------------------ #
    # Operations                                                         #
    # ------------------------------------------------------------------ #
    def create_user(self, username: str, password: str, *, uow: UnitOfWork | None = None) -> User:
        """Register ``username``; :class:`Conflict` if it is taken."""

        self._check_username(username)
        self._check_password(password)
        # Hashing runs before the write lock is taken
        salt = self._new_salt()
        hashed = self._digest(password, salt)
        recovery_key = _credentials.generate_recovery_key()

        with self._work(uow) as work:
            if _accounts.get_user_by_username(work.conn, username) is not None:
                raise Conflict(f"username {username!r} is already taken", username=username)
            user_id = _accounts.insert_user(
                work.conn,
                username=username,
                salt=salt,
                hashed_password=hashed,
                recovery_key=recovery_key,
                created_time=self._now(),
            )
            user = User.from_row(_accounts.get_user_by_id(work.conn, user_id))
        log.info("Created user id=%s username=%s", user.id, username)
        return user

    def get_user(self, user_id: int, *, uow: UnitOfWork | None = None) -> User:
        with self._work(uow, write=False) as work:
            return require_user(work, user_id)

    def get_user_by_username(self, username: str, *, uow: UnitOfWork | None = None) -> User:
        with self._work(uow, write=False) as work:
            row = _accounts.get_user_by_username(work.conn, username)
        if row is None:
            raise NotFound(f"no user named {username!r}", username=username)
        return User.from_row(row)

    def verify_credentials(self, username: str, password: str) -> User:
        """Return the user when ``password`` matches; raises otherwise."""

        user = self.get_user_by_username(username)
        if not _credentials.digests_match(user.hashed_password, self._digest(password, user.salt)):
            log.info("Rejected credentials for username=%s", username)
            raise Unauthorized("invalid username or password")
        return user

    def reset_via_recovery_key(
        self,
        username: str,
        recovery_key: str,
        new_password: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> User:
        """
        Replace the password using the single-use recovery key.

        Rotates salt and recovery key, ends every active session of the user,
        and returns the refreshed user carrying the new recovery key.
        """

        self._check_password(new_password, "new_password")
        salt = self._new_salt()
        hashed = self._digest(new_password, salt)
        new_recovery_key = _credentials.generate_recovery_key()

        with self._work(uow) as work:
            row = _accounts.get_user_by_username(work.conn, username)
            if row is None:
                raise NotFound(f"no user named {username!r}", username=username)
            user = User.from_row(row)
            if not isinstance(recovery_key, str) or not _credentials.digests_match(
                user.recovery_key, recovery_key
            ):
                log.info("Rejected recovery key for username=%s", username)
                raise Unauthorized("invalid recovery key")
            _accounts.update_credentials(
                work.conn,
                user.id,
                salt=salt,
                hashed_password=hashed,
                recovery_key=new_recovery_key,
            )
            ended = _accounts.end_sessions_for_user(work.conn, user.id, self._now())
            refreshed = User.from_row(_accounts.get_user_by_id(work.conn, user.id))
        log.info("Reset password for user id=%s (ended %d session(s))", user.id, ended)
        return refreshed

    def change_password(
        self,
        user: User,
        old_password: str,
        new_password: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> User:
        """Change the password after re-checking the old one; keeps the recovery key."""

        self._check_password(new_password, "new_password")
        salt = self._new_salt()
        hashed = self._digest(new_password, salt)

        with self._work(uow) as work:
            current = require_user(work, user)
            if not _credentials.digests_match(
                current.hashed_password, self._digest(old_password, current.salt)
            ):
                raise Unauthorized("invalid username or password")
            _accounts.update_credentials(
                work.conn,
                current.id,
                salt=salt,
                hashed_password=hashed,
                recovery_key=current.recovery_key,
            )
            _accounts.end_sessions_for_user(work.conn, current.id, self._now())
            refreshed = User.from_row(_accounts.get_user_by_id(work.conn, current.id))
        log.info("Changed password for user id=%s", current.id)
        return refreshed

    def delete_user(
        self,
        user: User,
        *,
        uow: UnitOfWork | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> _cascade.CascadeSummary:
        """Remove the user with its sessions, media, projects and scene graphs."""

        with self._work(uow, cancel_token=cancel_token) as work:
            current = require_user(work, user)
            summary = _cascade.purge_user(work, current.id)
        log.info("Deleted user id=%s: %s", current.id, summary.as_dict())
        return summary
