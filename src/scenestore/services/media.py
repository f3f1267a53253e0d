# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Media library: per-user registry of content-addressed assets."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PurePosixPath

from scenestore.core import credentials as _credentials
from scenestore.core.errors import Conflict, InvalidArgument, NotFound
from scenestore.core.models import MediaAsset, User
from scenestore.services.accounts import require_user
from scenestore.services.base import StoreComponent
from scenestore.storage import cascade as _cascade
from scenestore.storage.sqlite import media as _media
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["MediaLibrary", "normalize_relative_path", "normalize_content_hash"]

MAX_KEY_ATTEMPTS = 8
_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def normalize_relative_path(relative_path: str) -> str:
    """Return ``relative_path`` with forward slashes; reject escaping paths."""

    if not isinstance(relative_path, str):
        raise InvalidArgument("relative_path must be a string")
    cleaned = relative_path.strip().replace("\\", "/")
    if not cleaned:
        raise InvalidArgument("relative_path must not be empty")
    if cleaned.startswith("/") or re.match(r"^[A-Za-z]:/", cleaned):
        raise InvalidArgument("relative_path must be relative", relative_path=relative_path)
    parts = [part for part in PurePosixPath(cleaned).parts if part not in ("", ".")]
    if not parts or ".." in parts:
        raise InvalidArgument(
            "relative_path must stay inside the media root", relative_path=relative_path
        )
    return "/".join(parts)


def normalize_content_hash(content_hash: str) -> str:
    if not isinstance(content_hash, str):
        raise InvalidArgument("content_hash must be a string")
    value = content_hash.strip().lower()
    if not _HEX_DIGEST.match(value):
        raise InvalidArgument("content_hash must be 64 hex characters")
    return value


class MediaLibrary(StoreComponent):
    """Registers, looks up and deletes media metadata rows."""

    hash_file = staticmethod(_media.hash_file)
    hash_bytes = staticmethod(_media.hash_bytes)

    def register_media(
        self,
        user: User,
        relative_path: str,
        title: str,
        content_hash: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> MediaAsset:
        """
        Register an asset for ``user``.

        Registering the same content twice for one user returns the existing
        asset unchanged. A path already used by any asset raises
        :class:`Conflict`.
        """

        path = normalize_relative_path(relative_path)
        digest = normalize_content_hash(content_hash)
        if not isinstance(title, str) or not title.strip():
            raise InvalidArgument("title must be a non-empty string")

        with self._work(uow) as work:
            owner = require_user(work, user)
            existing = _media.find_media_by_hash(work.conn, owner.id, digest)
            if existing is not None:
                log.debug("Media dedup hit user id=%s key=%s", owner.id, existing["media_key"])
                return MediaAsset.from_row(existing)
            if _media.find_media_by_path(work.conn, path) is not None:
                raise Conflict(f"media path {path!r} is already registered", relative_path=path)
            for _ in range(MAX_KEY_ATTEMPTS):
                media_key = _credentials.generate_opaque_key()
                if not _media.media_key_exists(work.conn, media_key):
                    break
            else:
                raise Conflict("could not allocate a unique media key")
            _media.insert_media(
                work.conn,
                media_key=media_key,
                user_id=owner.id,
                relative_path=path,
                title=title,
                hashed_value=digest,
            )
            asset = MediaAsset.from_row(_media.get_media_by_key(work.conn, media_key))
        log.info("Registered media key=%s for user id=%s path=%s", asset.media_key, owner.id, path)
        return asset

    def register_file(
        self,
        user: User,
        root: str | os.PathLike[str],
        relative_path: str,
        title: str | None = None,
        *,
        uow: UnitOfWork | None = None,
    ) -> MediaAsset:
        """Hash the file at ``root / relative_path`` and register it."""

        path = normalize_relative_path(relative_path)
        source = Path(root) / path
        if not source.is_file():
            raise NotFound(f"media file {source} does not exist", path=str(source))
        digest = self.hash_file(source)
        return self.register_media(user, path, title or source.stem, digest, uow=uow)

    def get_by_key(self, media_key: str, *, uow: UnitOfWork | None = None) -> MediaAsset:
        with self._work(uow, write=False) as work:
            row = _media.get_media_by_key(work.conn, media_key)
        if row is None:
            raise NotFound(f"media {media_key!r} does not exist", media_key=media_key)
        return MediaAsset.from_row(row)

    def find_by_hash(
        self, user: User, content_hash: str, *, uow: UnitOfWork | None = None
    ) -> MediaAsset | None:
        digest = normalize_content_hash(content_hash)
        with self._work(uow, write=False) as work:
            owner = require_user(work, user)
            row = _media.find_media_by_hash(work.conn, owner.id, digest)
        return MediaAsset.from_row(row) if row is not None else None

    def list_media(self, user: User, *, uow: UnitOfWork | None = None) -> list[MediaAsset]:
        with self._work(uow, write=False) as work:
            owner = require_user(work, user)
            rows = _media.list_media(work.conn, owner.id)
        return [MediaAsset.from_row(row) for row in rows]

    def delete_media(
        self,
        media_key: str,
        *,
        user: User | None = None,
        uow: UnitOfWork | None = None,
    ) -> int:
        """
        Delete the asset and null out every sprite reference to it.

        Returns the number of sprites whose ``media_key`` was cleared. When
        ``user`` is given, media owned by someone else is reported as missing.
        """

        with self._work(uow) as work:
            row = _media.get_media_by_key(work.conn, media_key)
            if row is None or (user is not None and int(row["user"]) != user.id):
                raise NotFound(f"media {media_key!r} does not exist", media_key=media_key)
            summary = _cascade.purge_media(work, media_key)
        log.info(
            "Deleted media key=%s (cleared %d sprite reference(s))",
            media_key,
            summary.sprite_refs_cleared,
        )
        return summary.sprite_refs_cleared
