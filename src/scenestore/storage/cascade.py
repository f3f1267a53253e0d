"""
Explicit delete propagation, one function per owning entity.

Each function removes (or nulls out) every dependent row before the owning
row, inside the caller's unit of work, mirroring the schema's
``ON DELETE CASCADE`` / ``ON DELETE SET NULL`` declarations. Cancellation is
checked between dependent batches; raising from a checkpoint rolls the whole
unit of work back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

from scenestore.storage.sqlite import accounts as _accounts
from scenestore.storage.sqlite import media as _media
from scenestore.storage.sqlite import projects as _projects
from scenestore.storage.sqlite import scene_graph as _graph
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = [
    "CascadeSummary",
    "purge_scene",
    "purge_project",
    "purge_media",
    "purge_user",
]


@dataclass
class CascadeSummary:
    """Row counts removed (or nulled) by one cascading delete."""

    users: int = 0
    sessions: int = 0
    media: int = 0
    sprite_refs_cleared: int = 0
    projects: int = 0
    scenes: int = 0
    layers: int = 0
    sprites: int = 0

    def merge(self, other: CascadeSummary) -> CascadeSummary:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
        return self

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def purge_scene(uow: UnitOfWork, scene_id: int) -> CascadeSummary:
    """Delete a scene's sprites, then its layers, then the scene row."""

    uow.require_write()
    conn = uow.conn
    summary = CascadeSummary()
    summary.sprites = _graph.delete_sprites_for_scene(conn, scene_id)
    summary.layers = _graph.delete_layers_for_scene(conn, scene_id)
    summary.scenes = _projects.delete_scene_row(conn, scene_id)
    return summary


def purge_project(uow: UnitOfWork, project_id: int) -> CascadeSummary:
    """Delete every scene of a project (checking cancellation), then the project."""

    uow.require_write()
    summary = CascadeSummary()
    for scene_id in _projects.scene_ids_for_project(uow.conn, project_id):
        uow.checkpoint()
        summary.merge(purge_scene(uow, scene_id))
    uow.checkpoint()
    summary.projects = _projects.delete_project_row(uow.conn, project_id)
    return summary


def purge_media(uow: UnitOfWork, media_key: str) -> CascadeSummary:
    """Clear sprite references to ``media_key`` and delete the media row."""

    uow.require_write()
    summary = CascadeSummary()
    summary.sprite_refs_cleared = _media.clear_sprite_media_refs(uow.conn, media_key)
    summary.media = _media.delete_media_row(uow.conn, media_key)
    return summary


def purge_user(uow: UnitOfWork, user_id: int) -> CascadeSummary:
    """Delete projects, media and sessions owned by a user, then the user."""

    uow.require_write()
    summary = CascadeSummary()
    for project_id in _projects.project_ids_for_user(uow.conn, user_id):
        summary.merge(purge_project(uow, project_id))
    for media_key in _media.media_keys_for_user(uow.conn, user_id):
        uow.checkpoint()
        summary.merge(purge_media(uow, media_key))
    uow.checkpoint()
    summary.sessions = _accounts.delete_sessions_for_user(uow.conn, user_id)
    summary.users = _accounts.delete_user_row(uow.conn, user_id)
    log.debug("Purged user id=%s: %s", user_id, summary.as_dict())
    return summary
