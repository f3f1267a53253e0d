# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Projects and the scenes they contain."""

from __future__ import annotations

import logging

from scenestore.core import credentials as _credentials
from scenestore.core.cancellation import CancellationToken
from scenestore.core.errors import Conflict, InvalidArgument, NotFound
from scenestore.core.models import Project, Scene, User
from scenestore.services.accounts import require_user
from scenestore.services.base import StoreComponent
from scenestore.storage import cascade as _cascade
from scenestore.storage.sqlite import projects as _projects
from scenestore.storage.sqlite import scene_graph as _graph
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["ProjectStore", "DEFAULT_LAYERS", "require_project", "require_scene"]

MAX_KEY_ATTEMPTS = 8

# (id, title, z) of the starter layers a new scene can be seeded with
DEFAULT_LAYERS: tuple[tuple[int, str, int], ...] = (
    (1, "Foreground", 1),
    (2, "Scenery", -1),
    (3, "Background", -2),
)


def require_project(uow: UnitOfWork, project: Project | int) -> Project:
    project_id = project.id if isinstance(project, Project) else int(project)
    row = _projects.get_project_by_id(uow.conn, project_id)
    if row is None:
        raise NotFound(f"project {project_id} does not exist", project_id=project_id)
    return Project.from_row(row)


def require_scene(uow: UnitOfWork, scene: Scene | int) -> Scene:
    scene_id = scene.id if isinstance(scene, Scene) else int(scene)
    row = _projects.get_scene_by_id(uow.conn, scene_id)
    if row is None:
        raise NotFound(f"scene {scene_id} does not exist", scene_id=scene_id)
    return Scene.from_row(row)


def _check_dimension(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive integer", **{name: value})
    return value


class ProjectStore(StoreComponent):
    """Creates, lists and deletes projects and scenes."""

    # ---- Projects -----------------------------------------------------------
    def create_project(
        self, user: User, title: str | None = None, *, uow: UnitOfWork | None = None
    ) -> Project:
        with self._work(uow) as work:
            owner = require_user(work, user)
            for _ in range(MAX_KEY_ATTEMPTS):
                project_key = _credentials.generate_opaque_key()
                if not _projects.project_key_in_use(work.conn, owner.id, project_key):
                    break
            else:
                raise Conflict("could not allocate a unique project key")
            project_id = _projects.insert_project(
                work.conn, project_key=project_key, user_id=owner.id, title=title
            )
            project = Project.from_row(_projects.get_project_by_id(work.conn, project_id))
        log.info("Created project key=%s for user id=%s", project.project_key, owner.id)
        return project

    def get_project(
        self, user: User, project_key: str, *, uow: UnitOfWork | None = None
    ) -> Project:
        with self._work(uow, write=False) as work:
            owner = require_user(work, user)
            row = _projects.get_project_by_key(work.conn, owner.id, project_key)
        if row is None:
            raise NotFound(f"project {project_key!r} does not exist", project_key=project_key)
        return Project.from_row(row)

    def list_projects(self, user: User, *, uow: UnitOfWork | None = None) -> list[Project]:
        with self._work(uow, write=False) as work:
            owner = require_user(work, user)
            rows = _projects.list_projects(work.conn, owner.id)
        return [Project.from_row(row) for row in rows]

    def rename_project(
        self, project: Project, title: str | None, *, uow: UnitOfWork | None = None
    ) -> Project:
        with self._work(uow) as work:
            current = require_project(work, project)
            _projects.rename_project(work.conn, current.id, title)
            return Project.from_row(_projects.get_project_by_id(work.conn, current.id))

    def delete_project(
        self,
        project: Project,
        *,
        uow: UnitOfWork | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> _cascade.CascadeSummary:
        """Delete the project with all of its scenes, layers and sprites."""

        with self._work(uow, cancel_token=cancel_token) as work:
            current = require_project(work, project)
            summary = _cascade.purge_project(work, current.id)
        log.info("Deleted project key=%s: %s", current.project_key, summary.as_dict())
        return summary

    # ---- Scenes -------------------------------------------------------------
    def create_scene(
        self,
        project: Project,
        title: str | None,
        width: int,
        height: int,
        *,
        default_layers: bool = False,
        uow: UnitOfWork | None = None,
    ) -> Scene:
        """Create a scene; ``default_layers`` seeds the three starter layers."""

        _check_dimension("width", width)
        _check_dimension("height", height)
        with self._work(uow) as work:
            parent = require_project(work, project)
            for _ in range(MAX_KEY_ATTEMPTS):
                scene_key = _credentials.generate_opaque_key()
                if not _projects.scene_key_in_use(work.conn, parent.id, scene_key):
                    break
            else:
                raise Conflict("could not allocate a unique scene key")
            scene_id = _projects.insert_scene(
                work.conn,
                scene_key=scene_key,
                project_id=parent.id,
                title=title,
                width=width,
                height=height,
            )
            if default_layers:
                for layer_id, layer_title, z in DEFAULT_LAYERS:
                    _graph.upsert_layer(
                        work.conn,
                        layer_id=layer_id,
                        scene_id=scene_id,
                        title=layer_title,
                        z=z,
                        visible=True,
                        locked=False,
                    )
            scene = Scene.from_row(_projects.get_scene_by_id(work.conn, scene_id))
        log.info("Created scene key=%s in project id=%s", scene.scene_key, parent.id)
        return scene

    def get_scene(self, project: Project, scene_key: str, *, uow: UnitOfWork | None = None) -> Scene:
        with self._work(uow, write=False) as work:
            parent = require_project(work, project)
            row = _projects.get_scene_by_key(work.conn, parent.id, scene_key)
        if row is None:
            raise NotFound(f"scene {scene_key!r} does not exist", scene_key=scene_key)
        return Scene.from_row(row)

    def list_scenes(self, project: Project, *, uow: UnitOfWork | None = None) -> list[Scene]:
        with self._work(uow, write=False) as work:
            parent = require_project(work, project)
            rows = _projects.list_scenes(work.conn, parent.id)
        return [Scene.from_row(row) for row in rows]

    def update_scene(
        self,
        scene: Scene,
        *,
        title: str | None = None,
        width: int | None = None,
        height: int | None = None,
        uow: UnitOfWork | None = None,
    ) -> Scene:
        """Change title and/or canvas size; omitted fields keep their value."""

        if width is not None:
            _check_dimension("width", width)
        if height is not None:
            _check_dimension("height", height)
        with self._work(uow) as work:
            current = require_scene(work, scene)
            _projects.update_scene(
                work.conn,
                current.id,
                title=current.title if title is None else title,
                width=current.width if width is None else width,
                height=current.height if height is None else height,
            )
            return Scene.from_row(_projects.get_scene_by_id(work.conn, current.id))

    def delete_scene(
        self,
        scene: Scene,
        *,
        uow: UnitOfWork | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> _cascade.CascadeSummary:
        with self._work(uow, cancel_token=cancel_token) as work:
            current = require_scene(work, scene)
            summary = _cascade.purge_scene(work, current.id)
        log.info("Deleted scene key=%s: %s", current.scene_key, summary.as_dict())
        return summary
