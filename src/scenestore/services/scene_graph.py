# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Layers and sprites of a scene, plus paint-order queries over them.

Layers paint bottom to top by ascending ``z``; inside a layer sprites paint
by ascending ``z`` and then by id. Hit testing walks the same order in
reverse and ignores hidden or locked layers. Listing and paint-order reads
of a deleted scene come back empty; writes to it raise :class:`NotFound`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

import pandas as pd

from scenestore.core.errors import InvalidArgument, NotFound
from scenestore.core.models import Layer, Scene, Sprite, Tint, coerce_tint
from scenestore.services.base import StoreComponent
from scenestore.services.projects import require_project, require_scene
from scenestore.storage.sqlite import media as _media
from scenestore.storage.sqlite import scene_graph as _graph
from scenestore.storage.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

__all__ = ["SceneGraphStore"]

TintLike = Union[Tint, Sequence[Optional[float]], Mapping[str, Any], None]


def _check_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer", **{name: value})
    return value


def _check_finite(name: str, value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be a number", **{name: value}) from None
    if not math.isfinite(number):
        raise InvalidArgument(f"{name} must be finite", **{name: value})
    return number


class SceneGraphStore(StoreComponent):
    """Per-scene layer and sprite persistence."""

    # ---- Layers -------------------------------------------------------------
    def upsert_layer(
        self,
        scene: Scene,
        layer_id: int,
        title: str | None = None,
        z: int = 0,
        visible: bool = True,
        locked: bool = False,
        *,
        uow: UnitOfWork | None = None,
    ) -> Layer:
        """Insert the layer, or update it in place when ``(layer_id, scene)`` exists."""

        _check_int("layer_id", layer_id)
        _check_int("z", z)
        with self._work(uow) as work:
            current = require_scene(work, scene)
            _graph.upsert_layer(
                work.conn,
                layer_id=layer_id,
                scene_id=current.id,
                title=title,
                z=z,
                visible=bool(visible),
                locked=bool(locked),
            )
            layer = Layer.from_row(_graph.get_layer(work.conn, current.id, layer_id))
        log.debug("Upserted layer id=%s scene id=%s z=%s", layer_id, current.id, z)
        return layer

    def get_layer(self, scene: Scene, layer_id: int, *, uow: UnitOfWork | None = None) -> Layer:
        with self._work(uow, write=False) as work:
            current = require_scene(work, scene)
            row = _graph.get_layer(work.conn, current.id, layer_id)
        if row is None:
            raise NotFound(f"layer {layer_id} does not exist", layer_id=layer_id)
        return Layer.from_row(row)

    def list_layers(self, scene: Scene, *, uow: UnitOfWork | None = None) -> list[Layer]:
        with self._work(uow, write=False) as work:
            rows = _graph.list_layers(work.conn, scene.id)
        return [Layer.from_row(row) for row in rows]

    def delete_layer(self, scene: Scene, layer_id: int, *, uow: UnitOfWork | None = None) -> int:
        """Delete the layer and its sprites; returns how many sprites went with it."""

        with self._work(uow) as work:
            current = require_scene(work, scene)
            if not _graph.layer_exists(work.conn, current.id, layer_id):
                raise NotFound(f"layer {layer_id} does not exist", layer_id=layer_id)
            removed = _graph.delete_sprites_for_layer(work.conn, current.id, layer_id)
            _graph.delete_layer_row(work.conn, current.id, layer_id)
        log.info("Deleted layer id=%s scene id=%s (%d sprite(s))", layer_id, current.id, removed)
        return removed

    def move_layer(
        self, scene: Scene, layer_id: int, up: bool = True, *, uow: UnitOfWork | None = None
    ) -> bool:
        """
        Move the layer one step up or down the stack, crossing the grid.

        Layers with ``z >= 0`` sit above the grid and the rest below it. A
        layer next to the grid moves to the other side of it; a layer at the
        top (bottom) of the stack that is still below (above) the grid jumps
        across it. Otherwise it trades places with its neighbour. Afterwards
        ``z`` is renumbered to ``1..n`` above the grid and ``-m..-1`` below.
        Returns ``False`` when there is nowhere to move.
        """

        with self._work(uow) as work:
            current = require_scene(work, scene)
            layers = [Layer.from_row(row) for row in _graph.list_layers(work.conn, current.id)]
            index = next((i for i, layer in enumerate(layers) if layer.id == layer_id), None)
            if index is None:
                raise NotFound(f"layer {layer_id} does not exist", layer_id=layer_id)
            above = {layer.id: layer.z >= 0 for layer in layers}
            other = index + 1 if up else index - 1
            if other < 0 or other >= len(layers):
                if above[layer_id] == up:
                    return False
                above[layer_id] = up
            elif above[layer_id] == above[layers[other].id]:
                layers[index], layers[other] = layers[other], layers[index]
            else:
                above[layer_id] = up
            self._renumber(work, current.id, layers, above)
        direction = "up" if up else "down"
        log.debug("Moved layer id=%s %s in scene id=%s", layer_id, direction, current.id)
        return True

    @staticmethod
    def _renumber(
        work: UnitOfWork, scene_id: int, layers: list[Layer], above: dict[int, bool]
    ) -> None:
        below = [layer for layer in layers if not above[layer.id]]
        top = [layer for layer in layers if above[layer.id]]
        wanted = {layer.id: z for z, layer in enumerate(below, start=-len(below))}
        wanted.update({layer.id: z for z, layer in enumerate(top, start=1)})
        for layer in layers:
            if layer.z != wanted[layer.id]:
                _graph.set_layer_z(work.conn, scene_id, layer.id, wanted[layer.id])

    # ---- Sprites ------------------------------------------------------------
    def upsert_sprite(
        self,
        scene: Scene,
        sprite_id: int,
        layer: int,
        media_key: str | None,
        tint: TintLike,
        x: float,
        y: float,
        w: float,
        h: float,
        z: int = 0,
        *,
        uow: UnitOfWork | None = None,
    ) -> Sprite:
        """
        Insert or update the sprite addressed by ``(sprite_id, scene)``.

        ``layer`` must be an existing layer of the same scene and a non-null
        ``media_key`` must name media owned by the scene's owner; both are
        rejected with :class:`InvalidArgument` otherwise.
        """

        _check_int("sprite_id", sprite_id)
        _check_int("layer", layer)
        _check_int("z", z)
        geometry = {name: _check_finite(name, value) for name, value in
                    (("x", x), ("y", y), ("w", w), ("h", h))}
        try:
            colour = coerce_tint(tint)
        except ValueError as exc:
            raise InvalidArgument(str(exc)) from exc

        with self._work(uow) as work:
            current = require_scene(work, scene)
            if not _graph.layer_exists(work.conn, current.id, layer):
                raise InvalidArgument(
                    f"layer {layer} does not exist in scene", layer=layer, scene_id=current.id
                )
            if media_key is not None:
                media_row = _media.get_media_by_key(work.conn, media_key)
                owner = require_project(work, current.project).user
                if media_row is None or int(media_row["user"]) != owner:
                    raise InvalidArgument(
                        f"unknown media key {media_key!r}", media_key=media_key
                    )
            _graph.upsert_sprite(
                work.conn,
                sprite_id=sprite_id,
                scene_id=current.id,
                layer_id=layer,
                media_key=media_key,
                tint=colour.as_tuple(),
                z=z,
                **geometry,
            )
            sprite = Sprite.from_row(_graph.get_sprite(work.conn, current.id, sprite_id))
        log.debug("Upserted sprite id=%s layer=%s scene id=%s", sprite_id, layer, current.id)
        return sprite

    def get_sprite(self, scene: Scene, sprite_id: int, *, uow: UnitOfWork | None = None) -> Sprite:
        with self._work(uow, write=False) as work:
            current = require_scene(work, scene)
            row = _graph.get_sprite(work.conn, current.id, sprite_id)
        if row is None:
            raise NotFound(f"sprite {sprite_id} does not exist", sprite_id=sprite_id)
        return Sprite.from_row(row)

    def list_sprites(
        self, scene: Scene, *, layer: int | None = None, uow: UnitOfWork | None = None
    ) -> list[Sprite]:
        with self._work(uow, write=False) as work:
            rows = _graph.list_sprites(work.conn, scene.id, layer_id=layer)
        return [Sprite.from_row(row) for row in rows]

    def delete_sprite(self, scene: Scene, sprite_id: int, *, uow: UnitOfWork | None = None) -> None:
        with self._work(uow) as work:
            current = require_scene(work, scene)
            if not _graph.delete_sprite_row(work.conn, current.id, sprite_id):
                raise NotFound(f"sprite {sprite_id} does not exist", sprite_id=sprite_id)
        log.debug("Deleted sprite id=%s scene id=%s", sprite_id, current.id)

    # ---- Paint order queries ------------------------------------------------
    def draw_order(
        self, scene: Scene, *, visible_only: bool = False, uow: UnitOfWork | None = None
    ) -> list[Sprite]:
        """Sprites bottom to top: layer z, then sprite z, then sprite id."""

        with self._work(uow, write=False) as work:
            rows = _graph.draw_order_rows(work.conn, scene.id, visible_only=visible_only)
        return [Sprite.from_row(row) for row in rows]

    def draw_order_frame(
        self, scene: Scene, *, visible_only: bool = False, uow: UnitOfWork | None = None
    ) -> pd.DataFrame:
        with self._work(uow, write=False) as work:
            return _graph.fetch_draw_order_dataframe(work.conn, scene.id, visible_only=visible_only)

    @staticmethod
    def _selectable(work: UnitOfWork, scene: Scene) -> list[Sprite]:
        layers = {row["id"]: Layer.from_row(row) for row in _graph.list_layers(work.conn, scene.id)}
        return [
            Sprite.from_row(row)
            for row in _graph.draw_order_rows(work.conn, scene.id)
            if layers[row["layer"]].selectable
        ]

    def sprite_at(
        self, scene: Scene, x: float, y: float, *, uow: UnitOfWork | None = None
    ) -> Sprite | None:
        """Return the topmost selectable sprite under ``(x, y)``, if any."""

        with self._work(uow, write=False) as work:
            sprites = self._selectable(work, scene)
        for sprite in reversed(sprites):
            if sprite.contains_point(x, y):
                return sprite
        return None

    def sprites_in(
        self,
        scene: Scene,
        x: float,
        y: float,
        w: float,
        h: float,
        *,
        uow: UnitOfWork | None = None,
    ) -> list[int]:
        """Ids of selectable sprites lying entirely inside the rectangle."""

        with self._work(uow, write=False) as work:
            sprites = self._selectable(work, scene)
        return [sprite.id for sprite in sprites if sprite.within(x, y, w, h)]
