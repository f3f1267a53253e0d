"""
Layer and sprite persistence helpers.

Layers and sprites are addressed by ``(id, scene)``; ``id`` is supplied by the
caller and is only unique inside its scene.
"""

from __future__ import annotations

import sqlite3

import pandas as pd

__all__ = [
    "upsert_layer",
    "get_layer",
    "layer_exists",
    "list_layers",
    "set_layer_z",
    "delete_layer_row",
    "delete_layers_for_scene",
    "upsert_sprite",
    "get_sprite",
    "list_sprites",
    "delete_sprite_row",
    "delete_sprites_for_layer",
    "delete_sprites_for_scene",
    "draw_order_rows",
    "fetch_draw_order_dataframe",
]

# z/visible/locked are nullable columns; read them with the defaults upsert writes
_LAYER_COLUMNS = (
    "id, scene, title, COALESCE(z, 0) AS z, "
    "COALESCE(visible, 1) AS visible, COALESCE(locked, 0) AS locked"
)
_SPRITE_COLUMNS = "id, scene, layer, media_key, r, g, b, a, x, y, w, h, z"

# Paint order: layer z ascending, then sprite z ascending, then sprite id
_DRAW_ORDER_SQL = """
    SELECT s.id, s.scene, s.layer, s.media_key, s.r, s.g, s.b, s.a,
           s.x, s.y, s.w, s.h, s.z
      FROM sprites AS s
      JOIN layers AS l ON l.scene = s.scene AND l.id = s.layer
     WHERE s.scene = ? {visible_clause}
     ORDER BY COALESCE(l.z, 0) ASC, l.id ASC, s.z ASC, s.id ASC
"""


# ---- Layers -----------------------------------------------------------------


def upsert_layer(
    conn: sqlite3.Connection,
    *,
    layer_id: int,
    scene_id: int,
    title: str | None,
    z: int,
    visible: bool,
    locked: bool,
) -> None:
    """Create or update the layer addressed by ``(layer_id, scene_id)``."""

    conn.execute(
        """
        INSERT INTO layers(id, scene, title, z, visible, locked)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id, scene)
        DO UPDATE SET title = excluded.title,
                      z = excluded.z,
                      visible = excluded.visible,
                      locked = excluded.locked
        """,
        (int(layer_id), int(scene_id), title, int(z), 1 if visible else 0, 1 if locked else 0),
    )


def get_layer(conn: sqlite3.Connection, scene_id: int, layer_id: int) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_LAYER_COLUMNS} FROM layers WHERE scene = ? AND id = ?",
        (int(scene_id), int(layer_id)),
    ).fetchone()


def layer_exists(conn: sqlite3.Connection, scene_id: int, layer_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM layers WHERE scene = ? AND id = ?", (int(scene_id), int(layer_id))
    ).fetchone()
    return row is not None


def list_layers(conn: sqlite3.Connection, scene_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_LAYER_COLUMNS} FROM layers WHERE scene = ? ORDER BY z ASC, id ASC",
        (int(scene_id),),
    ).fetchall()


def set_layer_z(conn: sqlite3.Connection, scene_id: int, layer_id: int, z: int) -> None:
    conn.execute(
        "UPDATE layers SET z = ? WHERE scene = ? AND id = ?",
        (int(z), int(scene_id), int(layer_id)),
    )


def delete_layer_row(conn: sqlite3.Connection, scene_id: int, layer_id: int) -> int:
    cur = conn.execute(
        "DELETE FROM layers WHERE scene = ? AND id = ?", (int(scene_id), int(layer_id))
    )
    return int(cur.rowcount)


def delete_layers_for_scene(conn: sqlite3.Connection, scene_id: int) -> int:
    cur = conn.execute("DELETE FROM layers WHERE scene = ?", (int(scene_id),))
    return int(cur.rowcount)


# ---- Sprites ----------------------------------------------------------------


def upsert_sprite(
    conn: sqlite3.Connection,
    *,
    sprite_id: int,
    scene_id: int,
    layer_id: int,
    media_key: str | None,
    tint: tuple[float | None, float | None, float | None, float | None],
    x: float,
    y: float,
    w: float,
    h: float,
    z: int,
) -> None:
    """Create or update the sprite addressed by ``(sprite_id, scene_id)``."""

    r, g, b, a = tint
    conn.execute(
        """
        INSERT INTO sprites(id, scene, layer, media_key, r, g, b, a, x, y, w, h, z)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id, scene)
        DO UPDATE SET layer = excluded.layer,
                      media_key = excluded.media_key,
                      r = excluded.r,
                      g = excluded.g,
                      b = excluded.b,
                      a = excluded.a,
                      x = excluded.x,
                      y = excluded.y,
                      w = excluded.w,
                      h = excluded.h,
                      z = excluded.z
        """,
        (
            int(sprite_id),
            int(scene_id),
            int(layer_id),
            media_key,
            r,
            g,
            b,
            a,
            float(x),
            float(y),
            float(w),
            float(h),
            int(z),
        ),
    )


def get_sprite(conn: sqlite3.Connection, scene_id: int, sprite_id: int) -> sqlite3.Row | None:
    return conn.execute(
        f"SELECT {_SPRITE_COLUMNS} FROM sprites WHERE scene = ? AND id = ?",
        (int(scene_id), int(sprite_id)),
    ).fetchone()


def list_sprites(
    conn: sqlite3.Connection, scene_id: int, *, layer_id: int | None = None
) -> list[sqlite3.Row]:
    query = [f"SELECT {_SPRITE_COLUMNS}", "FROM sprites", "WHERE scene = ?"]
    params: list[object] = [int(scene_id)]
    if layer_id is not None:
        query.append("AND layer = ?")
        params.append(int(layer_id))
    query.append("ORDER BY z ASC, id ASC")
    return conn.execute(" ".join(query), params).fetchall()


def delete_sprite_row(conn: sqlite3.Connection, scene_id: int, sprite_id: int) -> int:
    cur = conn.execute(
        "DELETE FROM sprites WHERE scene = ? AND id = ?", (int(scene_id), int(sprite_id))
    )
    return int(cur.rowcount)


def delete_sprites_for_layer(conn: sqlite3.Connection, scene_id: int, layer_id: int) -> int:
    cur = conn.execute(
        "DELETE FROM sprites WHERE scene = ? AND layer = ?", (int(scene_id), int(layer_id))
    )
    return int(cur.rowcount)


def delete_sprites_for_scene(conn: sqlite3.Connection, scene_id: int) -> int:
    cur = conn.execute("DELETE FROM sprites WHERE scene = ?", (int(scene_id),))
    return int(cur.rowcount)


# ---- Draw order -------------------------------------------------------------


def draw_order_rows(
    conn: sqlite3.Connection, scene_id: int, *, visible_only: bool = False
) -> list[sqlite3.Row]:
    clause = "AND COALESCE(l.visible, 1) = 1" if visible_only else ""
    return conn.execute(
        _DRAW_ORDER_SQL.format(visible_clause=clause), (int(scene_id),)
    ).fetchall()


def fetch_draw_order_dataframe(
    conn: sqlite3.Connection, scene_id: int, *, visible_only: bool = False
) -> pd.DataFrame:
    """Return the scene's sprites in paint order, joined with layer state."""

    query = [
        "SELECT s.id AS sprite_id, s.layer AS layer_id, l.title AS layer_title,",
        "COALESCE(l.z, 0) AS layer_z, COALESCE(l.visible, 1) AS layer_visible,",
        "COALESCE(l.locked, 0) AS layer_locked,",
        "s.media_key, s.r, s.g, s.b, s.a, s.x, s.y, s.w, s.h, s.z",
        "FROM sprites AS s",
        "JOIN layers AS l ON l.scene = s.scene AND l.id = s.layer",
        "WHERE s.scene = ?",
    ]
    if visible_only:
        query.append("AND COALESCE(l.visible, 1) = 1")
    query.append("ORDER BY COALESCE(l.z, 0) ASC, l.id ASC, s.z ASC, s.id ASC")

    df = pd.read_sql_query(" ".join(query), conn, params=[int(scene_id)])
    for col in ("layer_visible", "layer_locked"):
        if col in df.columns:
            df[col] = df[col].astype(bool)
    df.insert(0, "draw_index", range(len(df)))
    return df
