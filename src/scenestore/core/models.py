"""Record types returned by the stores.

Each model mirrors one row of the SQLite schema. Internal integer ids are
kept on the models so the stores can address rows, but callers outside the
process should only see the opaque keys.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "User",
    "Session",
    "MediaAsset",
    "Project",
    "Scene",
    "Layer",
    "Sprite",
    "Tint",
    "coerce_tint",
]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | Any):
        """Build a record from a ``sqlite3.Row`` (or any mapping)."""

        return cls.model_validate({key: row[key] for key in row.keys()})


class User(_Record):
    id: int
    username: str
    salt: str = Field(repr=False)
    hashed_password: str = Field(repr=False)
    recovery_key: str = Field(repr=False)
    created_time: int


class Session(_Record):
    id: int
    user: int
    session_key: str = Field(repr=False)
    active: bool
    start_time: int
    end_time: Optional[int] = None


class MediaAsset(_Record):
    id: int
    media_key: str
    user: int
    relative_path: str
    title: str
    hashed_value: str


class Project(_Record):
    id: int
    project_key: str
    user: int
    title: Optional[str] = None


class Scene(_Record):
    id: int
    scene_key: str
    project: int
    title: Optional[str] = None
    width: int = Field(alias="w")
    height: int = Field(alias="h")

    # Sizes are checked when written; stored rows are read back as they are
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Layer(_Record):
    id: int
    scene: int
    title: Optional[str] = None
    z: int = 0
    visible: bool = True
    locked: bool = False

    @property
    def selectable(self) -> bool:
        return self.visible and not self.locked


class Tint(BaseModel):
    model_config = ConfigDict(frozen=True)

    r: Optional[float] = None
    g: Optional[float] = None
    b: Optional[float] = None
    a: Optional[float] = None

    def as_tuple(self) -> tuple[Optional[float], Optional[float], Optional[float], Optional[float]]:
        return (self.r, self.g, self.b, self.a)


class Sprite(_Record):
    id: int
    scene: int
    layer: int
    media_key: Optional[str] = None
    r: Optional[float] = None
    g: Optional[float] = None
    b: Optional[float] = None
    a: Optional[float] = None
    x: float
    y: float
    w: float
    h: float
    z: int

    @property
    def tint(self) -> Tint:
        return Tint(r=self.r, g=self.g, b=self.b, a=self.a)

    def contains_point(self, x: float, y: float) -> bool:
        x0, x1 = sorted((self.x, self.x + self.w))
        y0, y1 = sorted((self.y, self.y + self.h))
        return x0 <= x <= x1 and y0 <= y <= y1

    def within(self, x: float, y: float, w: float, h: float) -> bool:
        rx0, rx1 = sorted((x, x + w))
        ry0, ry1 = sorted((y, y + h))
        sx0, sx1 = sorted((self.x, self.x + self.w))
        sy0, sy1 = sorted((self.y, self.y + self.h))
        return rx0 <= sx0 and sx1 <= rx1 and ry0 <= sy0 and sy1 <= ry1


def coerce_tint(value: Tint | Sequence[Optional[float]] | Mapping[str, Any] | None) -> Tint:
    """Normalise the accepted tint spellings into a :class:`Tint`."""

    if value is None:
        return Tint()
    if isinstance(value, Tint):
        tint = value
    elif isinstance(value, Mapping):
        tint = Tint.model_validate(dict(value))
    else:
        parts = list(value)
        if len(parts) != 4:
            raise ValueError("tint must have exactly four components (r, g, b, a)")
        tint = Tint(r=parts[0], g=parts[1], b=parts[2], a=parts[3])
    for component in tint.as_tuple():
        if component is not None and not math.isfinite(component):
            raise ValueError("tint components must be finite")
    return tint
