"""Service interfaces and typing helpers."""

from __future__ import annotations

from typing import Protocol, TypedDict, runtime_checkable

__all__ = [
    "PasswordHasher",
    "SaltingHasher",
    "Clock",
    "ValidationIssue",
]


@runtime_checkable
class PasswordHasher(Protocol):
    """Capability computing ``hash(password, salt) -> digest``.

    The digest is stored as-is in the ``hashed_password`` column and
    compared in constant time on login.
    """

    def __call__(self, password: str, salt: str) -> str: ...


@runtime_checkable
class SaltingHasher(PasswordHasher, Protocol):
    """A hasher that also produces salts in its own format."""

    def gensalt(self) -> str: ...


@runtime_checkable
class Clock(Protocol):
    """Source of the integer epoch-second timestamps stored in the schema."""

    def __call__(self) -> int: ...


class ValidationIssue(TypedDict, total=False):
    kind: str
    scene_id: int
    sprite_id: int
    layer_id: int
    media_key: str
    session_id: int
    user_id: int
    project_key: str
    detail: str
