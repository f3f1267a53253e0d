"""Domain models, errors and process-wide configuration for SceneStore."""

from scenestore.core.errors import (
    AlreadyEnded,
    Conflict,
    InvalidArgument,
    LockTimeout,
    NotFound,
    OperationCancelled,
    SceneStoreError,
    Unauthorized,
)
from scenestore.core.models import (
    Layer,
    MediaAsset,
    Project,
    Scene,
    Session,
    Sprite,
    Tint,
    User,
    coerce_tint,
)

__all__ = [
    "SceneStoreError",
    "Conflict",
    "NotFound",
    "Unauthorized",
    "InvalidArgument",
    "AlreadyEnded",
    "LockTimeout",
    "OperationCancelled",
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
