# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Public package interface for SceneStore."""

from scenestore.core.cancellation import CancellationToken
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
from scenestore.core.models import Layer, MediaAsset, Project, Scene, Session, Sprite, Tint, User
from scenestore.services.store import SceneStore, open_store
from scenestore.storage.database import Database

__version__ = "0.1.0"

__all__ = [
    "open_store",
    "SceneStore",
    "Database",
    "CancellationToken",
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
]
