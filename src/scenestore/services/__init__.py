"""Store components built on :class:`scenestore.storage.Database`."""

from importlib import import_module
from typing import Any

__all__ = [
    "AccountStore",
    "SessionManager",
    "MediaLibrary",
    "ProjectStore",
    "SceneGraphStore",
    "SceneStore",
    "open_store",
    "service_types",
]

_LAZY_EXPORTS: dict[str, tuple[str, str]] = {
    "AccountStore": ("scenestore.services.accounts", "AccountStore"),
    "SessionManager": ("scenestore.services.sessions", "SessionManager"),
    "MediaLibrary": ("scenestore.services.media", "MediaLibrary"),
    "ProjectStore": ("scenestore.services.projects", "ProjectStore"),
    "SceneGraphStore": ("scenestore.services.scene_graph", "SceneGraphStore"),
    "SceneStore": ("scenestore.services.store", "SceneStore"),
    "open_store": ("scenestore.services.store", "open_store"),
}


def __getattr__(name: str) -> Any:
    if name == "service_types":
        module = import_module("scenestore.services.types")
        globals()[name] = module
        return module

    target = _LAZY_EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module 'scenestore.services' has no attribute {name!r}")

    module_name, attr_name = target
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
