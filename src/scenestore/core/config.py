"""Runtime settings read from ``SCENESTORE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache

__all__ = ["Settings", "load_settings", "reload"]

DEFAULT_DB_PATH = "scenestore.db"
DEFAULT_LOCK_TIMEOUT = 10.0
DEFAULT_BUSY_TIMEOUT_MS = 10_000
DEFAULT_HASH_ROUNDS = 12
DEFAULT_JOURNAL_MODE = "WAL"

_JOURNAL_MODES = {"WAL", "DELETE"}


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    hash_rounds: int = DEFAULT_HASH_ROUNDS
    journal_mode: str = DEFAULT_JOURNAL_MODE

    def with_overrides(self, **overrides: object) -> Settings:
        """Return a copy with every non-``None`` override applied."""

        clean = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **clean) if clean else self


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _env_journal_mode() -> str:
    raw = os.environ.get("SCENESTORE_JOURNAL_MODE", "").strip().upper()
    if not raw:
        return DEFAULT_JOURNAL_MODE
    if raw not in _JOURNAL_MODES:
        raise ValueError(f"SCENESTORE_JOURNAL_MODE must be one of {sorted(_JOURNAL_MODES)}")
    return raw


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return the settings parsed from the environment (cached)."""

    return Settings(
        db_path=os.environ.get("SCENESTORE_DB", "").strip() or DEFAULT_DB_PATH,
        lock_timeout=_env_float("SCENESTORE_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT),
        busy_timeout_ms=_env_int("SCENESTORE_BUSY_TIMEOUT_MS", DEFAULT_BUSY_TIMEOUT_MS),
        hash_rounds=_env_int("SCENESTORE_HASH_ROUNDS", DEFAULT_HASH_ROUNDS),
        journal_mode=_env_journal_mode(),
    )


def reload() -> None:
    """Clear the cached settings (useful for tests)."""

    load_settings.cache_clear()
