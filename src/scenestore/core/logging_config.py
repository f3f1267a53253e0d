# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Logging configuration with file rotation for SceneStore processes."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(
    app_name: str = "SceneStore",
    console_level: int = logging.INFO,
    log_dir: str | os.PathLike[str] | None = None,
) -> Path:
    """
    Configure the ``scenestore`` logger with rotating file output.

    Creates two log files:
    - scenestore.log: DEBUG+ messages from the package (10 MB per file, 5 rotations)
    - errors.log: ERROR+ messages from any logger (5 MB per file, 3 rotations)

    Args:
        app_name: Application name for the default log directory
        console_level: Minimum level for console output (default: INFO)
        log_dir: Explicit directory, overriding the platform default

    Returns:
        Path to the log directory
    """
    directory = Path(log_dir) if log_dir is not None else _get_log_directory(app_name)
    directory.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_scenestore", False):
            root_logger.removeHandler(handler)
            handler.close()

    detailed_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    simple_formatter = logging.Formatter("%(levelname)-8s | %(name)s | %(message)s")

    store_logger = logging.getLogger("scenestore")
    store_logger.setLevel(logging.DEBUG)
    for handler in list(store_logger.handlers):
        store_logger.removeHandler(handler)
        handler.close()

    app_log_path = directory / "scenestore.log"
    app_handler = RotatingFileHandler(
        app_log_path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    app_handler.setLevel(logging.DEBUG)
    app_handler.setFormatter(detailed_formatter)
    store_logger.addHandler(app_handler)

    error_log_path = directory / "errors.log"
    error_handler = RotatingFileHandler(
        error_log_path,
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    error_handler._scenestore = True  # type: ignore[attr-defined]
    root_logger.addHandler(error_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(simple_formatter)
    store_logger.addHandler(console_handler)

    # Per-row helpers are chatty; DEBUG still reaches the file handler
    for name in ("scenestore.storage.sqlite", "scenestore.storage.database"):
        logging.getLogger(name).setLevel(logging.INFO)

    log = logging.getLogger(__name__)
    log.info("%s logging initialized (dir=%s)", app_name, directory)
    log.debug("Platform: %s, Python: %s", sys.platform, sys.version.split()[0])

    return directory


def _get_log_directory(app_name: str) -> Path:
    """
    Get platform-specific log directory.

    - Windows: %LOCALAPPDATA%\\AppName\\logs
    - macOS: ~/Library/Logs/AppName
    - Linux: $XDG_STATE_HOME/AppName/logs (default ~/.local/state)
    """
    home = Path.home()

    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local"))
        return base / app_name / "logs"

    if sys.platform == "darwin":
        return home / "Library" / "Logs" / app_name

    xdg_state_home = os.environ.get("XDG_STATE_HOME", home / ".local" / "state")
    return Path(xdg_state_home) / app_name / "logs"


def get_log_directory(app_name: str = "SceneStore") -> Path:
    """Get the log directory path without setting up logging."""
    return _get_log_directory(app_name)
