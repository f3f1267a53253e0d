import logging

import pytest

from scenestore.core import config
from scenestore.core.credentials import BcryptHasher
from scenestore.core.logging_config import setup_logging
from scenestore.services.store import open_store


@pytest.fixture(autouse=True)
def _fresh_settings():
    config.reload()
    yield
    config.reload()


def test_defaults(monkeypatch):
    for name in (
        "SCENESTORE_DB",
        "SCENESTORE_LOCK_TIMEOUT",
        "SCENESTORE_BUSY_TIMEOUT_MS",
        "SCENESTORE_HASH_ROUNDS",
        "SCENESTORE_JOURNAL_MODE",
    ):
        monkeypatch.delenv(name, raising=False)
    assert config.load_settings() == config.Settings()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SCENESTORE_DB", "/tmp/elsewhere.db")
    monkeypatch.setenv("SCENESTORE_LOCK_TIMEOUT", "2.5")
    monkeypatch.setenv("SCENESTORE_HASH_ROUNDS", "10")
    monkeypatch.setenv("SCENESTORE_JOURNAL_MODE", "delete")

    settings = config.load_settings()

    assert settings.db_path == "/tmp/elsewhere.db"
    assert settings.lock_timeout == 2.5
    assert settings.hash_rounds == 10
    assert settings.journal_mode == "DELETE"
    assert config.load_settings() is settings


@pytest.mark.parametrize(
    "name, value",
    [
        ("SCENESTORE_LOCK_TIMEOUT", "soon"),
        ("SCENESTORE_BUSY_TIMEOUT_MS", "-5"),
        ("SCENESTORE_JOURNAL_MODE", "MEMORY"),
    ],
)
def test_invalid_environment(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        config.load_settings()


def test_with_overrides_skips_none():
    base = config.Settings()
    assert base.with_overrides(lock_timeout=None) is base
    assert base.with_overrides(hash_rounds=5).hash_rounds == 5


def test_open_store_uses_environment(tmp_path, monkeypatch):
    db_path = tmp_path / "from-env.db"
    monkeypatch.setenv("SCENESTORE_DB", str(db_path))
    monkeypatch.setenv("SCENESTORE_HASH_ROUNDS", "5")
    monkeypatch.setenv("SCENESTORE_JOURNAL_MODE", "DELETE")

    with open_store() as store:
        assert store.db.path == str(db_path)
        assert isinstance(store.accounts.hasher, BcryptHasher)
        assert store.accounts.hasher.rounds == 5
        mode = store.db.conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode.lower() == "delete"
    assert db_path.exists()


def test_setup_logging_writes_rotating_files(tmp_path):
    log_dir = setup_logging(log_dir=tmp_path / "logs", console_level=logging.CRITICAL)
    try:
        logging.getLogger("scenestore.services.accounts").info("hello from the test")
        logging.getLogger("scenestore.tests").error("boom")
        for handler in logging.getLogger("scenestore").handlers + logging.getLogger().handlers:
            handler.flush()

        assert "hello from the test" in (log_dir / "scenestore.log").read_text(encoding="utf-8")
        assert "boom" in (log_dir / "errors.log").read_text(encoding="utf-8")
    finally:
        store_logger = logging.getLogger("scenestore")
        for handler in list(store_logger.handlers):
            store_logger.removeHandler(handler)
            handler.close()
        root = logging.getLogger()
        for handler in list(root.handlers):
            if getattr(handler, "_scenestore", False):
                root.removeHandler(handler)
                handler.close()
        for name in ("scenestore.storage.sqlite", "scenestore.storage.database"):
            logging.getLogger(name).setLevel(logging.NOTSET)
