"""SQLite persistence: connection, units of work, cascades and integrity checks."""

from scenestore.storage.database import Database, DatabaseClosed
from scenestore.storage.unit_of_work import UnitOfWork

__all__ = ["Database", "DatabaseClosed", "UnitOfWork"]
