"""Row-level SQLite helpers; every function takes an open connection."""

__all__: list[str] = []
