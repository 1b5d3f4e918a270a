"""Key/value storage backing the persisted records.

The controller and stores never touch a fixed global location; they receive a
``KeyValueStorage`` so tests can substitute ``MemoryStorage``. The on-disk
backend uses the same single-table layout VS Code style editors use for their
``state.vscdb`` files:

    CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a record cannot be read from or written to storage."""


class KeyValueStorage(ABC):
    """Minimal persistent key/value facility holding text records."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` as a single atomic write."""
        ...

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""
        ...


class MemoryStorage(KeyValueStorage):
    """In-process storage, used by tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def clear(self, key: str) -> None:
        self._items.pop(key, None)


class SqliteStorage(KeyValueStorage):
    """Storage backed by a SQLite ``ItemTable``.

    Each call opens its own connection; every write runs in one transaction so
    a record is either fully replaced or left untouched.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS ItemTable "
                "(key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)"
            )
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def get(self, key: str) -> str | None:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM ItemTable WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to read {key!r} from {self.db_path}: {e}") from e

        if row is None:
            return None
        value = row[0]
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise StorageError(f"Stored value for {key!r} is not UTF-8") from e
        return value

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("INSERT INTO ItemTable VALUES (?, ?)", (key, value))
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to write {key!r} to {self.db_path}: {e}") from e
        logger.debug("Wrote %d chars to %s[%s]", len(value), self.db_path, key)

    def clear(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM ItemTable WHERE key = ?", (key,))
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to clear {key!r} in {self.db_path}: {e}") from e
