"""SQLite connection owner shared by every service."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import StoreError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class Store:
    """Owns the single database connection for the process.

    The connection is opened with ``check_same_thread=False`` so the threaded
    Flask server can share it; every access goes through :meth:`transaction`,
    which holds a re-entrant lock for the duration of the block.
    """

    def __init__(self, db_path: Union[str, Path], timeout: float = 5.0) -> None:
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            if self.db_path != MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=timeout, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Unable to open database at {self.db_path}: {exc}") from exc
        self._conn = conn
        logger.debug("Opened database %s", self.db_path)

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Database connection is closed")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside a transaction.

        Commits when the block exits normally and rolls back on any exception.
        ``sqlite3.Error`` is re-raised as :class:`StoreError`; other exceptions
        propagate unchanged after the rollback.
        """
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    yield conn
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc

    def executescript(self, script: str) -> None:
        with self._lock:
            try:
                self._connection().executescript(script)
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Closed database %s", self.db_path)

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
