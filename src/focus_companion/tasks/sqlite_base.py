# src/focus_companion/tasks/sqlite_base.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


class SQLiteStore:
    """
    Base for the small SQLite-backed stores.

    All stores may share one database file; each owns its own tables.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_conn()
        try:
            self._ensure_schema(conn)
            conn.commit()
        finally:
            conn.close()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        raise NotImplementedError

    @staticmethod
    def _add_missing_columns(conn: sqlite3.Connection, table: str, columns: dict[str, str]) -> None:
        """Safe migration: add columns with ALTER TABLE only when missing."""
        cols = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
        for name, decl in columns.items():
            if name in cols:
                continue
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
            logger.info("%s migration: added column %s", table, name)
