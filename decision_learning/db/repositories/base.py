"""
Base repository providing shared SQLite execution helpers.

All repositories inherit from ``BaseRepository`` and receive a
``sqlite3.Connection`` at construction time. The connection is opened and
managed by the caller (typically via ``get_connection()``); repositories
never commit on their own.

Design:
  - No ORM — all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
  - Driver errors leave as ``StoreTimeout`` / ``StoreUnavailable``.
    ``sqlite3.IntegrityError`` is re-raised untouched so callers can turn
    constraint violations into domain errors (``AlreadyExists``, ...).
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

from decision_learning.db.connection import translate_store_error

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        """Execute a single SQL statement.

        Raises:
            sqlite3.IntegrityError: On constraint violations.
            StoreTimeout: If the write lock could not be taken in time.
            StoreUnavailable: On any other driver failure.
        """
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        try:
            return self.conn.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise translate_store_error(exc) from exc

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()

    def count_rows(self, table: str) -> int:
        """Return ``COUNT(*)`` for one of the engine's own tables."""
        row = self.fetchone(f"SELECT COUNT(*) AS n FROM {table};")
        assert row is not None
        return int(row["n"])
