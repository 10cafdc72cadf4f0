"""
SQLite connection management.

Provides a context manager ``get_connection()`` that:
  - Enables foreign key enforcement (OFF by default in SQLite).
  - Enables WAL journal mode so readers never block the ledger writers.
  - Sets a busy timeout so concurrent writers to the same edge queue on the
    database write lock instead of failing immediately.
  - Uses ``sqlite3.Row`` factory so rows behave like dicts.
  - Commits on clean exit, rolls back on exception.

``translate_store_error()`` maps driver exceptions onto the engine's
``StoreTimeout`` / ``StoreUnavailable`` taxonomy.

Usage::

    from decision_learning.db.connection import get_connection

    with get_connection("data/db/decision_learning.db") as conn:
        conn.execute("INSERT INTO ...")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from decision_learning.errors import StoreError, StoreTimeout, StoreUnavailable

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ("locked", "busy")


def translate_store_error(exc: sqlite3.Error) -> StoreError:
    """Map a ``sqlite3`` exception to ``StoreTimeout`` or ``StoreUnavailable``.

    SQLite reports an exhausted busy timeout as ``OperationalError`` with
    "database is locked" (or "busy"); everything else is treated as the
    store being unavailable.
    """
    message = str(exc)
    if isinstance(exc, sqlite3.OperationalError) and any(
        marker in message.lower() for marker in _TIMEOUT_MARKERS
    ):
        return StoreTimeout(f"Store timed out: {message}")
    return StoreUnavailable(f"Store unavailable: {message}")


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The connection is committed on clean exit and rolled back on exception.
    The database file (and any parent directories) are created if they do
    not already exist.

    Args:
        db_path: Path to the SQLite database file. Use ``":memory:"`` for
            in-memory databases (useful in tests).
        wal_mode: If ``True``, enable WAL journal mode.
        busy_timeout_ms: Milliseconds to wait for the write lock before the
            statement fails with ``StoreTimeout``.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        StoreUnavailable: If the database cannot be opened.
        StoreTimeout: If the final commit cannot take the write lock in time.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    except sqlite3.Error as exc:
        raise translate_store_error(exc) from exc
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")

        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except sqlite3.Error as exc:
        conn.rollback()
        raise translate_store_error(exc) from exc

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
