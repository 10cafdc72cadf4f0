"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Table creation order respects foreign key dependencies:
  1. decisions         (no FKs)
  2. approvals         (→ decisions)
  3. learning_weights  (no FKs; source ids are content-derived for signals
                        and objectives, so they cannot reference a table)
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_DECISIONS = """
CREATE TABLE IF NOT EXISTS decisions (
    id                   TEXT    NOT NULL PRIMARY KEY,
    objective            TEXT    NOT NULL,
    recommendation       TEXT    NOT NULL,
    recommendation_type  TEXT    NOT NULL,
    confidence           TEXT    NOT NULL CHECK (confidence IN ('HIGH', 'MEDIUM', 'LOW')),
    signals              TEXT    NOT NULL,
    command              TEXT,
    raw_output_hash      TEXT,
    embedding_text       TEXT,
    created_at           TEXT    NOT NULL
);
"""

_DDL_DECISIONS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_decisions_created_at
    ON decisions(created_at DESC);
"""

_DDL_APPROVALS = """
CREATE TABLE IF NOT EXISTS approvals (
    id                     TEXT    NOT NULL PRIMARY KEY,
    decision_id            TEXT    NOT NULL REFERENCES decisions(id),
    approved               INTEGER NOT NULL,
    confidence_adjustment  REAL,
    reward                 REAL    NOT NULL,
    timestamp              TEXT    NOT NULL,
    created_at             TEXT    NOT NULL
);
"""

_DDL_APPROVALS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_approvals_decision
    ON approvals(decision_id);
"""

_DDL_LEARNING_WEIGHTS = """
CREATE TABLE IF NOT EXISTS learning_weights (
    id            TEXT    NOT NULL PRIMARY KEY,
    source_type   TEXT    NOT NULL CHECK (source_type IN ('decision', 'signal', 'objective')),
    source_id     TEXT    NOT NULL,
    target_type   TEXT    NOT NULL,
    target_value  TEXT    NOT NULL,
    weight        REAL    NOT NULL,
    update_count  INTEGER NOT NULL DEFAULT 1,
    created_at    TEXT    NOT NULL,
    updated_at    TEXT    NOT NULL,
    UNIQUE(source_type, source_id, target_type, target_value)
);
"""

_DDL_LEARNING_WEIGHTS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_weights_source
    ON learning_weights(source_type, source_id);
"""

_ALL_DDL = [
    _DDL_DECISIONS,
    _DDL_DECISIONS_INDEXES,
    _DDL_APPROVALS,
    _DDL_APPROVALS_INDEXES,
    _DDL_LEARNING_WEIGHTS,
    _DDL_LEARNING_WEIGHTS_INDEXES,
]

ALL_TABLE_NAMES = [
    "decisions",
    "approvals",
    "learning_weights",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return explicitly created index names, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='index' AND name NOT LIKE 'sqlite_autoindex%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
