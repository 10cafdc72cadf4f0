"""
Repository for decision records — insert-once, fetch, and the weighted
ranking query.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from decision_learning.db.repositories.base import BaseRepository
from decision_learning.errors import AlreadyExists
from decision_learning.models.decision import DecisionRecord, DecisionSignals
from decision_learning.taxonomy.recommendation_taxonomy import (
    TARGET_TYPE_RECOMMENDATION,
    SourceType,
)
from decision_learning.utils.time_utils import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)

_CASEFOLD_SQL_FN = "casefold"


class DecisionRepository(BaseRepository):
    """Read/write access to the ``decisions`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        # LIKE and lower() fold ASCII only.
        conn.create_function(_CASEFOLD_SQL_FN, 1, _casefold, deterministic=True)

    def insert(self, decision: DecisionRecord) -> str:
        """Insert a new decision.

        Decisions are immutable, so an existing id is rejected rather than
        overwritten.

        Args:
            decision: The ``DecisionRecord`` to persist.

        Returns:
            The decision ``id``.

        Raises:
            AlreadyExists: If a decision with the same id is already stored.
        """
        try:
            self.execute(
                """
                INSERT INTO decisions (
                    id, objective, recommendation, recommendation_type,
                    confidence, signals, command, raw_output_hash,
                    embedding_text, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    decision.id,
                    decision.objective,
                    decision.recommendation,
                    decision.recommendation_type.value,
                    decision.confidence.value,
                    json.dumps(decision.signals.model_dump()),
                    decision.command,
                    decision.raw_output_hash,
                    decision.embedding_text,
                    to_db_timestamp(decision.created_at),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise AlreadyExists("decision", decision.id) from exc
        return decision.id

    def get_by_id(self, decision_id: str) -> Optional[DecisionRecord]:
        """Fetch a single decision by id, or ``None`` if it does not exist."""
        row = self.fetchone("SELECT * FROM decisions WHERE id = ?;", (decision_id,))
        return _row_to_decision(row) if row else None

    def count(self, objective_substring: Optional[str] = None) -> int:
        """Count decisions, optionally filtered by objective substring."""
        where, params = _objective_filter(objective_substring)
        row = self.fetchone(f"SELECT COUNT(*) AS total FROM decisions d {where};", params)
        assert row is not None
        return int(row["total"])

    def list_ranked(
        self,
        objective_substring: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[tuple[DecisionRecord, float]]:
        """List decisions ordered by accumulated approval weight.

        The weight is that of the ``(decision, id) → recommendation_type``
        edge, ``0.0`` when the edge has never been written. Ties fall back
        to newest first, then id.

        Args:
            objective_substring: Case-insensitive filter on ``objective``.
            limit: Page size (caller clamps).
            offset: Rows to skip (caller clamps).

        Returns:
            ``(DecisionRecord, approval_weight)`` pairs in rank order.
        """
        where, params = _objective_filter(objective_substring)
        rows = self.fetchall(
            f"""
            SELECT d.*, COALESCE(lw.weight, 0.0) AS approval_weight
            FROM decisions d
            LEFT JOIN learning_weights lw
                   ON lw.source_type  = ?
                  AND lw.source_id    = d.id
                  AND lw.target_type  = ?
                  AND lw.target_value = d.recommendation_type
            {where}
            ORDER BY approval_weight DESC, d.created_at DESC, d.id ASC
            LIMIT ? OFFSET ?;
            """,
            (SourceType.DECISION.value, TARGET_TYPE_RECOMMENDATION, *params, limit, offset),
        )
        return [(_row_to_decision(r), float(r["approval_weight"])) for r in rows]


# ── Private helpers ────────────────────────────────────────────────────────────

def _objective_filter(objective_substring: Optional[str]) -> tuple[str, tuple[str, ...]]:
    if objective_substring is None or not objective_substring.strip():
        return "", ()
    needle = objective_substring.strip().casefold()
    return f"WHERE instr({_CASEFOLD_SQL_FN}(d.objective), ?) > 0", (needle,)


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


def _row_to_decision(row: sqlite3.Row) -> DecisionRecord:
    return DecisionRecord(
        id=row["id"],
        objective=row["objective"],
        recommendation=row["recommendation"],
        confidence=row["confidence"],
        signals=DecisionSignals(**json.loads(row["signals"])),
        created_at=from_db_timestamp(row["created_at"]),
        command=row["command"],
        raw_output_hash=row["raw_output_hash"],
        embedding_text=row["embedding_text"],
    )
