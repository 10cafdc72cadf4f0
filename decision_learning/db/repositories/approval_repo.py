"""
Repository for approval events — append-only.
"""

from __future__ import annotations

import logging
import sqlite3

from decision_learning.db.repositories.base import BaseRepository
from decision_learning.models.approval import ApprovalRecord
from decision_learning.utils.time_utils import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)


class ApprovalRepository(BaseRepository):
    """Append/read access to the ``approvals`` table. No update, no delete."""

    def insert(self, approval: ApprovalRecord) -> str:
        """Append an approval record and return its id.

        Raises:
            sqlite3.IntegrityError: If the id is taken or the decision FK
                does not resolve.
        """
        self.execute(
            """
            INSERT INTO approvals (
                id, decision_id, approved, confidence_adjustment,
                reward, timestamp, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                approval.id,
                approval.decision_id,
                int(approval.approved),
                approval.confidence_adjustment,
                approval.reward,
                to_db_timestamp(approval.timestamp),
                to_db_timestamp(approval.created_at),
            ),
        )
        return approval.id

    def get_by_id(self, approval_id: str) -> ApprovalRecord | None:
        row = self.fetchone("SELECT * FROM approvals WHERE id = ?;", (approval_id,))
        return _row_to_approval(row) if row else None

    def list_for_decision(self, decision_id: str) -> list[ApprovalRecord]:
        """Audit trail for one decision, oldest event first."""
        rows = self.fetchall(
            """
            SELECT * FROM approvals
            WHERE decision_id = ?
            ORDER BY timestamp ASC, created_at ASC;
            """,
            (decision_id,),
        )
        return [_row_to_approval(r) for r in rows]

    def count(self) -> int:
        return self.count_rows("approvals")


def _row_to_approval(row: sqlite3.Row) -> ApprovalRecord:
    return ApprovalRecord(
        id=row["id"],
        decision_id=row["decision_id"],
        approved=bool(row["approved"]),
        confidence_adjustment=row["confidence_adjustment"],
        reward=row["reward"],
        timestamp=from_db_timestamp(row["timestamp"]),
        created_at=from_db_timestamp(row["created_at"]),
    )
