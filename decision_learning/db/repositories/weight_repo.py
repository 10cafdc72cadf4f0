"""
Repository for the Weight Ledger (``learning_weights``).

Every mutation goes through ``apply_reward()``, a single upsert whose EMA
arithmetic is evaluated by SQLite against the row's committed value:

    first touch:  weight = reward,                        update_count = 1
    afterwards:   weight = weight + α · (reward − weight), update_count + 1

The statement takes the database write lock, so concurrent writers to the
same edge serialize and each one blends into the latest committed weight.
The caller commits after each call; one edge is one atomic unit.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional
from uuid import uuid4

from decision_learning.db.repositories.base import BaseRepository
from decision_learning.models.weight import EdgeKey, LearningWeight
from decision_learning.taxonomy.recommendation_taxonomy import (
    TARGET_TYPE_RECOMMENDATION,
    SourceType,
)
from decision_learning.utils.time_utils import from_db_timestamp, to_db_timestamp, utcnow

logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.1

_UPSERT_EMA_SQL = """
INSERT INTO learning_weights (
    id, source_type, source_id, target_type, target_value,
    weight, update_count, created_at, updated_at
) VALUES (
    :id, :source_type, :source_id, :target_type, :target_value,
    :reward, 1, :now, :now
)
ON CONFLICT(source_type, source_id, target_type, target_value) DO UPDATE SET
    weight       = learning_weights.weight
                   + :alpha * (excluded.weight - learning_weights.weight),
    update_count = learning_weights.update_count + 1,
    updated_at   = excluded.updated_at;
"""

_SELECT_BY_KEY_SQL = """
SELECT * FROM learning_weights
WHERE source_type = ? AND source_id = ? AND target_type = ? AND target_value = ?;
"""


class LearningWeightRepository(BaseRepository):
    """EMA upserts and reads over ``learning_weights``.

    Attributes:
        learning_rate: EMA smoothing factor α.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        learning_rate: float = DEFAULT_LEARNING_RATE,
    ) -> None:
        super().__init__(conn)
        self.learning_rate = learning_rate

    def apply_reward(
        self,
        source_type: SourceType,
        source_id: str,
        target_value: str,
        reward: float,
        target_type: str = TARGET_TYPE_RECOMMENDATION,
    ) -> LearningWeight:
        """Blend ``reward`` into one edge and return its new state.

        The returned row is read inside the same write transaction, so it is
        exactly the value this call produced.

        Raises:
            StoreTimeout: If the write lock could not be taken in time.
            StoreUnavailable: On any other store failure.
        """
        self.execute(
            _UPSERT_EMA_SQL,
            {
                "id": str(uuid4()),
                "source_type": SourceType(source_type).value,
                "source_id": source_id,
                "target_type": target_type,
                "target_value": target_value,
                "reward": float(reward),
                "alpha": self.learning_rate,
                "now": to_db_timestamp(utcnow()),
            },
        )
        row = self.fetchone(
            _SELECT_BY_KEY_SQL,
            (SourceType(source_type).value, source_id, target_type, target_value),
        )
        assert row is not None
        return _row_to_weight(row)

    def apply_reward_to_edge(self, edge: EdgeKey, reward: float) -> LearningWeight:
        return self.apply_reward(
            edge.source_type, edge.source_id, edge.target_value, reward,
            target_type=edge.target_type,
        )

    def get(self, edge: EdgeKey) -> Optional[LearningWeight]:
        """Fetch one edge by composite key, or ``None`` if never written."""
        row = self.fetchone(
            _SELECT_BY_KEY_SQL,
            (edge.source_type.value, edge.source_id, edge.target_type, edge.target_value),
        )
        return _row_to_weight(row) if row else None

    def list_for_source(self, source_type: SourceType, source_id: str) -> list[LearningWeight]:
        """All edges leaving one source, strongest first."""
        rows = self.fetchall(
            """
            SELECT * FROM learning_weights
            WHERE source_type = ? AND source_id = ?
            ORDER BY weight DESC, target_value ASC;
            """,
            (SourceType(source_type).value, source_id),
        )
        return [_row_to_weight(r) for r in rows]

    def top_weights(
        self,
        source_type: Optional[SourceType] = None,
        limit: int = 20,
    ) -> list[LearningWeight]:
        """Highest-weight edges, optionally restricted to one source type."""
        if source_type is not None:
            rows = self.fetchall(
                """
                SELECT * FROM learning_weights
                WHERE source_type = ?
                ORDER BY weight DESC, update_count DESC LIMIT ?;
                """,
                (SourceType(source_type).value, limit),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM learning_weights ORDER BY weight DESC, update_count DESC LIMIT ?;",
                (limit,),
            )
        return [_row_to_weight(r) for r in rows]

    def count(self) -> int:
        return self.count_rows("learning_weights")


def _row_to_weight(row: sqlite3.Row) -> LearningWeight:
    return LearningWeight(
        id=row["id"],
        source_type=SourceType(row["source_type"]),
        source_id=row["source_id"],
        target_type=row["target_type"],
        target_value=row["target_value"],
        weight=row["weight"],
        update_count=row["update_count"],
        created_at=from_db_timestamp(row["created_at"]),
        updated_at=from_db_timestamp(row["updated_at"]),
    )
