"""
Weight Ledger models.

``EdgeKey`` identifies one (source → target) edge. ``LearningWeight`` is the
persisted state of that edge: its EMA-smoothed weight and how many times it
has been updated.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from decision_learning.taxonomy.recommendation_taxonomy import (
    TARGET_TYPE_RECOMMENDATION,
    SourceType,
)


class EdgeKey(BaseModel):
    """Composite key of a Weight Ledger edge."""

    model_config = ConfigDict(frozen=True)

    source_type: SourceType
    source_id: str
    target_value: str
    target_type: str = TARGET_TYPE_RECOMMENDATION

    def describe(self) -> str:
        return f"({self.source_type.value}, {self.source_id}) -> {self.target_value}"


class LearningWeight(BaseModel):
    """Current state of one edge.

    Attributes:
        id: Row identifier (UUID4 string).
        source_type: ``decision``, ``signal`` or ``objective``.
        source_id: Source identifier (decision id or content-derived key).
        target_type: Always ``recommendation``.
        target_value: Recommendation type (or ``pattern:<TYPE>`` for
            trajectory edges).
        weight: EMA-smoothed reward.
        update_count: Number of rewards applied; 1 after the first.
        created_at: First touch (UTC).
        updated_at: Most recent update (UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    source_type: SourceType
    source_id: str
    target_type: str = TARGET_TYPE_RECOMMENDATION
    target_value: str
    weight: float
    update_count: int
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> EdgeKey:
        return EdgeKey(
            source_type=self.source_type,
            source_id=self.source_id,
            target_type=self.target_type,
            target_value=self.target_value,
        )
