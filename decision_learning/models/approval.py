"""
Approval event models.

``ApprovalRequest`` is the validated inbound shape of one approval
submission. ``ApprovalRecord`` is the append-only audit row persisted for
it, carrying the computed reward. ``ApprovalResult`` is what the recorder
hands back to its caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from decision_learning.models.decision import validate_record_id
from decision_learning.utils.time_utils import ensure_utc, utcnow


class ApprovalRequest(BaseModel):
    """Inbound approval submission.

    Attributes:
        decision_id: Decision being approved or rejected.
        approved: ``True`` for approval, ``False`` for rejection.
        confidence_adjustment: Optional reward multiplier offset in ``[-1, 1]``.
        timestamp: Event time; ``None`` means "now" at recording time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    decision_id: str
    approved: bool
    confidence_adjustment: Optional[float] = None
    timestamp: Optional[datetime] = None

    @field_validator("decision_id")
    @classmethod
    def validate_decision_id(cls, v: str) -> str:
        return validate_record_id(v)

    @field_validator("confidence_adjustment")
    @classmethod
    def validate_adjustment_range(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not -1.0 <= v <= 1.0:
            raise ValueError(f"confidence_adjustment must be in [-1, 1], got {v}.")
        return v

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class ApprovalRecord(BaseModel):
    """Persisted approval event. Never updated or deleted.

    Attributes:
        id: UUID4 string assigned at recording time.
        decision_id: FK to ``decisions.id``.
        approved: Approval outcome.
        confidence_adjustment: Adjustment supplied with the event, if any.
        reward: Reward scalar derived from the event (stored for audit).
        timestamp: Event time (UTC).
        created_at: Time the row was written (UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    decision_id: str
    approved: bool
    confidence_adjustment: Optional[float] = None
    reward: float
    timestamp: datetime
    created_at: datetime = Field(default_factory=utcnow)


class ApprovalResult(BaseModel):
    """Outcome of ``ApprovalRecorder.record_approval``.

    ``weights_updated`` counts edge updates that actually committed; it can
    be lower than ``edges_total`` when some edges failed and were logged for
    replay.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    decision_id: str
    reward: float
    weights_updated: int
    edges_total: int
    learning_applied: bool

    def to_response(self) -> dict[str, Any]:
        """Boundary payload: ``{id, decision_id, reward, weights_updated, learning_applied}``."""
        return {
            "id": self.id,
            "decision_id": self.decision_id,
            "reward": self.reward,
            "weights_updated": self.weights_updated,
            "learning_applied": self.learning_applied,
        }
