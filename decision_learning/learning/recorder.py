"""
Approval Recorder — turns one approval event into an audit row plus a
fan-out of independent Weight Ledger updates.

Flow of ``record_approval()``:
  1. Validate the request (``ValidationError``).
  2. Load the decision (``NotFound`` — nothing is written).
  3. Derive the reward and append the ``ApprovalRecord``; commit.
  4. Derive the edges and apply each one as its own transaction.
     A failed edge is rolled back alone, logged with its key for
     out-of-band replay, and skipped; committed edges stay committed.
  5. Return an ``ApprovalResult`` whose ``weights_updated`` counts the
     edges that committed.

The recorder holds no state shared between requests beyond its connection;
run one recorder per worker, each with its own connection.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from decision_learning.config import LearningConfig
from decision_learning.db.connection import translate_store_error
from decision_learning.db.repositories.approval_repo import ApprovalRepository
from decision_learning.db.repositories.decision_repo import DecisionRepository
from decision_learning.db.repositories.weight_repo import LearningWeightRepository
from decision_learning.errors import NotFound, StoreError, ValidationError
from decision_learning.learning.edges import derive_edges
from decision_learning.learning.reward import derive_reward
from decision_learning.models.approval import ApprovalRecord, ApprovalRequest, ApprovalResult
from decision_learning.models.weight import EdgeKey, LearningWeight
from decision_learning.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class ApprovalRecorder:
    """Records approval events and applies their learning.

    Attributes:
        conn: Connection owned by the caller; the recorder commits on it.
        learning: Learning parameters (EMA rate, key lengths).
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        learning: Optional[LearningConfig] = None,
    ) -> None:
        self.conn = conn
        self.learning = learning or LearningConfig()
        self.decisions = DecisionRepository(conn)
        self.approvals = ApprovalRepository(conn)
        self.weights = LearningWeightRepository(conn, learning_rate=self.learning.learning_rate)

    def record_approval(
        self,
        decision_id: str,
        approved: bool,
        confidence_adjustment: Optional[float] = None,
        timestamp: Optional[datetime | str] = None,
    ) -> ApprovalResult:
        """Persist one approval event and update every edge it touches.

        Args:
            decision_id: Id of an existing decision.
            approved: Approval (``True``) or rejection (``False``).
            confidence_adjustment: Optional offset in ``[-1, 1]``.
            timestamp: Event time (datetime or ISO-8601 string); defaults
                to now.

        Returns:
            ``ApprovalResult`` with the reward and edge counts.

        Raises:
            ValidationError: Malformed id or out-of-range adjustment.
            NotFound: ``decision_id`` does not resolve.
            StoreError: The decision lookup or the approval insert failed.
        """
        request = _parse_request(decision_id, approved, confidence_adjustment, timestamp)

        decision = self.decisions.get_by_id(request.decision_id)
        if decision is None:
            logger.warning("Approval for unknown decision %s rejected", request.decision_id)
            raise NotFound("decision", request.decision_id)

        reward = derive_reward(request.approved, request.confidence_adjustment)
        approval = ApprovalRecord(
            id=str(uuid4()),
            decision_id=decision.id,
            approved=request.approved,
            confidence_adjustment=request.confidence_adjustment,
            reward=reward,
            timestamp=request.timestamp or utcnow(),
        )
        try:
            self.approvals.insert(approval)
            self._commit()
        except sqlite3.IntegrityError as exc:
            self._rollback()
            raise translate_store_error(exc) from exc
        except StoreError:
            # an uncommitted approval must not ride along with the next commit
            self._rollback()
            raise

        edges = derive_edges(
            decision,
            signal_key_chars=self.learning.signal_key_chars,
            objective_key_chars=self.learning.objective_key_chars,
        )
        weights_updated = 0
        for edge in edges:
            if self._apply_edge(edge, reward, approval.id):
                weights_updated += 1

        logger.info(
            "Approval processed | approval_id=%s decision_id=%s approved=%s reward=%.4f "
            "type=%s weights_updated=%d/%d",
            approval.id, decision.id, request.approved, reward,
            decision.recommendation_type.value, weights_updated, len(edges),
        )

        return ApprovalResult(
            id=approval.id,
            decision_id=decision.id,
            reward=reward,
            weights_updated=weights_updated,
            edges_total=len(edges),
            learning_applied=weights_updated > 0,
        )

    def replay_edge(self, edge: EdgeKey, reward: float) -> LearningWeight:
        """Re-apply one logged edge failure during reconciliation.

        Raises:
            StoreError: If the update fails again (nothing is committed).
        """
        try:
            weight = self.weights.apply_reward_to_edge(edge, reward)
            self._commit()
        except StoreError:
            self._rollback()
            raise
        logger.info("Replayed edge %s | weight=%.4f", edge.describe(), weight.weight)
        return weight

    # ── Internals ─────────────────────────────────────────────────────────────

    def _apply_edge(self, edge: EdgeKey, reward: float, approval_id: str) -> bool:
        try:
            weight = self.weights.apply_reward_to_edge(edge, reward)
            self._commit()
        except StoreError as exc:
            self._rollback()
            logger.error(
                "Edge update failed: %s | %s",
                edge.describe(), exc,
                extra={
                    "approval_id": approval_id,
                    "source_type": edge.source_type.value,
                    "source_id": edge.source_id,
                    "target_type": edge.target_type,
                    "target_value": edge.target_value,
                    "reward": reward,
                },
            )
            return False
        logger.debug(
            "Edge %s -> weight=%.4f update_count=%d",
            edge.describe(), weight.weight, weight.update_count,
        )
        return True

    def _commit(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            raise translate_store_error(exc) from exc

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error as exc:
            logger.error("Rollback failed: %s", exc)


def _parse_request(
    decision_id: str,
    approved: bool,
    confidence_adjustment: Optional[float],
    timestamp: Optional[datetime | str],
) -> ApprovalRequest:
    """Validate raw inputs into an ``ApprovalRequest``."""
    try:
        return ApprovalRequest(
            decision_id=decision_id,
            approved=approved,
            confidence_adjustment=confidence_adjustment,
            timestamp=timestamp,
        )
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        logger.warning("Approval validation failed: %s", errors)
        raise ValidationError("Request validation failed", errors=errors) from exc
