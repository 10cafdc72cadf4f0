"""
Tests for decision_learning/learning/recorder.py.

Each scenario runs against an in-memory ledger. Edge failures are injected
by wrapping ``LearningWeightRepository.apply_reward_to_edge``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone

import pytest

from decision_learning.config import LearningConfig
from decision_learning.db.repositories.approval_repo import ApprovalRepository
from decision_learning.db.repositories.decision_repo import DecisionRepository
from decision_learning.db.repositories.weight_repo import LearningWeightRepository
from decision_learning.db.schema import apply_schema
from decision_learning.errors import NotFound, StoreTimeout, StoreUnavailable, ValidationError
from decision_learning.learning.edges import derive_edges
from decision_learning.learning.recorder import ApprovalRecorder
from decision_learning.models.weight import EdgeKey
from decision_learning.taxonomy.recommendation_taxonomy import SourceType


@pytest.fixture
def recorder(in_memory_db) -> ApprovalRecorder:
    return ApprovalRecorder(in_memory_db)


def _weights(conn) -> dict[tuple[str, str, str], tuple[float, int]]:
    rows = conn.execute(
        "SELECT source_type, source_id, target_value, weight, update_count FROM learning_weights;"
    ).fetchall()
    return {(r[0], r[1], r[2]): (r[3], r[4]) for r in rows}


def _fail_on(recorder: ApprovalRecorder, monkeypatch, predicate, exc_type=StoreUnavailable):
    original = recorder.weights.apply_reward_to_edge

    def _flaky(edge: EdgeKey, reward: float):
        if predicate(edge):
            raise exc_type("injected failure")
        return original(edge, reward)

    monkeypatch.setattr(recorder.weights, "apply_reward_to_edge", _flaky)


# ── Happy path ────────────────────────────────────────────────────────────────

class TestRecordApproval:
    def test_first_approval_seeds_six_edges(self, recorder, store_decision, in_memory_db):
        store_decision()
        result = recorder.record_approval("d1", approved=True)

        assert result.decision_id == "d1"
        assert result.reward == 1.0
        assert result.weights_updated == 6
        assert result.edges_total == 6
        assert result.learning_applied is True

        weights = _weights(in_memory_db)
        assert weights == {
            ("decision", "d1", "PROCEED"): (1.0, 1),
            ("signal", "financial:ok", "PROCEED"): (1.0, 1),
            ("signal", "risk:low", "PROCEED"): (1.0, 1),
            ("signal", "complexity:low", "PROCEED"): (1.0, 1),
            ("objective", "Ship the billing service to production", "PROCEED"): (1.0, 1),
            ("decision", "trajectory:d1", "pattern:PROCEED"): (1.0, 1),
        }

    def test_approval_row_is_persisted(self, recorder, store_decision, in_memory_db):
        store_decision()
        ts = datetime(2025, 2, 1, 9, 30, tzinfo=timezone.utc)
        result = recorder.record_approval("d1", approved=False, confidence_adjustment=0.5,
                                          timestamp=ts)
        stored = ApprovalRepository(in_memory_db).get_by_id(result.id)
        assert stored is not None
        assert stored.approved is False
        assert stored.confidence_adjustment == 0.5
        assert stored.reward == pytest.approx(-1.5)
        assert stored.timestamp == ts

    def test_iso_timestamp_string_accepted(self, recorder, store_decision, in_memory_db):
        store_decision()
        result = recorder.record_approval("d1", approved=True, timestamp="2025-03-01T08:00:00Z")
        stored = ApprovalRepository(in_memory_db).get_by_id(result.id)
        assert stored.timestamp == datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

    def test_second_approval_keeps_weight_and_counts(self, recorder, store_decision, in_memory_db):
        store_decision()
        recorder.record_approval("d1", approved=True)
        recorder.record_approval("d1", approved=True)
        assert set(_weights(in_memory_db).values()) == {(1.0, 2)}

    def test_rejection_after_approval_blends(self, recorder, store_decision, in_memory_db):
        store_decision()
        recorder.record_approval("d1", approved=True)
        result = recorder.record_approval("d1", approved=False)
        assert result.reward == -1.0
        for weight, count in _weights(in_memory_db).values():
            assert weight == pytest.approx(0.8)
            assert count == 2

    def test_adjusted_rewards(self, recorder, store_decision):
        store_decision()
        assert recorder.record_approval("d1", True, confidence_adjustment=0.5).reward == 1.5
        assert recorder.record_approval("d1", False, confidence_adjustment=-0.5).reward == -0.5
        assert recorder.record_approval("d1", True, confidence_adjustment=-1.0).reward == 0.0

    def test_shared_signal_edges_accumulate_across_decisions(
        self, recorder, store_decision, in_memory_db
    ):
        store_decision(decision_id="a", objective="Migrate database")
        store_decision(decision_id="b", objective="Rotate credentials")
        recorder.record_approval("a", approved=True)
        recorder.record_approval("b", approved=False)

        weights = _weights(in_memory_db)
        assert weights[("signal", "risk:low", "PROCEED")] == (pytest.approx(0.8), 2)
        assert weights[("decision", "a", "PROCEED")] == (1.0, 1)
        assert weights[("decision", "b", "PROCEED")] == (-1.0, 1)
        assert len(weights) == 9

    def test_unknown_recommendation_type(self, recorder, store_decision, in_memory_db):
        store_decision(recommendation="Maybe later")
        recorder.record_approval("d1", approved=True)
        targets = {k[2] for k in _weights(in_memory_db)}
        assert targets == {"UNKNOWN", "pattern:UNKNOWN"}

    def test_learning_rate_from_config(self, in_memory_db, store_decision):
        store_decision()
        recorder = ApprovalRecorder(in_memory_db, LearningConfig(learning_rate=0.5))
        recorder.record_approval("d1", approved=True)
        recorder.record_approval("d1", approved=False)
        assert {w for w, _ in _weights(in_memory_db).values()} == {0.0}

    def test_response_payload(self, recorder, store_decision):
        store_decision()
        payload = recorder.record_approval("d1", approved=True).to_response()
        assert set(payload) == {"id", "decision_id", "reward", "weights_updated",
                                "learning_applied"}
        assert payload["weights_updated"] == 6


# ── Rejected requests ─────────────────────────────────────────────────────────

class TestRejectedRequests:
    def test_unknown_decision_writes_nothing(self, recorder, in_memory_db):
        with pytest.raises(NotFound) as exc_info:
            recorder.record_approval("ghost", approved=True)
        assert exc_info.value.http_status == 404
        assert str(exc_info.value) == "Decision with ID ghost not found"
        assert ApprovalRepository(in_memory_db).count() == 0
        assert LearningWeightRepository(in_memory_db).count() == 0

    @pytest.mark.parametrize("adjustment", [1.5, -1.01, float("nan")])
    def test_out_of_range_adjustment(self, recorder, store_decision, in_memory_db, adjustment):
        store_decision()
        with pytest.raises(ValidationError) as exc_info:
            recorder.record_approval("d1", approved=True, confidence_adjustment=adjustment)
        assert exc_info.value.http_status == 400
        assert exc_info.value.errors[0]["field"] == "confidence_adjustment"
        assert ApprovalRepository(in_memory_db).count() == 0

    @pytest.mark.parametrize("bad_id", ["", " d1", "x" * 256])
    def test_malformed_decision_id(self, recorder, bad_id):
        with pytest.raises(ValidationError) as exc_info:
            recorder.record_approval(bad_id, approved=True)
        assert exc_info.value.errors[0]["field"] == "decision_id"

    def test_unparseable_timestamp(self, recorder, store_decision):
        store_decision()
        with pytest.raises(ValidationError) as exc_info:
            recorder.record_approval("d1", approved=True, timestamp="yesterday-ish")
        assert exc_info.value.errors[0]["field"] == "timestamp"


# ── Partial failure ───────────────────────────────────────────────────────────

class TestPartialFailure:
    def test_failed_edge_is_skipped_and_logged(
        self, recorder, store_decision, in_memory_db, monkeypatch, caplog
    ):
        store_decision()
        _fail_on(recorder, monkeypatch, lambda e: e.source_id == "risk:low")

        with caplog.at_level(logging.ERROR, logger="decision_learning.learning.recorder"):
            result = recorder.record_approval("d1", approved=True)

        assert result.weights_updated == 5
        assert result.edges_total == 6
        assert result.learning_applied is True
        assert ("signal", "risk:low", "PROCEED") not in _weights(in_memory_db)
        assert len(_weights(in_memory_db)) == 5
        assert ApprovalRepository(in_memory_db).count() == 1

        failures = [r for r in caplog.records if r.getMessage().startswith("Edge update failed")]
        assert len(failures) == 1
        record = failures[0]
        assert record.source_type == "signal"
        assert record.source_id == "risk:low"
        assert record.target_value == "PROCEED"
        assert record.reward == 1.0
        assert record.approval_id == result.id

    def test_timeouts_are_handled_like_failures(
        self, recorder, store_decision, in_memory_db, monkeypatch
    ):
        store_decision()
        _fail_on(recorder, monkeypatch, lambda e: e.source_type == SourceType.OBJECTIVE,
                 exc_type=StoreTimeout)
        result = recorder.record_approval("d1", approved=True)
        assert result.weights_updated == 5

    def test_all_edges_failing_still_records_approval(
        self, recorder, store_decision, in_memory_db, monkeypatch
    ):
        store_decision()
        _fail_on(recorder, monkeypatch, lambda e: True)
        result = recorder.record_approval("d1", approved=True)
        assert result.weights_updated == 0
        assert result.learning_applied is False
        assert ApprovalRepository(in_memory_db).count() == 1
        assert LearningWeightRepository(in_memory_db).count() == 0

    def test_replay_restores_missing_edge(
        self, recorder, store_decision, in_memory_db, monkeypatch
    ):
        decision = store_decision()
        _fail_on(recorder, monkeypatch, lambda e: e.source_id == "complexity:low")
        result = recorder.record_approval("d1", approved=True)
        monkeypatch.undo()

        missing = [e for e in derive_edges(decision) if e.source_id == "complexity:low"][0]
        weight = recorder.replay_edge(missing, result.reward)
        assert weight.weight == 1.0
        assert weight.update_count == 1
        assert LearningWeightRepository(in_memory_db).count() == 6


# ── Store failures before any learning ────────────────────────────────────────

class _CommitFailsOnce(sqlite3.Connection):
    """Connection whose next ``commit()`` fails while ``fail_next_commit`` is set."""

    fail_next_commit = False

    def commit(self) -> None:
        if self.fail_next_commit:
            self.fail_next_commit = False
            raise sqlite3.OperationalError("disk I/O error")
        super().commit()


@pytest.fixture
def flaky_commit_db(sample_decision):
    conn = sqlite3.connect(":memory:", factory=_CommitFailsOnce)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    DecisionRepository(conn).insert(sample_decision)
    conn.commit()
    yield conn
    conn.close()


class TestStoreFailures:
    @pytest.mark.parametrize("exc_type", [StoreUnavailable, StoreTimeout])
    def test_decision_lookup_failure_propagates(
        self, recorder, store_decision, in_memory_db, monkeypatch, exc_type
    ):
        store_decision()
        error = exc_type("lookup failed")

        def _boom(decision_id):
            raise error

        monkeypatch.setattr(recorder.decisions, "get_by_id", _boom)
        with pytest.raises(exc_type) as exc_info:
            recorder.record_approval("d1", approved=True)
        assert exc_info.value is error
        assert ApprovalRepository(in_memory_db).count() == 0
        assert LearningWeightRepository(in_memory_db).count() == 0

    @pytest.mark.parametrize("exc_type", [StoreUnavailable, StoreTimeout])
    def test_approval_insert_failure_propagates(
        self, recorder, store_decision, in_memory_db, monkeypatch, exc_type
    ):
        store_decision()
        error = exc_type("insert failed")

        def _boom(approval):
            raise error

        monkeypatch.setattr(recorder.approvals, "insert", _boom)
        with pytest.raises(exc_type) as exc_info:
            recorder.record_approval("d1", approved=True)
        assert exc_info.value is error
        assert ApprovalRepository(in_memory_db).count() == 0
        assert LearningWeightRepository(in_memory_db).count() == 0

    def test_failed_approval_commit_is_not_persisted_later(self, flaky_commit_db):
        recorder = ApprovalRecorder(flaky_commit_db)
        flaky_commit_db.fail_next_commit = True

        with pytest.raises(StoreUnavailable):
            recorder.record_approval("d1", approved=True)
        assert ApprovalRepository(flaky_commit_db).count() == 0
        assert LearningWeightRepository(flaky_commit_db).count() == 0

        result = recorder.record_approval("d1", approved=True)
        assert result.weights_updated == 6
        assert ApprovalRepository(flaky_commit_db).count() == 1
        history = ApprovalRepository(flaky_commit_db).list_for_decision("d1")
        assert [a.id for a in history] == [result.id]
