"""
Shared pytest fixtures for the decision learning test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``file_db``: Path to a file-backed database with the schema applied,
    for tests that need several connections (concurrency, CLI).
  - Decision factories shared by several test modules.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Callable, Generator

import pytest

from decision_learning.db.connection import get_connection
from decision_learning.db.repositories.decision_repo import DecisionRepository
from decision_learning.db.schema import apply_schema
from decision_learning.models.decision import DecisionRecord, DecisionSignals


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def file_db(tmp_path) -> str:
    """Path to an initialized on-disk database (WAL mode)."""
    db_path = str(tmp_path / "ledger.db")
    with get_connection(db_path) as conn:
        apply_schema(conn)
    return db_path


# ── Sample domain objects ─────────────────────────────────────────────────────

def build_decision(
    decision_id: str = "d1",
    objective: str = "Ship the billing service to production",
    recommendation: str = "PROCEED: ship it",
    confidence: str = "HIGH",
    financial: str = "ok",
    risk: str = "low",
    complexity: str = "low",
    created_at: datetime | None = None,
) -> DecisionRecord:
    return DecisionRecord(
        id=decision_id,
        objective=objective,
        recommendation=recommendation,
        confidence=confidence,
        signals=DecisionSignals(financial=financial, risk=risk, complexity=complexity),
        created_at=created_at or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def decision_factory() -> Callable[..., DecisionRecord]:
    """Return ``build_decision`` so tests can build variants."""
    return build_decision


@pytest.fixture
def sample_decision() -> DecisionRecord:
    """Decision ``d1``: PROCEED, signals ok/low/low."""
    return build_decision()


@pytest.fixture
def store_decision(in_memory_db) -> Callable[..., DecisionRecord]:
    """Factory that builds a decision and inserts it into ``in_memory_db``."""

    def _store(**kwargs) -> DecisionRecord:
        decision = build_decision(**kwargs)
        DecisionRepository(in_memory_db).insert(decision)
        in_memory_db.commit()
        return decision

    return _store
