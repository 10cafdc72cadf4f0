"""
Decision record model.

A ``DecisionRecord`` is the output of one synthesis run: an objective, a
recommendation whose leading token classifies it (PROCEED, DEFER, ...), a
confidence label and three categorical signals.

Decision records are frozen — created once, never mutated. Approvals
reference them by ``id`` and the Weight Ledger keys several edges on their
content, so a mutation would silently re-point accumulated learning.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from decision_learning.taxonomy.recommendation_taxonomy import (
    Confidence,
    RecommendationType,
    extract_recommendation_type,
)
from decision_learning.utils.time_utils import ensure_utc, utcnow

MAX_ID_LENGTH = 255
_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")

SIGNAL_NAMES: tuple[str, ...] = ("financial", "risk", "complexity")


def validate_record_id(v: str) -> str:
    """Shared id check: non-empty, no surrounding whitespace, bounded length."""
    if not v or v != v.strip():
        raise ValueError("id must be a non-empty string without surrounding whitespace.")
    if len(v) > MAX_ID_LENGTH:
        raise ValueError(f"id must be at most {MAX_ID_LENGTH} characters.")
    return v


class DecisionSignals(BaseModel):
    """The three named signals summarised by a synthesis run.

    Attributes:
        financial:  Financial signal summary.
        risk:       Risk signal summary.
        complexity: Complexity signal summary.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    financial: str
    risk: str
    complexity: str

    def items(self) -> list[tuple[str, str]]:
        """``(signal_name, text)`` pairs in canonical order."""
        return [(name, getattr(self, name)) for name in SIGNAL_NAMES]


class DecisionRecord(BaseModel):
    """Immutable decision produced by a synthesis run.

    Attributes:
        id: Opaque unique identifier supplied by the creator.
        objective: Originating intent (free text).
        recommendation: Free text starting with a type token.
        confidence: ``HIGH``, ``MEDIUM`` or ``LOW``.
        signals: Financial, risk and complexity summaries.
        created_at: Creation timestamp (UTC).
        command: Optional command line that produced the decision.
        raw_output_hash: Optional SHA-256 hex digest of the raw run output.
        embedding_text: Optional text intended for later embedding.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    objective: str = Field(min_length=1)
    recommendation: str = Field(min_length=1)
    confidence: Confidence
    signals: DecisionSignals
    created_at: datetime = Field(default_factory=utcnow)
    command: Optional[str] = None
    raw_output_hash: Optional[str] = None
    embedding_text: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return validate_record_id(v)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("raw_output_hash")
    @classmethod
    def validate_raw_output_hash(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _SHA256_RE.match(v):
            raise ValueError("raw_output_hash must be 64 lowercase hex characters (SHA-256).")
        return v

    @property
    def recommendation_type(self) -> RecommendationType:
        return extract_recommendation_type(self.recommendation)
