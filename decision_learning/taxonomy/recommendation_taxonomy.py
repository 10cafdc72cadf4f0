"""
Recommendation and edge taxonomy.

Two vocabularies describe every Weight Ledger edge:
  - ``RecommendationType`` — the leading token of a decision's recommendation
    text (``"PROCEED: ship it"`` → ``PROCEED``). Used as the edge target.
  - ``SourceType``         — what kind of thing the edge starts from.

Usage example::

    from decision_learning.taxonomy.recommendation_taxonomy import (
        extract_recommendation_type,
    )

    extract_recommendation_type("defer: wait for Q3")  # RecommendationType.DEFER

This module has NO imports from any other ``decision_learning`` package.
"""

import re
from enum import StrEnum


class RecommendationType(StrEnum):
    """Categorical leading token of a recommendation string."""

    PROCEED = "PROCEED"
    """Go ahead with the objective."""

    DEFER = "DEFER"
    """Postpone; revisit later."""

    REJECT = "REJECT"
    """Do not pursue the objective."""

    REVIEW = "REVIEW"
    """Needs human review before acting."""

    HALT = "HALT"
    """Stop in-flight work immediately."""

    UNKNOWN = "UNKNOWN"
    """No recognizable leading token."""


class SourceType(StrEnum):
    """Origin of a Weight Ledger edge."""

    DECISION = "decision"
    SIGNAL = "signal"
    OBJECTIVE = "objective"


class Confidence(StrEnum):
    """Confidence label attached to a decision record."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


TARGET_TYPE_RECOMMENDATION = "recommendation"
TRAJECTORY_PREFIX = "trajectory:"
PATTERN_PREFIX = "pattern:"

_KNOWN_TYPES = "|".join(
    t.value for t in RecommendationType if t is not RecommendationType.UNKNOWN
)
_LEADING_TYPE_RE = re.compile(rf"^\s*({_KNOWN_TYPES})", re.IGNORECASE | re.ASCII)


def extract_recommendation_type(recommendation: str) -> RecommendationType:
    """Classify a recommendation string by its leading token.

    Matching is ASCII case-insensitive and tolerates leading whitespace. Anything
    that does not start with a known token is ``UNKNOWN``.

    Args:
        recommendation: Free-text recommendation, e.g. ``"PROCEED: ship it"``.

    Returns:
        The matching ``RecommendationType``.
    """
    match = _LEADING_TYPE_RE.match(recommendation or "")
    if match is None:
        return RecommendationType.UNKNOWN
    return RecommendationType(match.group(1).upper())


def pattern_target(recommendation_type: RecommendationType) -> str:
    """Target value of a trajectory edge: ``"pattern:<TYPE>"``."""
    return f"{PATTERN_PREFIX}{recommendation_type.value}"
