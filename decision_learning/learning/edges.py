"""
Edge enumeration for one approval event.

Signals and objectives have no identity record of their own, so their edge
keys are derived from content: ``"<signal>:<first 50 chars>"`` and the first
200 characters of the objective. Repeated approvals on similar content
reinforce the same edge; long near-duplicates collapse into one key.

Per event the ledger receives six edges, all targeting the decision's
recommendation type:

    (decision,  <decision_id>)               -> <TYPE>
    (signal,    "financial:<text[:50]>")     -> <TYPE>
    (signal,    "risk:<text[:50]>")          -> <TYPE>
    (signal,    "complexity:<text[:50]>")    -> <TYPE>
    (objective, <objective[:200]>)           -> <TYPE>
    (decision,  "trajectory:<decision_id>")  -> "pattern:<TYPE>"
"""

from __future__ import annotations

from decision_learning.models.decision import DecisionRecord
from decision_learning.models.weight import EdgeKey
from decision_learning.taxonomy.recommendation_taxonomy import (
    TRAJECTORY_PREFIX,
    RecommendationType,
    SourceType,
    pattern_target,
)

SIGNAL_KEY_CHARS = 50
OBJECTIVE_KEY_CHARS = 200


def signal_source_id(signal_name: str, text: str, max_chars: int = SIGNAL_KEY_CHARS) -> str:
    return f"{signal_name}:{text[:max_chars]}"


def objective_source_id(objective: str, max_chars: int = OBJECTIVE_KEY_CHARS) -> str:
    return objective[:max_chars]


def trajectory_source_id(decision_id: str) -> str:
    return f"{TRAJECTORY_PREFIX}{decision_id}"


def decision_edge(decision_id: str, recommendation_type: RecommendationType) -> EdgeKey:
    """The direct decision edge; this is the one the ranking query reads."""
    return EdgeKey(
        source_type=SourceType.DECISION,
        source_id=decision_id,
        target_value=recommendation_type.value,
    )


def derive_edges(
    decision: DecisionRecord,
    signal_key_chars: int = SIGNAL_KEY_CHARS,
    objective_key_chars: int = OBJECTIVE_KEY_CHARS,
) -> list[EdgeKey]:
    """Enumerate every ledger edge touched by an approval of ``decision``.

    Duplicate keys are dropped while preserving order, so no edge is
    updated twice for one event.

    Args:
        decision: The decision being approved or rejected.
        signal_key_chars: Truncation length for signal text.
        objective_key_chars: Truncation length for the objective.

    Returns:
        Distinct ``EdgeKey`` objects (six for any well-formed decision).
    """
    rec_type = decision.recommendation_type

    edges = [decision_edge(decision.id, rec_type)]
    for name, text in decision.signals.items():
        edges.append(
            EdgeKey(
                source_type=SourceType.SIGNAL,
                source_id=signal_source_id(name, text, signal_key_chars),
                target_value=rec_type.value,
            )
        )
    edges.append(
        EdgeKey(
            source_type=SourceType.OBJECTIVE,
            source_id=objective_source_id(decision.objective, objective_key_chars),
            target_value=rec_type.value,
        )
    )
    edges.append(
        EdgeKey(
            source_type=SourceType.DECISION,
            source_id=trajectory_source_id(decision.id),
            target_value=pattern_target(rec_type),
        )
    )

    return list(dict.fromkeys(edges))
