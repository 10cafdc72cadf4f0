"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept model lists and return plain multi-line strings
suitable for ``typer.echo()``. No third-party dependencies.
"""

from __future__ import annotations

from decision_learning.learning.ranking import DecisionPage
from decision_learning.models.weight import LearningWeight

_SOURCE_ID_WIDTH = 48


def _truncate(text: str, width: int) -> str:
    text = text.replace("\n", " ")
    return text if len(text) <= width else text[: width - 3] + "..."


def format_weights_table(weights: list[LearningWeight]) -> str:
    """Format Weight Ledger edges as an ASCII table, in the given order.

    Args:
        weights: Edges to show (already ordered by the caller).

    Returns:
        Multi-line table, or a one-line notice when empty.
    """
    if not weights:
        return "  (no learning weights recorded)"

    header = (
        f"  {'SOURCE':<10} {'SOURCE ID':<{_SOURCE_ID_WIDTH}} "
        f"{'TARGET':<16} {'WEIGHT':>8} {'UPDATES':>7}"
    )
    lines = [header, "  " + "-" * (len(header) - 2)]
    for w in weights:
        lines.append(
            f"  {w.source_type.value:<10} "
            f"{_truncate(w.source_id, _SOURCE_ID_WIDTH):<{_SOURCE_ID_WIDTH}} "
            f"{w.target_value:<16} {w.weight:>8.4f} {w.update_count:>7d}"
        )
    return "\n".join(lines)


def format_decision_page(page: DecisionPage) -> str:
    """Format a ranked decision page: one line per decision with its weight."""
    first = page.offset + 1 if page.data else page.offset
    last = page.offset + len(page.data)
    lines = [f"  Decisions {first}-{last} of {page.total}"]
    if not page.data:
        return "\n".join(lines + ["  (no decisions match)"])

    lines.append(f"  {'RANK':>4} {'WEIGHT':>8} {'TYPE':<8} {'CONF':<6} OBJECTIVE")
    weights = page.weights or [0.0] * len(page.data)
    for rank, (decision, weight) in enumerate(zip(page.data, weights), start=page.offset + 1):
        lines.append(
            f"  {rank:>4} {weight:>8.4f} {decision.recommendation_type.value:<8} "
            f"{decision.confidence.value:<6} {_truncate(decision.objective, 60)}"
        )
    return "\n".join(lines)
