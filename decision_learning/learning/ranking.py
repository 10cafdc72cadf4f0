"""
Ranking Query — approval-biased decision listing.

Decisions whose direct edge ``(decision, id) → <recommendation type>`` has
accumulated positive approval history surface first; decisions with no edge
rank as weight 0. Ties fall back to newest first.

Pagination is clamped rather than rejected:
  - ``limit``  → ``[1, max_limit]`` (unparseable → ``default_limit``)
  - ``offset`` → ``>= 0``          (unparseable → 0)
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Optional

from decision_learning.config import ListingConfig
from decision_learning.db.repositories.decision_repo import DecisionRepository
from decision_learning.models.decision import DecisionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecisionPage:
    """One page of ranked decisions.

    Attributes:
        data:     Decisions in rank order.
        total:    Count under the filter, independent of paging.
        limit:    Effective (clamped) page size.
        offset:   Effective (clamped) offset.
        weights:  Approval weight used to rank each entry of ``data``.
    """

    data: list[DecisionRecord]
    total: int
    limit: int
    offset: int
    weights: list[float] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Boundary payload ``{data, total, limit, offset}``."""
        return {
            "data": [d.model_dump(mode="json") for d in self.data],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
        }


def clamp_limit(limit: Any, listing: Optional[ListingConfig] = None) -> int:
    listing = listing or ListingConfig()
    parsed = _to_int(limit)
    if parsed is None:
        return listing.default_limit
    return min(max(parsed, 1), listing.max_limit)


def clamp_offset(offset: Any) -> int:
    parsed = _to_int(offset)
    return max(parsed, 0) if parsed is not None else 0


def list_decisions(
    conn: sqlite3.Connection,
    objective: Optional[str] = None,
    limit: Any = None,
    offset: Any = 0,
    listing: Optional[ListingConfig] = None,
) -> DecisionPage:
    """List decisions ordered by accumulated approval weight.

    Args:
        conn: Open connection.
        objective: Optional case-insensitive substring filter on the objective.
        limit: Requested page size (clamped).
        offset: Requested offset (clamped).
        listing: Pagination bounds; defaults to ``ListingConfig()``.

    Returns:
        ``DecisionPage`` with items, filtered total and effective paging.
    """
    listing = listing or ListingConfig()
    eff_limit = clamp_limit(limit, listing)
    eff_offset = clamp_offset(offset)

    repo = DecisionRepository(conn)
    total = repo.count(objective)
    ranked = repo.list_ranked(objective, limit=eff_limit, offset=eff_offset)

    logger.info(
        "Decisions listed | objective=%r count=%d total=%d", objective, len(ranked), total
    )
    return DecisionPage(
        data=[decision for decision, _ in ranked],
        total=total,
        limit=eff_limit,
        offset=eff_offset,
        weights=[weight for _, weight in ranked],
    )


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
