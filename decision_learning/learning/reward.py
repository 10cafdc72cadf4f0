"""
Reward derivation — pure functions, no DB or I/O.

    reward = +1.0 if approved else -1.0
    reward *= (1 + confidence_adjustment)      # when an adjustment is given

An adjustment of -1 zeroes the reward, +1 doubles its magnitude. Inputs
outside ``[-1, 1]`` are rejected, so rewards always lie in ``[-2, 2]``.
"""

from __future__ import annotations

import math
from typing import Optional

from decision_learning.errors import ValidationError

APPROVE_REWARD = 1.0
REJECT_REWARD = -1.0
MIN_ADJUSTMENT = -1.0
MAX_ADJUSTMENT = 1.0


def validate_confidence_adjustment(confidence_adjustment: Optional[float]) -> None:
    """Raise ``ValidationError`` unless the adjustment is ``None`` or in ``[-1, 1]``."""
    if confidence_adjustment is None:
        return
    if math.isnan(confidence_adjustment) or not (
        MIN_ADJUSTMENT <= confidence_adjustment <= MAX_ADJUSTMENT
    ):
        raise ValidationError.for_field(
            "confidence_adjustment",
            f"must be in [{MIN_ADJUSTMENT:g}, {MAX_ADJUSTMENT:g}], got {confidence_adjustment}",
        )


def derive_reward(approved: bool, confidence_adjustment: Optional[float] = None) -> float:
    """Map one approval event to its reward scalar.

    Args:
        approved: ``True`` for an approval, ``False`` for a rejection.
        confidence_adjustment: Optional offset in ``[-1, 1]``.

    Returns:
        The reward in ``[-2, 2]``.

    Raises:
        ValidationError: If ``confidence_adjustment`` is out of range.
    """
    validate_confidence_adjustment(confidence_adjustment)
    reward = APPROVE_REWARD if approved else REJECT_REWARD
    if confidence_adjustment is not None:
        reward = reward * (1 + confidence_adjustment)
    return reward
