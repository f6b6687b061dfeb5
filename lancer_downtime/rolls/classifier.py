"""
Result classification for downtime checks.

Maps a numeric outcome onto the four ordered tiers:

Pilot check (1d20 +/- kept d6):
- Triumph: total 20+
- Success: 10-19
- Conflict: 1-9
- Disaster: 0 or less

Dice pool (count of 5s and 6s):
- Triumph: 3+ successes
- Success: 2
- Conflict: 1
- Disaster: 0
"""

from dataclasses import dataclass
from typing import Iterable

from lancer_downtime.data_models import CheckKind, InvalidCheckError, OutcomeTier


# A d6 face at or above this counts as one success in a dice pool
SUCCESS_FACE = 5

# Inclusive lower bounds, best tier first
THRESHOLD_ROLL_TIERS: tuple[tuple[int, OutcomeTier], ...] = (
    (20, OutcomeTier.TRIUMPH),
    (10, OutcomeTier.SUCCESS),
    (1, OutcomeTier.CONFLICT),
)

SUCCESS_POOL_TIERS: tuple[tuple[int, OutcomeTier], ...] = (
    (3, OutcomeTier.TRIUMPH),
    (2, OutcomeTier.SUCCESS),
    (1, OutcomeTier.CONFLICT),
)


@dataclass(frozen=True)
class TierInfo:
    """Display metadata for an outcome tier."""
    tier: OutcomeTier
    label: str
    css_class: str
    color: str


TIER_INFO: dict[OutcomeTier, TierInfo] = {
    OutcomeTier.TRIUMPH: TierInfo(OutcomeTier.TRIUMPH, "Triumph", "triumph", "#ffd700"),
    OutcomeTier.SUCCESS: TierInfo(OutcomeTier.SUCCESS, "Success", "success", "#1db954"),
    OutcomeTier.CONFLICT: TierInfo(OutcomeTier.CONFLICT, "Conflict", "conflict", "#ff9800"),
    OutcomeTier.DISASTER: TierInfo(OutcomeTier.DISASTER, "Disaster", "disaster", "#e94560"),
}


def classify(kind: CheckKind, value: int) -> OutcomeTier:
    """
    Classify a check total (pilot check) or success count (dice pool).

    Raises:
        InvalidCheckError: If kind is not a CheckKind
    """
    if kind == CheckKind.THRESHOLD_ROLL:
        thresholds = THRESHOLD_ROLL_TIERS
    elif kind == CheckKind.SUCCESS_POOL:
        thresholds = SUCCESS_POOL_TIERS
    else:
        raise InvalidCheckError(f"Unknown check kind: {kind!r}")

    for minimum, tier in thresholds:
        if value >= minimum:
            return tier
    return OutcomeTier.DISASTER


def count_successes(faces: Iterable[int]) -> int:
    """Count the d6 faces that meet SUCCESS_FACE."""
    return sum(1 for face in faces if face >= SUCCESS_FACE)


def tier_info(tier: OutcomeTier) -> TierInfo:
    return TIER_INFO[OutcomeTier(tier)]
