"""
Team strength: 40% mean starter rating, 25% mean starter stamina, 20% chemistry.
Chemistry rewards a 1-4-4-2 shape; each unit of deviation per bucket costs 5 points.
"""
from __future__ import annotations

from collections import Counter
from typing import Sequence

from fantasy_league.models import Player, PositionBucket, position_bucket

RATING_WEIGHT = 0.40
STAMINA_WEIGHT = 0.25
CHEMISTRY_WEIGHT = 0.20

IDEAL_SHAPE: dict[PositionBucket, int] = {
    PositionBucket.GK: 1,
    PositionBucket.DEF: 4,
    PositionBucket.MID: 4,
    PositionBucket.ATT: 2,
}
CHEMISTRY_MAX = 100
CHEMISTRY_FLOOR = 50
CHEMISTRY_PENALTY = 5


def chemistry(players: Sequence[Player]) -> int:
    counts = Counter(position_bucket(p.position) for p in players)
    score = CHEMISTRY_MAX
    for bucket, ideal in IDEAL_SHAPE.items():
        score -= CHEMISTRY_PENALTY * abs(counts.get(bucket, 0) - ideal)
    return max(CHEMISTRY_FLOOR, score)


def team_strength(starters: Sequence[Player]) -> float:
    """Raw strength before home bonus and luck. 0 for an empty lineup."""
    if not starters:
        return 0.0
    n = len(starters)
    mean_rating = sum(p.rating for p in starters) / n
    mean_stamina = sum(p.stamina_pct for p in starters) / n
    return (
        RATING_WEIGHT * mean_rating
        + STAMINA_WEIGHT * mean_stamina
        + CHEMISTRY_WEIGHT * chemistry(starters)
    )
