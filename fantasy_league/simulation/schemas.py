"""
Input and output shapes for the match engine, plus the per-minute event table.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from fantasy_league.models import STARTING_ELEVEN, MatchEvent, Player, StaminaImpact

MATCH_MINUTES = 90
INTENSITY_MULTIPLIER = 1.5
INTENSE_WINDOWS = ((30, 45), (75, 90))  # inclusive minute ranges
HOME_BONUS = 0.15
LUCK_MIN = 0.85
LUCK_MAX = 1.15
UPSET_LUCK_THRESHOLD = 0.9
ASSIST_PROBABILITY = 0.6
CROWD_MIN = 20_000
CROWD_MAX = 49_999


class EventCategory(str, Enum):
    """What is rolled each minute. PENALTY produces a goal event."""
    GOAL = "goal"
    PENALTY = "penalty"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    CORNER = "corner"
    FREE_KICK = "freekick"
    NEAR_MISS = "near_miss"
    COMMENTARY = "commentary"


# Trial order within a minute is the order of this table.
EVENT_PROBABILITIES: tuple[tuple[EventCategory, float], ...] = (
    (EventCategory.GOAL, 0.02),
    (EventCategory.PENALTY, 0.002),
    (EventCategory.YELLOW_CARD, 0.008),
    (EventCategory.RED_CARD, 0.001),
    (EventCategory.CORNER, 0.05),
    (EventCategory.FREE_KICK, 0.03),
    (EventCategory.NEAR_MISS, 0.015),
    (EventCategory.COMMENTARY, 0.05),
)


def is_intense_minute(minute: int) -> bool:
    return any(lo <= minute <= hi for lo, hi in INTENSE_WINDOWS)


@dataclass
class Squad:
    """
    One side of a match: club identity plus an ordered roster.
    The first eleven players are the starters. unavailable players (suspended)
    take no part but still count as rested for stamina.
    """
    club_id: str
    club_name: str
    players: list[Player]
    unavailable: list[Player] = field(default_factory=list)

    @property
    def starters(self) -> list[Player]:
        return self.players[:STARTING_ELEVEN]

    @property
    def bench(self) -> list[Player]:
        return self.players[STARTING_ELEVEN:] + self.unavailable

    @property
    def roster(self) -> list[Player]:
        return self.players + self.unavailable

    @property
    def starter_ids(self) -> set[str]:
        return {p.id for p in self.starters}


@dataclass
class SimulationResult:
    """Outcome of one simulated match. Strengths are after home bonus and luck."""
    home_score: int
    away_score: int
    events: list[MatchEvent]
    commentary: list[str]
    stamina_impact: list[StaminaImpact]
    home_strength: float
    away_strength: float
    home_luck: float
    away_luck: float
    seed: int
    is_league: bool = True
    home_starter_ids: set[str] = field(default_factory=set)
    away_starter_ids: set[str] = field(default_factory=set)

    @property
    def winner(self) -> str | None:
        """'home', 'away' or None for a draw."""
        if self.home_score > self.away_score:
            return "home"
        if self.away_score > self.home_score:
            return "away"
        return None
