"""
Match simulation engine: deterministic, replayable 90-minute football matches
from two squads and a seeded random source.
"""
from .schemas import (
    EVENT_PROBABILITIES,
    MATCH_MINUTES,
    EventCategory,
    SimulationResult,
    Squad,
    is_intense_minute,
)
from .rng import SeededRNG, new_seed
from .strength import chemistry, team_strength
from .engine import MatchEngine, home_advantage, pick_player, simulate_match
from .persistence import (
    MatchSummary,
    event_from_dict,
    event_to_dict,
    events_from_json,
    events_to_json,
    summarize_match,
)

__all__ = [
    "EVENT_PROBABILITIES",
    "MATCH_MINUTES",
    "EventCategory",
    "SimulationResult",
    "Squad",
    "is_intense_minute",
    "SeededRNG",
    "new_seed",
    "chemistry",
    "team_strength",
    "MatchEngine",
    "home_advantage",
    "pick_player",
    "simulate_match",
    "MatchSummary",
    "event_from_dict",
    "event_to_dict",
    "events_from_json",
    "events_to_json",
    "summarize_match",
]
