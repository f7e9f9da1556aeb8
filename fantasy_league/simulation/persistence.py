"""
Event log (de)serialisation for stored matches, and per-match summaries.
The stored seed plus squads are enough to replay a match exactly.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from fantasy_league.models import EventType, MatchEvent, StaminaImpact


def event_to_dict(e: MatchEvent) -> dict[str, Any]:
    """MatchEvent to JSON-serializable dict. Optional fields are omitted when empty."""
    d: dict[str, Any] = {
        "minute": e.minute,
        "type": e.type.value,
        "is_home": e.is_home,
        "description": e.description,
    }
    if e.player_id is not None:
        d["player_id"] = e.player_id
        d["player_name"] = e.player_name
    if e.assist_player_id is not None:
        d["assist_player_id"] = e.assist_player_id
        d["assist_player_name"] = e.assist_player_name
    if e.is_penalty:
        d["is_penalty"] = True
    return d


def event_from_dict(d: dict[str, Any]) -> MatchEvent:
    return MatchEvent(
        minute=int(d["minute"]),
        type=EventType(d["type"]),
        is_home=bool(d["is_home"]),
        description=d.get("description", ""),
        player_id=d.get("player_id"),
        player_name=d.get("player_name"),
        assist_player_id=d.get("assist_player_id"),
        assist_player_name=d.get("assist_player_name"),
        is_penalty=bool(d.get("is_penalty", False)),
    )


def events_to_json(events: Iterable[MatchEvent]) -> str:
    return json.dumps([event_to_dict(e) for e in events])


def events_from_json(raw: str | None) -> tuple[MatchEvent, ...]:
    if not raw:
        return ()
    return tuple(event_from_dict(d) for d in json.loads(raw))


def stamina_impact_to_json(impact: Iterable[StaminaImpact]) -> str:
    return json.dumps([
        {"player_id": s.player_id, "stamina_before": s.stamina_before, "stamina_after": s.stamina_after}
        for s in impact
    ])


def stamina_impact_from_json(raw: str | None) -> tuple[StaminaImpact, ...]:
    if not raw:
        return ()
    return tuple(
        StaminaImpact(player_id=d["player_id"], stamina_before=d["stamina_before"], stamina_after=d["stamina_after"])
        for d in json.loads(raw)
    )


@dataclass
class MatchSummary:
    """Aggregated counts for one match, per side."""
    home_goals: int
    away_goals: int
    home_yellow: int
    away_yellow: int
    home_red: int
    away_red: int
    penalties: int
    near_misses: int
    corners: int
    free_kicks: int


def summarize_match(events: Iterable[MatchEvent]) -> MatchSummary:
    """Build MatchSummary from an event list."""
    s = MatchSummary(0, 0, 0, 0, 0, 0, 0, 0, 0, 0)
    for e in events:
        if e.type is EventType.GOAL:
            if e.is_home:
                s.home_goals += 1
            else:
                s.away_goals += 1
            if e.is_penalty:
                s.penalties += 1
        elif e.type is EventType.YELLOW_CARD:
            if e.is_home:
                s.home_yellow += 1
            else:
                s.away_yellow += 1
        elif e.type is EventType.RED_CARD:
            if e.is_home:
                s.home_red += 1
            else:
                s.away_red += 1
        elif e.type is EventType.NEAR_MISS:
            s.near_misses += 1
        elif e.type is EventType.CORNER:
            s.corners += 1
        elif e.type is EventType.FREE_KICK:
            s.free_kicks += 1
    return s
