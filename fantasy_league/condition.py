"""
Player condition and discipline: stamina after a match, yellow/red card
accumulation and suspensions.

Stamina is clamped to [0, 100]. Starters lose stamina, everyone else recovers.
Two yellow cards (accumulated across matches) give a suspension and reset the count;
a red card gives a suspension immediately.
"""
from __future__ import annotations

from typing import Iterable

from fantasy_league.models import EventType, MatchEvent, Player, StaminaImpact, SuspensionReason

STAMINA_MIN = 0
STAMINA_MAX = 100
LEAGUE_STARTER_DELTA = -20
LEAGUE_BENCH_DELTA = 10
FRIENDLY_STARTER_DELTA = -10
FRIENDLY_BENCH_DELTA = 5
YELLOWS_FOR_SUSPENSION = 2


def stamina_deltas(is_league: bool) -> tuple[int, int]:
    """(starter delta, non-starter delta)."""
    if is_league:
        return LEAGUE_STARTER_DELTA, LEAGUE_BENCH_DELTA
    return FRIENDLY_STARTER_DELTA, FRIENDLY_BENCH_DELTA


def _clamp(value: int) -> int:
    return max(STAMINA_MIN, min(STAMINA_MAX, value))


def stamina_impact(
    players: Iterable[Player],
    starter_ids: set[str],
    is_league: bool,
) -> list[StaminaImpact]:
    """Before/after stamina for every player of a roster. Does not mutate."""
    starter_delta, bench_delta = stamina_deltas(is_league)
    out: list[StaminaImpact] = []
    for p in players:
        delta = starter_delta if p.id in starter_ids else bench_delta
        out.append(StaminaImpact(
            player_id=p.id,
            stamina_before=p.stamina_pct,
            stamina_after=_clamp(p.stamina_pct + delta),
        ))
    return out


def apply_stamina(players: Iterable[Player], starter_ids: set[str], is_league: bool) -> None:
    """Mutate stamina in place; starters also get games_played + 1."""
    starter_delta, bench_delta = stamina_deltas(is_league)
    for p in players:
        if p.id in starter_ids:
            p.stamina_pct = _clamp(p.stamina_pct + starter_delta)
            p.games_played += 1
        else:
            p.stamina_pct = _clamp(p.stamina_pct + bench_delta)


def apply_yellow_card(player: Player) -> None:
    player.yellow_cards += 1
    if player.yellow_cards >= YELLOWS_FOR_SUSPENSION:
        player.yellow_cards = 0
        player.is_suspended = True
        player.suspension_reason = SuspensionReason.YELLOW_CARDS


def apply_red_card(player: Player) -> None:
    player.red_cards += 1
    player.is_suspended = True
    player.suspension_reason = SuspensionReason.RED_CARD


def apply_cards(players_by_id: dict[str, Player], events: Iterable[MatchEvent]) -> set[str]:
    """
    Fold a match's card events into the given players, in event order.
    Events for players not in players_by_id are ignored (the other side's roster).
    Returns the ids of players that were touched.
    """
    touched: set[str] = set()
    for e in events:
        if e.player_id is None or e.player_id not in players_by_id:
            continue
        if e.type is EventType.YELLOW_CARD:
            apply_yellow_card(players_by_id[e.player_id])
        elif e.type is EventType.RED_CARD:
            apply_red_card(players_by_id[e.player_id])
        else:
            continue
        touched.add(e.player_id)
    return touched


def clear_suspension(player: Player) -> None:
    player.is_suspended = False
    player.suspension_reason = None
