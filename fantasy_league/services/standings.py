"""
Standings aggregation: leaderboard rows and top-scorer/top-assist tables.
Pure functions; the league service persists the results.

Ordering: points desc, goal difference desc, goals for desc, then card weight
(yellow + 2 * red) asc.
"""
from __future__ import annotations

from typing import Callable, Iterable, Sequence

from fantasy_league.models import (
    TOP_TABLE_SIZE,
    ClubRef,
    LeaderboardRow,
    Match,
    MatchEvent,
    PrizeDistribution,
    TopEntry,
)

POINTS_WIN = 3
POINTS_DRAW = 1
POINTS_LOSS = 0


def initial_leaderboard(clubs: Iterable[ClubRef]) -> list[LeaderboardRow]:
    """One zeroed row per club, in the given order."""
    return [LeaderboardRow(club_id=c.id, club_name=c.name) for c in clubs]


def _sort_key(row: LeaderboardRow) -> tuple[int, int, int, int]:
    return (-row.points, -row.goal_difference, -row.goals_for, row.card_weight)


def sort_leaderboard(rows: Iterable[LeaderboardRow]) -> list[LeaderboardRow]:
    return sorted(rows, key=_sort_key)


def _apply_side(row: LeaderboardRow, scored: int, conceded: int, yellow: int, red: int) -> None:
    row.played += 1
    row.goals_for += scored
    row.goals_against += conceded
    row.goal_difference = row.goals_for - row.goals_against
    if scored > conceded:
        row.won += 1
        row.points += POINTS_WIN
    elif scored == conceded:
        row.drawn += 1
        row.points += POINTS_DRAW
    else:
        row.lost += 1
        row.points += POINTS_LOSS
    row.yellow_cards += yellow
    row.red_cards += red


def apply_match(rows: Sequence[LeaderboardRow], match: Match) -> list[LeaderboardRow]:
    """
    Fold one match into the two rows it touches and return the re-sorted table.
    A club without a row (joined before a reset, say) gets one.
    """
    by_club = {r.club_id: r for r in rows}
    table = list(rows)
    for club_id, club_name in (
        (match.home_club_id, match.home_club_name),
        (match.away_club_id, match.away_club_name),
    ):
        if club_id not in by_club:
            by_club[club_id] = LeaderboardRow(club_id=club_id, club_name=club_name)
            table.append(by_club[club_id])

    home_yellow, home_red = match.cards_for(is_home=True)
    away_yellow, away_red = match.cards_for(is_home=False)
    _apply_side(by_club[match.home_club_id], match.home_score, match.away_score, home_yellow, home_red)
    _apply_side(by_club[match.away_club_id], match.away_score, match.home_score, away_yellow, away_red)
    return sort_leaderboard(table)


def _update_top(
    table: Sequence[TopEntry],
    match: Match,
    player_of: Callable[[MatchEvent], tuple[str | None, str | None]],
) -> list[TopEntry]:
    entries = {e.player_id: e for e in table}
    ordered = list(table)
    for event in match.goals:
        player_id, player_name = player_of(event)
        if player_id is None:
            continue
        entry = entries.get(player_id)
        if entry is None:
            if event.is_home:
                club_id, club_name = match.home_club_id, match.home_club_name
            else:
                club_id, club_name = match.away_club_id, match.away_club_name
            entry = TopEntry(player_id=player_id, player_name=player_name or "", club_id=club_id, club_name=club_name)
            entries[player_id] = entry
            ordered.append(entry)
        entry.count += 1
    # stable: earlier entries win ties
    return sorted(ordered, key=lambda e: -e.count)[:TOP_TABLE_SIZE]


def update_top_scorers(table: Sequence[TopEntry], match: Match) -> list[TopEntry]:
    return _update_top(table, match, lambda e: (e.player_id, e.player_name))


def update_top_assists(table: Sequence[TopEntry], match: Match) -> list[TopEntry]:
    return _update_top(table, match, lambda e: (e.assist_player_id, e.assist_player_name))


def prize_for_rank(rank: int, prizes: PrizeDistribution) -> int:
    """Prize for a 1-based final rank."""
    if rank == 1:
        return prizes.first
    if rank == 2:
        return prizes.second
    if rank == 3:
        return prizes.third
    return prizes.others
