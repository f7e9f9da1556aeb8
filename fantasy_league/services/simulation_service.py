"""
Glue between stored clubs and the pure match engine.
Loads rosters into squads, runs the simulation, and folds stamina and cards
back into the rosters. Writes only through apply_condition_changes.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from fantasy_league import condition
from fantasy_league.errors import ComputationError, NotFoundError
from fantasy_league.models import Club, Player
from fantasy_league.persistence.db import transaction
from fantasy_league.persistence.repositories import ClubRepository, PlayerRepository
from fantasy_league.simulation import SeededRNG, SimulationResult, Squad, simulate_match

logger = logging.getLogger(__name__)


@dataclass
class MatchSetup:
    """Both squads as they took the pitch, plus the full rosters."""
    home_club: Club
    away_club: Club
    home: Squad
    away: Squad


def build_squad(club: Club, roster: list[Player]) -> Squad:
    """
    Lineup in roster order (starters, substitutes, reserves) with suspended
    players left out; the first eleven available players start.
    """
    available = [p for p in roster if not p.is_suspended]
    suspended = [p for p in roster if p.is_suspended]
    return Squad(club_id=club.id, club_name=club.name, players=available, unavailable=suspended)


def load_match_setup(conn: sqlite3.Connection, home_club_id: str, away_club_id: str) -> MatchSetup:
    club_repo = ClubRepository()
    player_repo = PlayerRepository()
    home_club = club_repo.get(conn, home_club_id)
    away_club = club_repo.get(conn, away_club_id)
    if home_club is None:
        raise NotFoundError(f"Club not found: {home_club_id}")
    if away_club is None:
        raise NotFoundError(f"Club not found: {away_club_id}")
    return MatchSetup(
        home_club=home_club,
        away_club=away_club,
        home=build_squad(home_club, player_repo.list_by_club(conn, home_club_id)),
        away=build_squad(away_club, player_repo.list_by_club(conn, away_club_id)),
    )


def run_match_simulation(setup: MatchSetup, is_league: bool, seed: int | None = None) -> SimulationResult:
    """
    Simulate a match between two loaded squads. Does not persist anything.
    Any failure inside the engine surfaces as ComputationError.
    """
    rng = SeededRNG(seed)
    try:
        return simulate_match(setup.home, setup.away, is_league, rng)
    except ComputationError:
        raise
    except Exception as e:
        logger.exception("Simulation failed for %s vs %s (seed=%s)", setup.home.club_name, setup.away.club_name, rng.seed)
        raise ComputationError(f"Simulation failed: {e}") from e


def apply_condition_changes(
    conn: sqlite3.Connection,
    setup: MatchSetup,
    result: SimulationResult,
    count_cards: bool,
) -> list[Player]:
    """
    Stamina for both rosters (starters tire, everyone else recovers) and, when
    count_cards, yellow/red accumulation and suspensions. Returns the updated players.

    Rosters are re-read inside the write transaction so changes committed since
    load_match_setup (suspensions cleared, another match, a transfer) are kept.
    Players that left the club since kick-off are not touched.
    """
    player_repo = PlayerRepository()
    updated: list[Player] = []
    with transaction(conn):
        for squad, starter_ids in ((setup.home, result.home_starter_ids), (setup.away, result.away_starter_ids)):
            took_part = {p.id for p in squad.roster}
            roster = [p for p in player_repo.list_by_club(conn, squad.club_id) if p.id in took_part]
            condition.apply_stamina(roster, starter_ids, result.is_league)
            if count_cards:
                condition.apply_cards({p.id: p for p in roster}, result.events)
            player_repo.update_conditions(conn, roster)
            updated.extend(roster)
    return updated
