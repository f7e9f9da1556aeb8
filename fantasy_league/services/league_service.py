"""
League service: lifecycle state machine, matchday progression, forfeits, prizes.

League status: created -> started -> finished (reset returns to created).
Fixture status: scheduled -> available -> playing -> played | forfeited.

Every read-then-write on a shared record is a compare-and-set: fixtures by
status, leagues by version. The playing status guards a fixture while its
simulation runs, so two callers can never both simulate it.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from fantasy_league.auth import hash_password, verify_password
from fantasy_league.catalog import CatalogPlayer, PlayerCatalog
from fantasy_league.clock import Clock, SystemClock
from fantasy_league.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from fantasy_league.models import (
    MAX_LEAGUE_CLUBS,
    MAX_SQUAD_SIZE,
    MIN_LEAGUE_CLUBS,
    SUBSTITUTE_LIMIT,
    ClubRef,
    Fixture,
    FixtureStatus,
    LeaderboardRow,
    League,
    LeagueStatus,
    Match,
    MatchType,
    PrizeDistribution,
    SquadRole,
)
from fantasy_league.persistence.db import transaction
from fantasy_league.persistence.repositories import (
    ClubRepository,
    FixtureRepository,
    LeagueRepository,
    MatchRepository,
    PlayerRepository,
)
from fantasy_league.services import standings
from fantasy_league.services.scheduling import generate_fixtures
from fantasy_league.services.simulation_service import (
    apply_condition_changes,
    load_match_setup,
    run_match_simulation,
)

logger = logging.getLogger(__name__)

FORFEIT_HOME_SCORE = 0
FORFEIT_AWAY_SCORE = 3

# ---------- Valid transitions ----------

_VALID_TRANSITIONS: dict[LeagueStatus, set[LeagueStatus]] = {
    LeagueStatus.CREATED: {LeagueStatus.STARTED},
    LeagueStatus.STARTED: {LeagueStatus.FINISHED},
    LeagueStatus.FINISHED: set(),
}


@dataclass
class TerminationResult:
    """Prize payouts by club and the club that received the reward player, if any."""
    league: League
    payouts: dict[str, int] = field(default_factory=dict)
    reward_club_id: str | None = None


# ---------- LeagueService ----------


class LeagueService:
    """
    Domain logic for leagues: status transitions, matchday sequencing, guards.
    Persistence is delegated to repositories; the match engine stays pure.
    """

    def __init__(self, clock: Clock | None = None, catalog: PlayerCatalog | None = None) -> None:
        self._clock = clock or SystemClock()
        self._catalog = catalog
        self._league_repo = LeagueRepository()
        self._club_repo = ClubRepository()
        self._player_repo = PlayerRepository()
        self._fixture_repo = FixtureRepository()
        self._match_repo = MatchRepository()

    # ---------- Reads ----------

    def get_league(self, conn: sqlite3.Connection, league_id: str) -> League:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise NotFoundError(f"League not found: {league_id}")
        return league

    def get_fixture(self, conn: sqlite3.Connection, league_id: str, fixture_id: str) -> Fixture:
        fixture = self._fixture_repo.get(conn, fixture_id)
        if fixture is None or fixture.league_id != league_id:
            raise NotFoundError(f"Fixture {fixture_id} not found in league {league_id}")
        return fixture

    def list_fixtures(
        self, conn: sqlite3.Connection, league_id: str, matchday: int | None = None
    ) -> list[Fixture]:
        if matchday is not None:
            return self._fixture_repo.list_by_matchday(conn, league_id, matchday)
        return self._fixture_repo.list_by_league(conn, league_id)

    def list_matches(self, conn: sqlite3.Connection, league_id: str) -> list[Match]:
        return self._match_repo.list_by_league(conn, league_id)

    def get_standings(self, conn: sqlite3.Connection, league_id: str) -> list[LeaderboardRow]:
        return self.get_league(conn, league_id).leaderboard

    def available_reward_players(self, conn: sqlite3.Connection, server_id: str) -> list[CatalogPlayer]:
        """Catalog players not owned by any club in the server."""
        if self._catalog is None:
            return []
        return self._catalog.excluding(self._player_repo.owned_catalog_ids(conn, server_id))

    # ---------- Guards ----------

    def _assert_transition(self, league: League, new_status: LeagueStatus) -> None:
        allowed = _VALID_TRANSITIONS.get(league.status, set())
        if new_status not in allowed:
            raise StateConflictError(
                f"Invalid transition: {league.status.value} -> {new_status.value} for league {league.id}"
            )

    def _save(self, conn: sqlite3.Connection, league: League) -> None:
        if not self._league_repo.save_state(conn, league):
            raise StateConflictError(f"League {league.id} was modified concurrently; refetch and retry")

    # ---------- Create & join ----------

    def create_league(
        self,
        conn: sqlite3.Connection,
        server_id: str,
        name: str,
        capacity: int,
        password: str = "",
        prizes: PrizeDistribution | dict[str, int] | None = None,
        reward_player_id: str | None = None,
    ) -> League:
        """One league per server. capacity must be within 2-16."""
        name = name.strip()
        if not name:
            raise ValidationError("League name is required")
        if not MIN_LEAGUE_CLUBS <= capacity <= MAX_LEAGUE_CLUBS:
            raise ValidationError(
                f"Capacity must be between {MIN_LEAGUE_CLUBS} and {MAX_LEAGUE_CLUBS} (got {capacity})"
            )
        if prizes is None:
            prizes = PrizeDistribution()
        elif isinstance(prizes, dict):
            try:
                prizes = PrizeDistribution.model_validate(prizes)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid prize distribution: {e.errors()[0]['msg']}") from e
        reward: dict[str, Any] | None = None
        if reward_player_id is not None:
            seed = self._catalog.get(reward_player_id) if self._catalog else None
            if seed is None:
                raise ValidationError(f"Reward player not in catalog: {reward_player_id}")
            reward = seed.model_dump(mode="json")
        with transaction(conn):
            if self._league_repo.get_by_server(conn, server_id) is not None:
                raise StateConflictError(f"Server {server_id} already has a league")
            league = self._league_repo.create(
                conn,
                server_id=server_id,
                name=name,
                password_hash=hash_password(password),
                capacity=capacity,
                prizes=prizes,
                now=self._clock.now(),
                reward_player=reward,
            )
        logger.info("League %s (%s) created in server %s, capacity %d", league.name, league.id, server_id, capacity)
        return league

    def join_league(
        self, conn: sqlite3.Connection, league_id: str, club_id: str, password: str = ""
    ) -> League:
        """Only while created. Wrong password or full league: ValidationError. Already joined: StateConflictError."""
        with transaction(conn):
            league = self.get_league(conn, league_id)
            if league.status is not LeagueStatus.CREATED:
                raise StateConflictError(f"League {league.name} is {league.status.value}; joining is closed")
            if not verify_password(password, league.password_hash):
                raise ValidationError("Wrong league password")
            club = self._club_repo.get(conn, club_id)
            if club is None:
                raise NotFoundError(f"Club not found: {club_id}")
            if club.server_id != league.server_id:
                raise ValidationError(f"Club {club.name} belongs to another server")
            current = self._league_repo.league_id_for_club(conn, club_id)
            if current == league_id:
                raise StateConflictError(f"Club {club.name} already joined {league.name}")
            if current is not None:
                raise StateConflictError(f"Club {club.name} already plays in another league")
            if not self._league_repo.add_club(conn, league_id, club_id, league.capacity, self._clock.now()):
                raise ValidationError(f"League {league.name} is full ({league.capacity} clubs)")
        logger.info("Club %s joined league %s", club.name, league.name)
        return self.get_league(conn, league_id)

    # ---------- Start league & scheduling ----------

    def start_league(self, conn: sqlite3.Connection, league_id: str) -> list[Fixture]:
        """
        created -> started. Generates the double round-robin, zeroed leaderboard,
        matchday 1 available. Nothing is written if scheduling fails.
        """
        with transaction(conn):
            league = self.get_league(conn, league_id)
            self._assert_transition(league, LeagueStatus.STARTED)
            if len(league.club_ids) < MIN_LEAGUE_CLUBS:
                raise ValidationError(
                    f"Need at least {MIN_LEAGUE_CLUBS} clubs to start a league (have {len(league.club_ids)})"
                )
            refs: list[ClubRef] = []
            for cid in league.club_ids:
                club = self._club_repo.get(conn, cid)
                if club is None:
                    raise NotFoundError(f"Club not found: {cid}")
                refs.append(ClubRef(id=club.id, name=club.name))
            today = self._clock.today()
            fixtures = generate_fixtures(refs, today, league_id=league.id)
            self._fixture_repo.create_many(conn, fixtures)
            league.leaderboard = standings.initial_leaderboard(refs)
            league.top_scorers = []
            league.top_assists = []
            league.current_matchday = 1
            league.start_date = today
            league.status = LeagueStatus.STARTED
            self._save(conn, league)
        logger.info(
            "League %s started: %d clubs, %d fixtures over %d matchdays",
            league.name, len(refs), len(fixtures), fixtures[-1].matchday,
        )
        return fixtures

    # ---------- Play ----------

    def play_fixture(
        self, conn: sqlite3.Connection, league_id: str, fixture_id: str, seed: int | None = None
    ) -> Match:
        """
        Simulate an available fixture whose date has come. The fixture is marked
        playing first; a failed simulation puts it back to available and re-raises.
        """
        league = self.get_league(conn, league_id)
        if league.status is not LeagueStatus.STARTED:
            raise StateConflictError(f"League {league.name} is {league.status.value}; fixtures cannot be played")
        fixture = self.get_fixture(conn, league_id, fixture_id)
        if fixture.status is not FixtureStatus.AVAILABLE:
            raise StateConflictError(f"Fixture {fixture_id} is {fixture.status.value}, not available")
        if fixture.scheduled_date > self._clock.today():
            raise ValidationError(f"Fixture {fixture_id} cannot be played before {fixture.scheduled_date.isoformat()}")
        if not self._fixture_repo.transition(conn, fixture_id, FixtureStatus.AVAILABLE, FixtureStatus.PLAYING):
            raise StateConflictError(f"Fixture {fixture_id} is already being played")

        try:
            setup = load_match_setup(conn, fixture.home_club_id, fixture.away_club_id)
            result = run_match_simulation(setup, is_league=True, seed=seed)
            match = Match(
                id=str(uuid.uuid4()),
                match_type=MatchType.LEAGUE,
                league_id=league_id,
                fixture_id=fixture.id,
                matchday=fixture.matchday,
                home_club_id=fixture.home_club_id,
                away_club_id=fixture.away_club_id,
                home_club_name=fixture.home_club_name,
                away_club_name=fixture.away_club_name,
                home_score=result.home_score,
                away_score=result.away_score,
                played_at=self._clock.now(),
                events=tuple(result.events),
                commentary=tuple(result.commentary),
                stamina_impact=tuple(result.stamina_impact),
                seed=result.seed,
            )
            with transaction(conn):
                if not self._fixture_repo.record_result(
                    conn, fixture.id, FixtureStatus.PLAYING, FixtureStatus.PLAYED,
                    match.home_score, match.away_score,
                ):
                    raise StateConflictError(f"Fixture {fixture_id} left the playing state")
                self._match_repo.create(conn, match)
                apply_condition_changes(conn, setup, result, count_cards=True)
                self._fold_match(conn, league_id, match)
        except Exception:
            self._fixture_repo.transition(conn, fixture_id, FixtureStatus.PLAYING, FixtureStatus.AVAILABLE)
            logger.warning("Fixture %s rolled back to available after a failed play", fixture_id)
            raise

        logger.info(
            "Matchday %d: %s %d-%d %s",
            match.matchday, match.home_club_name, match.home_score, match.away_score, match.away_club_name,
        )
        return match

    def _fold_match(self, conn: sqlite3.Connection, league_id: str, match: Match) -> League:
        """Standings, top tables and matchday advancement for one finished fixture. Inside a transaction."""
        league = self.get_league(conn, league_id)
        league.leaderboard = standings.apply_match(league.leaderboard, match)
        league.top_scorers = standings.update_top_scorers(league.top_scorers, match)
        league.top_assists = standings.update_top_assists(league.top_assists, match)
        self._advance_matchday(conn, league)
        self._save(conn, league)
        return league

    def _advance_matchday(self, conn: sqlite3.Connection, league: League) -> None:
        """When the current matchday is done, open the next one; finish the league when nothing is left."""
        while self._fixture_repo.count_pending(conn, league.id, league.current_matchday) == 0:
            if self._fixture_repo.count_pending(conn, league.id) == 0:
                league.status = LeagueStatus.FINISHED
                logger.info("League %s finished after matchday %d", league.name, league.current_matchday)
                return
            league.current_matchday += 1
            opened = self._fixture_repo.activate_matchday(conn, league.id, league.current_matchday)
            logger.info("League %s advanced to matchday %d (%d fixtures available)",
                        league.name, league.current_matchday, opened)

    # ---------- Forfeits ----------

    def process_auto_forfeits(self, conn: sqlite3.Connection, league_id: str) -> list[Match]:
        """
        Forfeit every available fixture dated before today (0-3 to the away club),
        repeating as matchdays open, until none is overdue. Safe to run repeatedly.
        """
        league = self.get_league(conn, league_id)
        if league.status is not LeagueStatus.STARTED:
            return []
        today = self._clock.today()
        forfeited: list[Match] = []
        while True:
            overdue = self._fixture_repo.list_overdue_available(conn, league_id, today)
            if not overdue:
                break
            for fixture in overdue:
                match = self._forfeit(conn, league_id, fixture)
                if match is not None:
                    forfeited.append(match)
        if forfeited:
            logger.info("League %s: %d fixtures forfeited", league.name, len(forfeited))
        return forfeited

    def _forfeit(self, conn: sqlite3.Connection, league_id: str, fixture: Fixture) -> Match | None:
        with transaction(conn):
            if not self._fixture_repo.record_result(
                conn, fixture.id, FixtureStatus.AVAILABLE, FixtureStatus.FORFEITED,
                FORFEIT_HOME_SCORE, FORFEIT_AWAY_SCORE, is_forfeited=True,
            ):
                # picked up by a player (or another sweep) in the meantime
                return None
            match = Match(
                id=str(uuid.uuid4()),
                match_type=MatchType.LEAGUE,
                league_id=league_id,
                fixture_id=fixture.id,
                matchday=fixture.matchday,
                home_club_id=fixture.home_club_id,
                away_club_id=fixture.away_club_id,
                home_club_name=fixture.home_club_name,
                away_club_name=fixture.away_club_name,
                home_score=FORFEIT_HOME_SCORE,
                away_score=FORFEIT_AWAY_SCORE,
                played_at=self._clock.now(),
                is_forfeited=True,
            )
            self._match_repo.create(conn, match)
            self._fold_match(conn, league_id, match)
        logger.info("Fixture %s forfeited: %s 0-3 %s", fixture.id, fixture.home_club_name, fixture.away_club_name)
        return match

    # ---------- Terminate & reset ----------

    def terminate_league(self, conn: sqlite3.Connection, league_id: str) -> TerminationResult:
        """
        Pay prizes by final rank and award the reward player to the winner
        (if their squad has room). Allowed from started, or from finished while
        prizes are still unpaid.
        """
        with transaction(conn):
            league = self.get_league(conn, league_id)
            if league.status is LeagueStatus.FINISHED:
                if league.prizes_distributed:
                    raise StateConflictError(f"Prizes for league {league.name} were already distributed")
            else:
                self._assert_transition(league, LeagueStatus.FINISHED)
            ranking = standings.sort_leaderboard(league.leaderboard)
            result = TerminationResult(league=league)
            for rank, row in enumerate(ranking, start=1):
                prize = standings.prize_for_rank(rank, league.prizes)
                if prize <= 0:
                    continue
                if not self._club_repo.adjust_budget(conn, row.club_id, prize):
                    raise NotFoundError(f"Club not found: {row.club_id}")
                result.payouts[row.club_id] = prize
                logger.info("League %s: rank %d %s receives %d", league.name, rank, row.club_name, prize)
            if league.reward_player and ranking:
                result.reward_club_id = self._award_reward_player(conn, league, ranking[0].club_id)
            league.status = LeagueStatus.FINISHED
            league.prizes_distributed = True
            self._save(conn, league)
        return result

    def _award_reward_player(self, conn: sqlite3.Connection, league: League, club_id: str) -> str | None:
        seed = CatalogPlayer.model_validate(league.reward_player)
        size = self._player_repo.count_by_club(conn, club_id)
        if size >= MAX_SQUAD_SIZE:
            logger.info("Reward player %s not awarded: club %s squad is full", seed.name, club_id)
            return None
        if seed.catalog_id in self._player_repo.owned_catalog_ids(conn, league.server_id):
            logger.warning("Reward player %s already owned in server %s; skipped", seed.name, league.server_id)
            return None
        role = SquadRole.RESERVE if size >= SUBSTITUTE_LIMIT else SquadRole.SUBSTITUTE
        order = self._player_repo.max_order(conn, club_id, role) + 1
        self._player_repo.create(conn, league.server_id, club_id, seed, role, order)
        logger.info("Reward player %s awarded to club %s as %s", seed.name, club_id, role.value)
        return club_id

    def reset_league(self, conn: sqlite3.Connection, league_id: str) -> League:
        """Back to created: no clubs, fixtures, matches or standings; matchday 1."""
        with transaction(conn):
            league = self.get_league(conn, league_id)
            self._match_repo.delete_by_league(conn, league_id)
            self._fixture_repo.delete_by_league(conn, league_id)
            self._league_repo.remove_all_clubs(conn, league_id)
            league.club_ids = []
            league.leaderboard = []
            league.top_scorers = []
            league.top_assists = []
            league.current_matchday = 1
            league.start_date = None
            league.prizes_distributed = False
            league.status = LeagueStatus.CREATED
            self._save(conn, league)
        logger.info("League %s reset", league.name)
        return league

    def clear_suspensions(self, conn: sqlite3.Connection, league_id: str) -> int:
        """Lift every suspension in the league's clubs. Run between matchdays."""
        league = self.get_league(conn, league_id)
        with transaction(conn):
            cleared = self._player_repo.clear_suspensions(conn, league.club_ids)
        logger.info("League %s: %d suspensions cleared", league.name, cleared)
        return cleared
