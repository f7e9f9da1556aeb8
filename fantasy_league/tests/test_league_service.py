"""
Tests for the league service: status transitions, matchday sequencing, guards,
forfeits, prizes and reset.
"""
from __future__ import annotations

import pytest

from fantasy_league.errors import (
    ComputationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from fantasy_league.models import FixtureStatus, LeagueStatus, SquadRole
from fantasy_league.persistence.db import get_connection
from fantasy_league.persistence.repositories import (
    ClubRepository,
    FixtureRepository,
    LeagueRepository,
    MatchRepository,
    PlayerRepository,
)
from fantasy_league.services import simulation_service, standings
from fantasy_league.services.friendly_service import FriendlyService
from fantasy_league.services.league_service import LeagueService

PRIZES = {"first": 1000, "second": 500, "third": 250, "others": 100}


@pytest.fixture
def league_service(clock, catalog):
    return LeagueService(clock=clock, catalog=catalog)


@pytest.fixture
def clubs(make_club):
    return [make_club(f"Club {i}") for i in range(4)]


@pytest.fixture
def started_league(db_conn, league_service, clubs):
    """Four clubs, started: 12 fixtures over 6 matchdays."""
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4, prizes=PRIZES)
    for c in clubs:
        league_service.join_league(db_conn, league.id, c.id)
    league_service.start_league(db_conn, league.id)
    return league_service.get_league(db_conn, league.id)


def _available(db_conn, league_service, league_id):
    return [f for f in league_service.list_fixtures(db_conn, league_id) if f.status is FixtureStatus.AVAILABLE]


# ---------- Create & join ----------


def test_create_league(db_conn, league_service):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 8, password="secret")
    assert league.status is LeagueStatus.CREATED
    assert league.current_matchday == 1
    assert league.password_hash and league.password_hash != "secret"
    assert LeagueRepository().get_by_server(db_conn, "srv-1").id == league.id


@pytest.mark.parametrize("capacity", [0, 1, 17])
def test_create_league_capacity_bounds(db_conn, league_service, capacity):
    with pytest.raises(ValidationError):
        league_service.create_league(db_conn, "srv-1", "Sunday League", capacity)


def test_one_league_per_server(db_conn, league_service):
    league_service.create_league(db_conn, "srv-1", "First", 4)
    with pytest.raises(StateConflictError):
        league_service.create_league(db_conn, "srv-1", "Second", 4)


def test_negative_prize_rejected(db_conn, league_service):
    with pytest.raises(ValidationError):
        league_service.create_league(db_conn, "srv-1", "Sunday League", 4, prizes={"first": -1})


def test_reward_player_must_exist(db_conn, league_service):
    with pytest.raises(ValidationError):
        league_service.create_league(db_conn, "srv-1", "Sunday League", 4, reward_player_id="missing")


def test_join_with_password(db_conn, league_service, clubs):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4, password="secret")
    with pytest.raises(ValidationError):
        league_service.join_league(db_conn, league.id, clubs[0].id, password="wrong")
    with pytest.raises(ValidationError):
        league_service.join_league(db_conn, league.id, clubs[0].id)
    joined = league_service.join_league(db_conn, league.id, clubs[0].id, password="secret")
    assert joined.club_ids == [clubs[0].id]


def test_join_twice_conflicts(db_conn, league_service, clubs):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4)
    league_service.join_league(db_conn, league.id, clubs[0].id)
    with pytest.raises(StateConflictError):
        league_service.join_league(db_conn, league.id, clubs[0].id)


def test_join_full_league(db_conn, league_service, clubs):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 2)
    league_service.join_league(db_conn, league.id, clubs[0].id)
    league_service.join_league(db_conn, league.id, clubs[1].id)
    with pytest.raises(ValidationError):
        league_service.join_league(db_conn, league.id, clubs[2].id)
    assert len(league_service.get_league(db_conn, league.id).club_ids) == 2


def test_join_other_server_rejected(db_conn, league_service, make_club):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4)
    stranger = make_club("Strangers", server_id="srv-2")
    with pytest.raises(ValidationError):
        league_service.join_league(db_conn, league.id, stranger.id)


def test_join_order_kept(db_conn, league_service, clubs):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4)
    for c in reversed(clubs):
        league_service.join_league(db_conn, league.id, c.id)
    assert league_service.get_league(db_conn, league.id).club_ids == [c.id for c in reversed(clubs)]


# ---------- Start ----------


def test_start_requires_two_clubs(db_conn, league_service, clubs):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4)
    league_service.join_league(db_conn, league.id, clubs[0].id)
    with pytest.raises(ValidationError):
        league_service.start_league(db_conn, league.id)
    assert league_service.get_league(db_conn, league.id).status is LeagueStatus.CREATED
    assert league_service.list_fixtures(db_conn, league.id) == []


def test_start_league(db_conn, league_service, started_league, clubs, clock):
    league = started_league
    fixtures = league_service.list_fixtures(db_conn, league.id)
    assert league.status is LeagueStatus.STARTED
    assert league.start_date == clock.today()
    assert len(fixtures) == 12
    assert len(league_service.list_fixtures(db_conn, league.id, matchday=1)) == 2
    assert len(_available(db_conn, league_service, league.id)) == 2
    assert {r.club_id for r in league.leaderboard} == {c.id for c in clubs}
    assert all(r.points == 0 and r.played == 0 for r in league.leaderboard)


def test_start_twice_conflicts(db_conn, league_service, started_league):
    with pytest.raises(StateConflictError):
        league_service.start_league(db_conn, started_league.id)


def test_join_after_start_conflicts(db_conn, league_service, started_league, make_club):
    late = make_club("Latecomers")
    with pytest.raises(StateConflictError):
        league_service.join_league(db_conn, started_league.id, late.id)


# ---------- Play ----------


def test_play_fixture(db_conn, league_service, started_league):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    match = league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=42)

    stored = league_service.get_fixture(db_conn, started_league.id, fixture.id)
    assert stored.status is FixtureStatus.PLAYED
    assert (stored.home_score, stored.away_score) == (match.home_score, match.away_score)
    assert MatchRepository().get_by_fixture(db_conn, fixture.id).id == match.id
    assert match.seed == 42
    assert any(line.startswith("FULL TIME:") for line in match.commentary)

    table = {r.club_id: r for r in league_service.get_standings(db_conn, started_league.id)}
    home, away = table[fixture.home_club_id], table[fixture.away_club_id]
    assert home.played == away.played == 1
    assert home.goals_for == away.goals_against == match.home_score
    assert home.points + away.points in (2, 3)

    roster = PlayerRepository().list_by_club(db_conn, fixture.home_club_id)
    starters = [p for p in roster if p.squad_role is SquadRole.STARTER]
    bench = [p for p in roster if p.squad_role is SquadRole.SUBSTITUTE]
    assert all(p.stamina_pct == 80 and p.games_played == 1 for p in starters)
    assert all(p.stamina_pct == 100 and p.games_played == 0 for p in bench)


def test_play_twice_conflicts(db_conn, league_service, started_league):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=1)
    with pytest.raises(StateConflictError):
        league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=1)
    assert len(league_service.list_matches(db_conn, started_league.id)) == 1


def test_play_scheduled_fixture_conflicts(db_conn, league_service, started_league):
    later = league_service.list_fixtures(db_conn, started_league.id, matchday=2)[0]
    with pytest.raises(StateConflictError):
        league_service.play_fixture(db_conn, started_league.id, later.id)


def test_playing_fixture_is_guarded(db_conn, league_service, started_league):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    FixtureRepository().transition(db_conn, fixture.id, FixtureStatus.AVAILABLE, FixtureStatus.PLAYING)
    with pytest.raises(StateConflictError):
        league_service.play_fixture(db_conn, started_league.id, fixture.id)


def test_unknown_fixture(db_conn, league_service, started_league):
    with pytest.raises(NotFoundError):
        league_service.play_fixture(db_conn, started_league.id, "nope")


def test_failed_simulation_rolls_back(db_conn, league_service, started_league, monkeypatch):
    def boom(*args, **kwargs):
        raise ComputationError("engine exploded")

    monkeypatch.setattr("fantasy_league.services.league_service.run_match_simulation", boom)
    fixture = _available(db_conn, league_service, started_league.id)[0]
    with pytest.raises(ComputationError):
        league_service.play_fixture(db_conn, started_league.id, fixture.id)
    assert league_service.get_fixture(db_conn, started_league.id, fixture.id).status is FixtureStatus.AVAILABLE
    assert league_service.list_matches(db_conn, started_league.id) == []


def test_failed_write_rolls_back(db_conn, league_service, started_league, monkeypatch):
    def fail(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr("fantasy_league.services.league_service.apply_condition_changes", fail)
    fixture = _available(db_conn, league_service, started_league.id)[0]
    with pytest.raises(RuntimeError):
        league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=3)
    assert league_service.get_fixture(db_conn, started_league.id, fixture.id).status is FixtureStatus.AVAILABLE
    assert league_service.list_matches(db_conn, started_league.id) == []
    league = league_service.get_league(db_conn, started_league.id)
    assert league.version == started_league.version
    assert all(r.played == 0 for r in league.leaderboard)

    monkeypatch.undo()
    league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=3)
    assert league_service.get_fixture(db_conn, started_league.id, fixture.id).status is FixtureStatus.PLAYED


def test_suspended_player_sits_out(db_conn, league_service, started_league):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    player_repo = PlayerRepository()
    star = player_repo.list_by_club(db_conn, fixture.home_club_id)[0]
    star.is_suspended = True
    player_repo.update_condition(db_conn, star)

    match = league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=5)
    assert all(e.player_id != star.id for e in match.events)
    after = player_repo.get(db_conn, star.id)
    assert after.games_played == 0
    assert after.stamina_pct == 100


def _interleave(monkeypatch, between):
    """Run `between` on a second connection after the rosters are loaded and simulated."""
    def run_then_interleave(setup, is_league, seed=None):
        result = simulation_service.run_match_simulation(setup, is_league, seed=seed)
        other = get_connection()
        try:
            between(other)
        finally:
            other.close()
        return result

    monkeypatch.setattr("fantasy_league.services.league_service.run_match_simulation", run_then_interleave)


def test_play_keeps_suspension_cleared_meanwhile(db_conn, league_service, started_league, monkeypatch):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    player_repo = PlayerRepository()
    star = player_repo.list_by_club(db_conn, fixture.home_club_id)[0]
    star.is_suspended = True
    player_repo.update_condition(db_conn, star)

    _interleave(monkeypatch, lambda other: league_service.clear_suspensions(other, started_league.id))
    league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=5)
    after = player_repo.get(db_conn, star.id)
    assert not after.is_suspended
    assert after.games_played == 0


def test_play_keeps_friendly_stamina_spent_meanwhile(db_conn, league_service, started_league, clubs, clock, monkeypatch):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    rival = next(c for c in clubs if c.id not in (fixture.home_club_id, fixture.away_club_id))
    friendlies = FriendlyService(clock=clock, cooldown_hours=24)

    _interleave(monkeypatch, lambda other: friendlies.play_friendly(other, fixture.home_club_id, rival.id, seed=9))
    league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=5)
    roster = PlayerRepository().list_by_club(db_conn, fixture.home_club_id)
    starters = [p for p in roster if p.squad_role is SquadRole.STARTER]
    # 100 - 10 (friendly) - 20 (league)
    assert all(p.stamina_pct == 70 and p.games_played == 2 for p in starters)


def test_matchday_advances(db_conn, league_service, started_league, clock):
    for f in _available(db_conn, league_service, started_league.id):
        league_service.play_fixture(db_conn, started_league.id, f.id, seed=7)
    league = league_service.get_league(db_conn, started_league.id)
    assert league.current_matchday == 2
    md2 = league_service.list_fixtures(db_conn, league.id, matchday=2)
    assert all(f.status is FixtureStatus.AVAILABLE for f in md2)
    # matchday 2 is dated tomorrow
    with pytest.raises(ValidationError, match=md2[0].scheduled_date.isoformat()):
        league_service.play_fixture(db_conn, league.id, md2[0].id)
    assert league_service.get_fixture(db_conn, league.id, md2[0].id).status is FixtureStatus.AVAILABLE
    clock.advance(days=1)
    league_service.play_fixture(db_conn, league.id, md2[0].id, seed=8)


def test_full_season(db_conn, league_service, started_league, clubs, clock):
    seed = 100
    for matchday in range(1, 7):
        for f in league_service.list_fixtures(db_conn, started_league.id, matchday=matchday):
            league_service.play_fixture(db_conn, started_league.id, f.id, seed=seed)
            seed += 1
        clock.advance(days=1)
    league = league_service.get_league(db_conn, started_league.id)
    assert league.status is LeagueStatus.FINISHED
    assert all(r.played == 6 for r in league.leaderboard)
    assert sum(r.goal_difference for r in league.leaderboard) == 0
    assert league.leaderboard == standings.sort_leaderboard(league.leaderboard)
    matches = league_service.list_matches(db_conn, league.id)
    assert len(matches) == 12
    total_goals = sum(m.home_score + m.away_score for m in matches)
    assert sum(e.count for e in league.top_scorers) <= total_goals
    assert len(league.top_scorers) <= 10


# ---------- Forfeits ----------


def test_auto_forfeit_overdue(db_conn, league_service, started_league, clock):
    assert league_service.process_auto_forfeits(db_conn, started_league.id) == []
    clock.advance(days=1)
    forfeited = league_service.process_auto_forfeits(db_conn, started_league.id)
    assert len(forfeited) == 2
    assert all((m.home_score, m.away_score) == (0, 3) and m.is_forfeited for m in forfeited)
    for m in forfeited:
        f = league_service.get_fixture(db_conn, started_league.id, m.fixture_id)
        assert f.status is FixtureStatus.FORFEITED
        assert f.is_forfeited
    league = league_service.get_league(db_conn, started_league.id)
    assert league.current_matchday == 2
    points = {r.club_id: r.points for r in league.leaderboard}
    for m in forfeited:
        assert points[m.away_club_id] == 3
        assert points[m.home_club_id] == 0
    # idempotent
    assert league_service.process_auto_forfeits(db_conn, started_league.id) == []


def test_auto_forfeit_whole_season(db_conn, league_service, started_league, clock):
    clock.advance(days=30)
    forfeited = league_service.process_auto_forfeits(db_conn, started_league.id)
    assert len(forfeited) == 12
    league = league_service.get_league(db_conn, started_league.id)
    assert league.status is LeagueStatus.FINISHED
    # every club is away three times
    assert all(r.points == 9 and r.goals_for == 9 and r.goals_against == 9 for r in league.leaderboard)
    assert league_service.process_auto_forfeits(db_conn, started_league.id) == []


# ---------- Terminate & reset ----------


def test_terminate_pays_prizes_and_reward(db_conn, league_service, catalog, clubs):
    reward = league_service.available_reward_players(db_conn, "srv-1")[0]
    league = league_service.create_league(
        db_conn, "srv-1", "Sunday League", 4, prizes=PRIZES, reward_player_id=reward.catalog_id
    )
    for c in clubs:
        league_service.join_league(db_conn, league.id, c.id)
    league_service.start_league(db_conn, league.id)
    fixture = _available(db_conn, league_service, league.id)[0]
    league_service.play_fixture(db_conn, league.id, fixture.id, seed=9)

    ranking = standings.sort_leaderboard(league_service.get_standings(db_conn, league.id))
    budgets_before = {c.id: c.budget for c in clubs}
    result = league_service.terminate_league(db_conn, league.id)

    assert result.league.status is LeagueStatus.FINISHED
    assert result.league.prizes_distributed
    assert result.payouts == {
        ranking[0].club_id: 1000,
        ranking[1].club_id: 500,
        ranking[2].club_id: 250,
        ranking[3].club_id: 100,
    }
    club_repo = ClubRepository()
    for club_id, prize in result.payouts.items():
        assert club_repo.get(db_conn, club_id).budget == budgets_before[club_id] + prize

    winner = ranking[0].club_id
    assert result.reward_club_id == winner
    roster = PlayerRepository().list_by_club(db_conn, winner)
    awarded = [p for p in roster if p.catalog_id == reward.catalog_id]
    assert len(awarded) == 1
    assert awarded[0].squad_role is SquadRole.RESERVE

    with pytest.raises(StateConflictError):
        league_service.terminate_league(db_conn, league.id)


def test_reward_skipped_when_already_owned(db_conn, league_service, catalog, clubs):
    reward = league_service.available_reward_players(db_conn, "srv-1")[0]
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4, reward_player_id=reward.catalog_id)
    for c in clubs:
        league_service.join_league(db_conn, league.id, c.id)
    league_service.start_league(db_conn, league.id)
    PlayerRepository().create(db_conn, "srv-1", clubs[3].id, reward, SquadRole.RESERVE, 0)
    result = league_service.terminate_league(db_conn, league.id)
    assert result.reward_club_id is None
    assert result.payouts == {}


def test_terminate_after_finish(db_conn, league_service, started_league, clock):
    clock.advance(days=30)
    league_service.process_auto_forfeits(db_conn, started_league.id)
    result = league_service.terminate_league(db_conn, started_league.id)
    assert sum(result.payouts.values()) == 1000 + 500 + 250 + 100
    with pytest.raises(StateConflictError):
        league_service.terminate_league(db_conn, started_league.id)


def test_terminate_created_league_conflicts(db_conn, league_service):
    league = league_service.create_league(db_conn, "srv-1", "Sunday League", 4)
    with pytest.raises(StateConflictError):
        league_service.terminate_league(db_conn, league.id)


def test_reset_league(db_conn, league_service, started_league, clubs):
    fixture = _available(db_conn, league_service, started_league.id)[0]
    league_service.play_fixture(db_conn, started_league.id, fixture.id, seed=11)
    league = league_service.reset_league(db_conn, started_league.id)
    assert league.status is LeagueStatus.CREATED
    assert league.current_matchday == 1
    assert league.leaderboard == []
    assert league_service.get_league(db_conn, league.id).club_ids == []
    assert league_service.list_fixtures(db_conn, league.id) == []
    assert league_service.list_matches(db_conn, league.id) == []
    # clubs may join again
    league_service.join_league(db_conn, league.id, clubs[0].id)


def test_clear_suspensions(db_conn, league_service, started_league, clubs):
    player_repo = PlayerRepository()
    p = player_repo.list_by_club(db_conn, clubs[0].id)[0]
    p.is_suspended = True
    player_repo.update_condition(db_conn, p)
    assert league_service.clear_suspensions(db_conn, started_league.id) == 1
    assert not player_repo.get(db_conn, p.id).is_suspended


def test_get_league_missing(db_conn, league_service):
    with pytest.raises(NotFoundError):
        league_service.get_league(db_conn, "missing")
