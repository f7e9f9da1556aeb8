"""
Tests for leaderboard aggregation, tie-breaks, top tables and prizes.
"""
from __future__ import annotations

from datetime import datetime, timezone

from fantasy_league.models import (
    ClubRef,
    EventType,
    LeaderboardRow,
    Match,
    MatchEvent,
    MatchType,
    PrizeDistribution,
    TopEntry,
)
from fantasy_league.services import standings

PLAYED_AT = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _match(home: str, away: str, hs: int, as_: int, events: tuple[MatchEvent, ...] = ()) -> Match:
    return Match(
        id=f"{home}-{away}",
        match_type=MatchType.LEAGUE,
        home_club_id=home,
        away_club_id=away,
        home_club_name=home.upper(),
        away_club_name=away.upper(),
        home_score=hs,
        away_score=as_,
        played_at=PLAYED_AT,
        events=events,
    )


def _goal(player: str, is_home: bool = True, assist: str | None = None) -> MatchEvent:
    return MatchEvent(
        minute=10,
        type=EventType.GOAL,
        is_home=is_home,
        description="",
        player_id=player,
        player_name=player,
        assist_player_id=assist,
        assist_player_name=assist,
    )


def _rows(*ids: str) -> list[LeaderboardRow]:
    return standings.initial_leaderboard([ClubRef(id=i, name=i.upper()) for i in ids])


def test_win_gives_three_points():
    table = standings.apply_match(_rows("a", "b"), _match("a", "b", 2, 0))
    rows = {r.club_id: r for r in table}
    assert (rows["a"].points, rows["a"].won, rows["a"].goal_difference) == (3, 1, 2)
    assert (rows["b"].points, rows["b"].lost, rows["b"].goal_difference) == (0, 1, -2)
    assert table[0].club_id == "a"


def test_draw_gives_one_point_each():
    table = standings.apply_match(_rows("a", "b"), _match("a", "b", 1, 1))
    assert all(r.points == 1 and r.drawn == 1 and r.played == 1 for r in table)


def test_goal_difference_sums_to_zero():
    table = _rows("a", "b", "c")
    for m in (_match("a", "b", 3, 1), _match("b", "c", 0, 2), _match("c", "a", 4, 4)):
        table = standings.apply_match(table, m)
    assert sum(r.goal_difference for r in table) == 0
    assert sum(r.goals_for for r in table) == sum(r.goals_against for r in table)


def test_missing_row_is_added():
    table = standings.apply_match(_rows("a"), _match("a", "z", 0, 1))
    assert {r.club_id for r in table} == {"a", "z"}


def test_cards_counted_per_side():
    yellow = MatchEvent(20, EventType.YELLOW_CARD, True, "", "p1", "p1")
    red = MatchEvent(30, EventType.RED_CARD, False, "", "p2", "p2")
    table = standings.apply_match(_rows("a", "b"), _match("a", "b", 0, 0, (yellow, red)))
    rows = {r.club_id: r for r in table}
    assert (rows["a"].yellow_cards, rows["a"].red_cards) == (1, 0)
    assert (rows["b"].yellow_cards, rows["b"].red_cards) == (0, 1)


class TestTieBreaks:
    def test_goal_difference_then_goals_for(self):
        rows = [
            LeaderboardRow("a", "A", points=6, goal_difference=2, goals_for=5),
            LeaderboardRow("b", "B", points=6, goal_difference=3, goals_for=4),
            LeaderboardRow("c", "C", points=6, goal_difference=2, goals_for=7),
        ]
        assert [r.club_id for r in standings.sort_leaderboard(rows)] == ["b", "c", "a"]

    def test_fewer_cards_wins(self):
        rows = [
            LeaderboardRow("a", "A", points=4, goals_for=3, red_cards=1),
            LeaderboardRow("b", "B", points=4, goals_for=3, yellow_cards=1),
        ]
        # card weight: a = 2, b = 1
        assert [r.club_id for r in standings.sort_leaderboard(rows)] == ["b", "a"]


class TestTopTables:
    def test_scorers_and_assists(self):
        m = _match("a", "b", 2, 1, (_goal("p1", assist="p2"), _goal("p1"), _goal("q1", is_home=False)))
        scorers = standings.update_top_scorers([], m)
        assists = standings.update_top_assists([], m)
        assert [(e.player_id, e.count) for e in scorers] == [("p1", 2), ("q1", 1)]
        assert scorers[1].club_id == "b"
        assert [(e.player_id, e.count) for e in assists] == [("p2", 1)]

    def test_truncated_to_ten(self):
        m = _match("a", "b", 12, 0, tuple(_goal(f"p{i}") for i in range(12)))
        assert len(standings.update_top_scorers([], m)) == 10

    def test_ties_keep_existing_order(self):
        table = [TopEntry("old", "old", "a", "A", count=1)]
        m = _match("a", "b", 1, 0, (_goal("new"),))
        assert [e.player_id for e in standings.update_top_scorers(table, m)] == ["old", "new"]


def test_prize_for_rank():
    prizes = PrizeDistribution(first=1000, second=500, third=250, others=50)
    assert [standings.prize_for_rank(r, prizes) for r in (1, 2, 3, 4, 9)] == [1000, 500, 250, 50, 50]
