"""
Tests for double round-robin fixture generation.
Deterministic; every pair twice with home/away reversed; at most one game per club per matchday.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date, timedelta

import pytest

from fantasy_league.errors import ConsistencyError, ValidationError
from fantasy_league.models import ClubRef, FixtureStatus
from fantasy_league.services.scheduling import (
    generate_fixtures,
    round_robin_pairings,
    total_matchdays,
    verify_schedule,
)

START = date(2026, 3, 2)


def _clubs(n: int) -> list[ClubRef]:
    return [ClubRef(id=f"c{i}", name=f"Club {i}") for i in range(n)]


def test_round_robin_two_clubs():
    """2 clubs: 1 week, 1 match."""
    assert round_robin_pairings(2) == [[(0, 1)]]


def test_round_robin_four_clubs():
    """4 clubs: 3 weeks, 2 matches per week, each pair once."""
    weeks = round_robin_pairings(4)
    assert len(weeks) == 3
    assert all(len(w) == 2 for w in weeks)
    pairs = {p for w in weeks for p in w}
    assert pairs == {(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)}


def test_round_robin_three_clubs_rests_one_per_week():
    weeks = round_robin_pairings(3)
    assert len(weeks) == 3
    assert all(len(w) == 1 for w in weeks)
    resting = [({0, 1, 2} - set(w[0])).pop() for w in weeks]
    assert sorted(resting) == [0, 1, 2]


def test_round_robin_is_deterministic():
    assert round_robin_pairings(9) == round_robin_pairings(9)


@pytest.mark.parametrize("n", range(2, 17))
def test_generate_fixtures_invariants(n):
    clubs = _clubs(n)
    fixtures = generate_fixtures(clubs, START, league_id="L1")

    assert len(fixtures) == n * (n - 1)
    assert max(f.matchday for f in fixtures) == total_matchdays(n)
    assert all(f.home_club_id != f.away_club_id for f in fixtures)

    ordered = Counter((f.home_club_id, f.away_club_id) for f in fixtures)
    assert all(count == 1 for count in ordered.values())
    for a in clubs:
        for b in clubs:
            if a.id != b.id:
                assert ordered[(a.id, b.id)] == 1

    by_matchday: dict[int, list] = {}
    for f in fixtures:
        by_matchday.setdefault(f.matchday, []).append(f)
    for matchday, day in by_matchday.items():
        assert len(day) == n // 2
        ids = [f.home_club_id for f in day] + [f.away_club_id for f in day]
        assert len(ids) == len(set(ids))
        assert all(f.scheduled_date == START + timedelta(days=matchday - 1) for f in day)


def test_four_clubs_matchday_one_available():
    fixtures = generate_fixtures(_clubs(4), START)
    assert len(fixtures) == 12
    md1 = [f for f in fixtures if f.matchday == 1]
    assert len(md1) == 2
    assert all(f.status is FixtureStatus.AVAILABLE for f in md1)
    assert all(f.status is FixtureStatus.SCHEDULED for f in fixtures if f.matchday > 1)
    assert [f.sequence for f in fixtures] == list(range(12))


def test_second_round_reverses_home_and_away():
    fixtures = generate_fixtures(_clubs(4), START)
    first = [(f.home_club_id, f.away_club_id) for f in fixtures if f.matchday <= 3]
    second = [(f.away_club_id, f.home_club_id) for f in fixtures if f.matchday > 3]
    assert first == second


def test_first_round_earlier_club_at_home():
    clubs = _clubs(6)
    fixtures = generate_fixtures(clubs, START)
    index = {c.id: i for i, c in enumerate(clubs)}
    for f in fixtures:
        if f.matchday <= 5:
            assert index[f.home_club_id] < index[f.away_club_id]


def test_odd_count_matchdays():
    assert total_matchdays(5) == 10
    assert total_matchdays(4) == 6
    assert total_matchdays(1) == 0
    fixtures = generate_fixtures(_clubs(5), START)
    assert max(f.matchday for f in fixtures) == 10


def test_same_input_same_pairings():
    a = generate_fixtures(_clubs(7), START)
    b = generate_fixtures(_clubs(7), START)
    assert [(f.matchday, f.home_club_id, f.away_club_id) for f in a] == [
        (f.matchday, f.home_club_id, f.away_club_id) for f in b
    ]


def test_generate_fixtures_rejects_bad_counts():
    with pytest.raises(ValidationError):
        generate_fixtures(_clubs(1), START)
    with pytest.raises(ValidationError):
        generate_fixtures([], START)
    with pytest.raises(ValidationError):
        generate_fixtures(_clubs(17), START)


def test_generate_fixtures_rejects_duplicates():
    clubs = _clubs(3) + [ClubRef(id="c0", name="Again")]
    with pytest.raises(ValidationError):
        generate_fixtures(clubs, START)


class TestVerifySchedule:
    def test_valid_schedule_passes(self):
        clubs = _clubs(4)
        verify_schedule(generate_fixtures(clubs, START), [c.id for c in clubs])

    def test_self_match_detected(self):
        clubs = _clubs(4)
        fixtures = generate_fixtures(clubs, START)
        fixtures[0] = replace(fixtures[0], away_club_id=fixtures[0].home_club_id)
        with pytest.raises(ConsistencyError):
            verify_schedule(fixtures, [c.id for c in clubs])

    def test_missing_pairing_detected(self):
        clubs = _clubs(4)
        fixtures = generate_fixtures(clubs, START)
        with pytest.raises(ConsistencyError):
            verify_schedule(fixtures[:-1], [c.id for c in clubs])

    def test_double_booking_detected(self):
        clubs = _clubs(4)
        fixtures = generate_fixtures(clubs, START)
        moved = next(f for f in fixtures if f.matchday == 2)
        fixtures = [replace(f, matchday=1) if f.id == moved.id else f for f in fixtures]
        with pytest.raises(ConsistencyError):
            verify_schedule(fixtures, [c.id for c in clubs])
