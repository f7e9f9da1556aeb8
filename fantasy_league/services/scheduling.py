"""
Deterministic double round-robin fixture generation.

Round 0 pairs every two clubs once with the earlier-joined club at home; round 1
repeats every pairing with home and away reversed. Pairings are grouped into
matchdays with the circle method (fix slot 0, rotate the rest), so no club plays
twice on one matchday. An odd club count adds a bye slot: each matchday then has
floor(N/2) fixtures and one club rests.

Matchdays: 2 * (N - 1) for even N, 2 * N for odd N. Matchday m is dated
start_date + (m - 1) days; only matchday 1 starts available.
"""
from __future__ import annotations

import uuid
from collections import Counter
from datetime import date, timedelta
from typing import Sequence

from fantasy_league.errors import ConsistencyError, ValidationError
from fantasy_league.models import MAX_LEAGUE_CLUBS, MIN_LEAGUE_CLUBS, ClubRef, Fixture, FixtureStatus


def round_robin_pairings(n: int) -> list[list[tuple[int, int]]]:
    """
    Single round-robin over club indices 0..n-1, one list of (home, away) per matchday.
    The lower index is always at home. Deterministic: same n => same schedule.
    """
    if n < 2:
        return []
    slots: list[int | None] = list(range(n))
    if n % 2 == 1:
        slots.append(None)  # bye
    size = len(slots)
    order = list(range(size))
    weeks: list[list[tuple[int, int]]] = []
    for _ in range(size - 1):
        week: list[tuple[int, int]] = []
        for i in range(size // 2):
            a, b = slots[order[i]], slots[order[size - 1 - i]]
            if a is None or b is None:
                continue
            week.append((min(a, b), max(a, b)))
        week.sort()
        weeks.append(week)
        # keep slot 0, move the last slot to position 1
        order = [order[0], order[size - 1]] + order[1:size - 1]
    return weeks


def generate_fixtures(
    clubs: Sequence[ClubRef],
    start_date: date,
    league_id: str = "",
) -> list[Fixture]:
    """
    Build every fixture of a double round-robin for clubs in the given order.
    Raises ValidationError for fewer than 2 or more than 16 clubs and
    ConsistencyError if the result breaks a schedule invariant.
    """
    n = len(clubs)
    if n < MIN_LEAGUE_CLUBS:
        raise ValidationError(f"Need at least {MIN_LEAGUE_CLUBS} clubs to schedule a league (got {n})")
    if n > MAX_LEAGUE_CLUBS:
        raise ValidationError(f"At most {MAX_LEAGUE_CLUBS} clubs can be scheduled (got {n})")
    if len({c.id for c in clubs}) != n:
        raise ValidationError("Club list contains duplicates")

    first_round = round_robin_pairings(n)
    rounds = [first_round, [[(a, h) for h, a in week] for week in first_round]]

    fixtures: list[Fixture] = []
    matchday = 0
    for weeks in rounds:
        for week in weeks:
            matchday += 1
            for home_idx, away_idx in week:
                home, away = clubs[home_idx], clubs[away_idx]
                fixtures.append(Fixture(
                    id=str(uuid.uuid4()),
                    league_id=league_id,
                    matchday=matchday,
                    sequence=len(fixtures),
                    home_club_id=home.id,
                    away_club_id=away.id,
                    home_club_name=home.name,
                    away_club_name=away.name,
                    scheduled_date=start_date + timedelta(days=matchday - 1),
                    status=FixtureStatus.AVAILABLE if matchday == 1 else FixtureStatus.SCHEDULED,
                ))
    verify_schedule(fixtures, [c.id for c in clubs])
    return fixtures


def total_matchdays(n: int) -> int:
    if n < 2:
        return 0
    return 2 * (n - 1) if n % 2 == 0 else 2 * n


def verify_schedule(fixtures: Sequence[Fixture], club_ids: Sequence[str]) -> None:
    """Raise ConsistencyError on self-matches, repeated pairings, missing pairs or double-booked clubs."""
    ordered: Counter[tuple[str, str]] = Counter()
    unordered: Counter[frozenset[str]] = Counter()
    per_matchday: dict[int, set[str]] = {}
    for f in fixtures:
        if f.home_club_id == f.away_club_id:
            raise ConsistencyError(f"Fixture {f.id} pairs {f.home_club_id} with itself")
        ordered[(f.home_club_id, f.away_club_id)] += 1
        unordered[frozenset((f.home_club_id, f.away_club_id))] += 1
        seen = per_matchday.setdefault(f.matchday, set())
        for cid in (f.home_club_id, f.away_club_id):
            if cid in seen:
                raise ConsistencyError(f"Club {cid} plays twice on matchday {f.matchday}")
            seen.add(cid)
    repeated = [pair for pair, count in ordered.items() if count > 1]
    if repeated:
        raise ConsistencyError(f"Pairing repeated with the same home side: {repeated[0]}")
    ids = list(club_ids)
    for i, a in enumerate(ids):
        for b in ids[i + 1:]:
            if unordered[frozenset((a, b))] != 2:
                raise ConsistencyError(f"Pair {a}/{b} scheduled {unordered[frozenset((a, b))]} times, expected 2")
    expected = len(ids) * (len(ids) - 1)
    if len(fixtures) != expected:
        raise ConsistencyError(f"Expected {expected} fixtures, got {len(fixtures)}")
