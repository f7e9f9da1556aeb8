"""
Minute-by-minute match engine. Pure: two squads and a seeded RNG in,
score, events, commentary and stamina impact out. No persistence.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterator, Sequence

from fantasy_league import condition
from fantasy_league.errors import ComputationError
from fantasy_league.models import EventType, MatchEvent, Player, is_attacking

from . import commentary
from .rng import SeededRNG
from .schemas import (
    ASSIST_PROBABILITY,
    CROWD_MAX,
    CROWD_MIN,
    EVENT_PROBABILITIES,
    HOME_BONUS,
    INTENSITY_MULTIPLIER,
    LUCK_MAX,
    LUCK_MIN,
    MATCH_MINUTES,
    UPSET_LUCK_THRESHOLD,
    EventCategory,
    SimulationResult,
    Squad,
    is_intense_minute,
)
from .strength import team_strength

logger = logging.getLogger(__name__)

_CARD_TYPES = {EventCategory.YELLOW_CARD: EventType.YELLOW_CARD, EventCategory.RED_CARD: EventType.RED_CARD}


def home_advantage(home_strength: float, away_strength: float) -> float:
    """Probability that an event belongs to the home side. Not clamped: the 0-1 draw does that."""
    return 0.5 + 0.01 * (home_strength - away_strength)


def pick_player(rng: SeededRNG, eligible: Sequence[Player], prefer_attacking: bool = True) -> Player:
    """Random attacking player when one is eligible, else any eligible player."""
    if prefer_attacking:
        attackers = [p for p in eligible if is_attacking(p.position)]
        if attackers:
            return rng.choice(attackers)
    return rng.choice(eligible)


class MatchEngine:
    """
    Runs one match. Strengths and luck are fixed at construction; run() yields
    events in order (kick-off at minute 0, then minutes 1-90) and result()
    summarises once the generator is exhausted.
    """

    def __init__(self, home: Squad, away: Squad, is_league: bool, rng: SeededRNG) -> None:
        if not home.players:
            raise ComputationError(f"Squad for {home.club_name} has no players")
        if not away.players:
            raise ComputationError(f"Squad for {away.club_name} has no players")
        self.home = home
        self.away = away
        self.is_league = is_league
        self.rng = rng
        self._home_starters = home.starters
        self._away_starters = away.starters
        self._sent_off: set[str] = set()
        self.home_score = 0
        self.away_score = 0
        self.events: list[MatchEvent] = []
        self._finished = False

        self.home_strength = team_strength(self._home_starters) * (1 + HOME_BONUS)
        self.away_strength = team_strength(self._away_starters)
        self.home_luck = rng.uniform(LUCK_MIN, LUCK_MAX)
        self.away_luck = rng.uniform(LUCK_MIN, LUCK_MAX)
        self.home_strength *= self.home_luck
        self.away_strength *= self.away_luck
        self._home_advantage = home_advantage(self.home_strength, self.away_strength)

    def _eligible(self, is_home: bool) -> list[Player]:
        starters = self._home_starters if is_home else self._away_starters
        return [p for p in starters if p.id not in self._sent_off]

    def _team(self, is_home: bool) -> str:
        return self.home.club_name if is_home else self.away.club_name

    def _kickoff(self) -> MatchEvent:
        crowd = self.rng.randint(CROWD_MIN, CROWD_MAX)
        return MatchEvent(
            minute=0,
            type=EventType.COMMENTARY,
            is_home=True,
            description=commentary.kickoff(self.home.club_name, self.away.club_name, crowd),
        )

    def _roll(self, minute: int, category: EventCategory) -> MatchEvent | None:
        if category is EventCategory.COMMENTARY:
            return MatchEvent(
                minute=minute,
                type=EventType.COMMENTARY,
                is_home=True,
                description=commentary.match_flow(self.rng, minute, self.home.club_name, self.away.club_name),
            )

        is_home = self.rng.random() < self._home_advantage
        team = self._team(is_home)

        if category is EventCategory.CORNER:
            return MatchEvent(minute, EventType.CORNER, is_home, commentary.corner(self.rng, minute, team))
        if category is EventCategory.FREE_KICK:
            return MatchEvent(minute, EventType.FREE_KICK, is_home, commentary.free_kick(self.rng, minute, team))

        eligible = self._eligible(is_home)
        if not eligible:
            # whole side sent off; nobody left to attribute the event to
            return None

        if category is EventCategory.GOAL:
            scorer = pick_player(self.rng, eligible)
            assister = None
            if self.rng.chance(ASSIST_PROBABILITY):
                assister = pick_player(self.rng, eligible)
                if assister.id == scorer.id:
                    assister = None
            return MatchEvent(
                minute=minute,
                type=EventType.GOAL,
                is_home=is_home,
                description=commentary.goal(self.rng, minute, scorer, assister, team),
                player_id=scorer.id,
                player_name=scorer.name,
                assist_player_id=assister.id if assister else None,
                assist_player_name=assister.name if assister else None,
            )
        if category is EventCategory.PENALTY:
            taker = pick_player(self.rng, eligible)
            return MatchEvent(
                minute=minute,
                type=EventType.GOAL,
                is_home=is_home,
                description=commentary.penalty(self.rng, minute, taker, team),
                player_id=taker.id,
                player_name=taker.name,
                is_penalty=True,
            )
        if category is EventCategory.NEAR_MISS:
            shooter = pick_player(self.rng, eligible)
            return MatchEvent(
                minute=minute,
                type=EventType.NEAR_MISS,
                is_home=is_home,
                description=commentary.near_miss(self.rng, minute, shooter, team),
                player_id=shooter.id,
                player_name=shooter.name,
            )

        card_type = _CARD_TYPES[category]
        player = pick_player(self.rng, eligible)
        red = card_type is EventType.RED_CARD
        if red:
            self._sent_off.add(player.id)
        return MatchEvent(
            minute=minute,
            type=card_type,
            is_home=is_home,
            description=commentary.card(self.rng, minute, player, team, red),
            player_id=player.id,
            player_name=player.name,
        )

    def _record(self, event: MatchEvent) -> None:
        self.events.append(event)
        if event.type is EventType.GOAL:
            if event.is_home:
                self.home_score += 1
            else:
                self.away_score += 1

    def run(self, on_event: Callable[[MatchEvent], None] | None = None) -> Iterator[MatchEvent]:
        """Yield every event in order. Optionally call on_event(event) for live feeds."""
        if self.events or self._finished:
            raise ComputationError("MatchEngine.run() may only be called once")
        kickoff = self._kickoff()
        self._record(kickoff)
        if on_event:
            on_event(kickoff)
        yield kickoff

        for minute in range(1, MATCH_MINUTES + 1):
            multiplier = INTENSITY_MULTIPLIER if is_intense_minute(minute) else 1.0
            for category, probability in EVENT_PROBABILITIES:
                if not self.rng.chance(probability * multiplier):
                    continue
                event = self._roll(minute, category)
                if event is None:
                    continue
                self._record(event)
                if on_event:
                    on_event(event)
                yield event
        self._finished = True

    def result(self) -> SimulationResult:
        if not self._finished:
            raise ComputationError("Match has not been run to full time")
        home_upset = self.home_luck < UPSET_LUCK_THRESHOLD and self.home_strength < self.away_strength
        away_upset = self.away_luck < UPSET_LUCK_THRESHOLD and self.away_strength < self.home_strength
        final = commentary.full_time(
            self.home.club_name,
            self.away.club_name,
            self.home_score,
            self.away_score,
            home_upset=home_upset,
            away_upset=away_upset,
        )
        impact = condition.stamina_impact(self.home.roster, self.home.starter_ids, self.is_league)
        impact += condition.stamina_impact(self.away.roster, self.away.starter_ids, self.is_league)
        return SimulationResult(
            home_score=self.home_score,
            away_score=self.away_score,
            events=list(self.events),
            commentary=[e.description for e in self.events] + final,
            stamina_impact=impact,
            home_strength=self.home_strength,
            away_strength=self.away_strength,
            home_luck=self.home_luck,
            away_luck=self.away_luck,
            seed=self.rng.seed,
            is_league=self.is_league,
            home_starter_ids=self.home.starter_ids,
            away_starter_ids=self.away.starter_ids,
        )


def simulate_match(
    home: Squad,
    away: Squad,
    is_league: bool,
    rng: SeededRNG,
    on_event: Callable[[MatchEvent], None] | None = None,
) -> SimulationResult:
    """
    Simulate a full 90 minutes. Deterministic for a given rng seed and squads.
    Raises ComputationError when either squad is empty.
    """
    engine = MatchEngine(home, away, is_league, rng)
    for _ in engine.run(on_event=on_event):
        pass
    result = engine.result()
    logger.debug(
        "Simulated %s %d-%d %s (seed=%s, %d events)",
        home.club_name, result.home_score, result.away_score, away.club_name,
        result.seed, len(result.events),
    )
    return result
