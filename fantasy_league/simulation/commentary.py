"""
Human-readable lines for match events. Every pick goes through the match RNG
so a seeded run reproduces its commentary too.
"""
from __future__ import annotations

from fantasy_league.models import Player

from .rng import SeededRNG

GOAL_FINISHES = (
    "a thunderbolt from 25 yards, unstoppable!",
    "slots it calmly into the bottom corner.",
    "a spectacular overhead kick!",
    "bends it beautifully into the top corner!",
    "a simple tap-in, right place at the right time.",
    "weaves through the defence and finishes with ease.",
    "rockets it into the roof of the net!",
    "curls it perfectly around the keeper.",
)

NEAR_MISS_LINES = (
    "[{m}'] How did that stay out?! {player}'s header crashes off the crossbar!",
    "[{m}'] Brilliant reflex save! The goalkeeper keeps out {player}'s fierce drive.",
    "[{m}'] Inches wide! {player} had the goal at their mercy.",
    "[{m}'] Last-ditch defending! A crucial block denies {player}.",
    "[{m}'] {player} blazes over from close range, should have scored for {team}!",
    "[{m}'] {player}'s curling effort clips the outside of the post!",
)

YELLOW_LINES = (
    "[{m}'] Yellow card for {player} ({team}), a reckless challenge.",
    "[{m}'] {player} goes into the book for a cynical foul.",
    "[{m}'] Booking for {player} for dissent towards the referee.",
    "[{m}'] A clumsy challenge from {player} earns a caution.",
)

RED_LINES = (
    "[{m}'] STRAIGHT RED! {player} is off for a horror tackle.",
    "[{m}'] RED CARD! {player} from {team} is sent off.",
    "[{m}'] Off you go! A moment of madness from {player}, straight red.",
    "[{m}'] {player} sees red and {team} are down to ten!",
)

CORNER_LINES = (
    "[{m}'] Corner kick for {team}, a dangerous set piece.",
    "[{m}'] {team} win a corner and the big players go forward.",
    "[{m}'] Corner to {team}, the keeper looks nervous.",
)

FREE_KICK_LINES = (
    "[{m}'] Free kick to {team} in a promising position.",
    "[{m}'] {team} have a free kick, this could be dangerous!",
    "[{m}'] Free kick to {team}, the wall is being organised.",
)

PENALTY_LINES = (
    "[{m}'] PENALTY GOAL! {player} steps up and scores for {team}!",
    "[{m}'] PENALTY! {player} sends the keeper the wrong way for {team}!",
    "[{m}'] Spot kick converted! {player} makes no mistake for {team}.",
)

FLOW_LINES = (
    "[{m}'] {home} enjoying plenty of possession against a stubborn defence.",
    "[{m}'] End-to-end stuff now! Both teams going for it.",
    "[{m}'] {away} have everyone behind the ball, frustrating the home crowd.",
    "[{m}'] The tempo has picked up, both sides desperate for a goal.",
    "[{m}'] Play on, says the referee. {home} players are furious.",
    "[{m}'] {away} break forward at pace!",
    "[{m}'] {home} probing for an opening with patient build-up play.",
)

LATE_FLOW_LINES = (
    "[{m}'] Into the final ten minutes, you can feel the tension!",
    "[{m}'] Time running out, both teams throwing everything forward!",
    "[{m}'] Frantic final minutes, anything could happen!",
    "[{m}'] Last chance saloon, who will grab the winner?",
)

LATE_MINUTE = 80


def kickoff(home: str, away: str, crowd: int) -> str:
    return (
        f"Welcome to {home} Stadium! {home} host {away} in front of "
        f"{crowd:,} fans. The match is about to begin!"
    )


def goal(rng: SeededRNG, minute: int, scorer: Player, assister: Player | None, team: str) -> str:
    finish = rng.choice(GOAL_FINISHES)
    if assister is not None:
        return f"[{minute}'] GOAL! {scorer.name} scores for {team}, assisted by {assister.name}: {finish}"
    return f"[{minute}'] GOAL! {scorer.name} finds the net for {team}: {finish}"


def penalty(rng: SeededRNG, minute: int, scorer: Player, team: str) -> str:
    return rng.choice(PENALTY_LINES).format(m=minute, player=scorer.name, team=team)


def near_miss(rng: SeededRNG, minute: int, player: Player, team: str) -> str:
    return rng.choice(NEAR_MISS_LINES).format(m=minute, player=player.name, team=team)


def card(rng: SeededRNG, minute: int, player: Player, team: str, red: bool) -> str:
    lines = RED_LINES if red else YELLOW_LINES
    return rng.choice(lines).format(m=minute, player=player.name, team=team)


def corner(rng: SeededRNG, minute: int, team: str) -> str:
    return rng.choice(CORNER_LINES).format(m=minute, team=team)


def free_kick(rng: SeededRNG, minute: int, team: str) -> str:
    return rng.choice(FREE_KICK_LINES).format(m=minute, team=team)


def match_flow(rng: SeededRNG, minute: int, home: str, away: str) -> str:
    lines = LATE_FLOW_LINES if minute > LATE_MINUTE else FLOW_LINES
    return rng.choice(lines).format(m=minute, home=home, away=away)


def full_time(
    home: str,
    away: str,
    home_score: int,
    away_score: int,
    home_upset: bool,
    away_upset: bool,
) -> list[str]:
    """Final lines; an upset line follows when the weaker, unlucky side still won."""
    score = f"FULL TIME: {home} {home_score}-{away_score} {away}."
    if home_score == away_score:
        return [f"{score} A fair result, both teams can be proud."]
    if home_score > away_score:
        lines = [f"{score} Victory for the home side!"]
        if home_upset:
            lines.append(f"What an upset! {home} defied the odds.")
        return lines
    lines = [f"{score} Away victory!"]
    if away_upset:
        lines.append(f"Stunning upset! {away} pulled off a remarkable away win.")
    return lines
