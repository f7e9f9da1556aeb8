"""
Data models for the league engine.
Domain objects only, no persistence or simulation logic.

A server (join scope) holds clubs and at most one league. Clubs own players
exclusively; a league owns fixtures, matches, the leaderboard and the
top-scorer/top-assist tables.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

MAX_SQUAD_SIZE = 23
STARTING_ELEVEN = 11
SUBSTITUTE_LIMIT = 17  # roster sizes below this receive newcomers on the bench
MIN_LEAGUE_CLUBS = 2
MAX_LEAGUE_CLUBS = 16
TOP_TABLE_SIZE = 10


# ---------- Vocabularies ----------
class LeagueStatus(str, Enum):
    """League lifecycle: created → started → finished."""
    CREATED = "created"
    STARTED = "started"
    FINISHED = "finished"


class FixtureStatus(str, Enum):
    SCHEDULED = "scheduled"
    AVAILABLE = "available"
    PLAYING = "playing"   # concurrency guard while a simulation runs
    PLAYED = "played"
    FORFEITED = "forfeited"


FIXTURE_DONE = frozenset({FixtureStatus.PLAYED, FixtureStatus.FORFEITED})


class SquadRole(str, Enum):
    STARTER = "starter"
    SUBSTITUTE = "substitute"
    RESERVE = "reserve"


class SuspensionReason(str, Enum):
    YELLOW_CARDS = "yellow_cards"
    RED_CARD = "red_card"


class OfferType(str, Enum):
    DIRECT = "direct"
    SWAP = "swap"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class MatchType(str, Enum):
    LEAGUE = "league"
    FRIENDLY = "friendly"


class EventType(str, Enum):
    GOAL = "goal"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    CORNER = "corner"
    FREE_KICK = "freekick"
    NEAR_MISS = "near_miss"
    COMMENTARY = "commentary"


class Position(str, Enum):
    GOALKEEPER = "Goalkeeper"
    CENTRE_BACK = "Centre-Back"
    LEFT_BACK = "Left-Back"
    RIGHT_BACK = "Right-Back"
    DEFENSIVE_MIDFIELD = "Defensive Midfield"
    CENTRAL_MIDFIELD = "Central Midfield"
    ATTACKING_MIDFIELD = "Attacking Midfield"
    LEFT_MIDFIELD = "Left Midfield"
    RIGHT_MIDFIELD = "Right Midfield"
    LEFT_WINGER = "Left Winger"
    RIGHT_WINGER = "Right Winger"
    SECOND_STRIKER = "Second Striker"
    CENTRE_FORWARD = "Centre-Forward"


class PositionBucket(str, Enum):
    """Formation buckets used by chemistry and squad selection."""
    GK = "GK"
    DEF = "DEF"
    MID = "MID"
    ATT = "ATT"


def position_bucket(position: Position) -> PositionBucket:
    value = position.value
    if position is Position.GOALKEEPER:
        return PositionBucket.GK
    if "Back" in value:
        return PositionBucket.DEF
    if "Midfield" in value:
        return PositionBucket.MID
    return PositionBucket.ATT


def is_attacking(position: Position) -> bool:
    """Midfield, winger and forward positions take most shots."""
    return position_bucket(position) in (PositionBucket.MID, PositionBucket.ATT)


# ---------- Player ----------
@dataclass
class Player:
    """
    A player owned by one club. Seeded from the catalog, then mutated by
    matches (stamina, cards) and transfers (club, role).
    """
    id: str
    catalog_id: str
    club_id: str | None
    name: str
    position: Position
    attributes: dict[str, float]
    market_value: int
    stamina_pct: int = 100
    games_played: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    is_suspended: bool = False
    suspension_reason: SuspensionReason | None = None
    squad_role: SquadRole = SquadRole.RESERVE
    squad_order: int = 0
    nationality: str | None = None
    image_url: str | None = None

    @property
    def rating(self) -> float:
        """Mean of the numeric attributes; 0 when the player has none."""
        values = [float(v) for v in self.attributes.values() if isinstance(v, (int, float))]
        if not values:
            return 0.0
        return sum(values) / len(values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "catalog_id": self.catalog_id,
            "club_id": self.club_id,
            "name": self.name,
            "position": self.position.value,
            "attributes": dict(self.attributes),
            "market_value": self.market_value,
            "stamina_pct": self.stamina_pct,
            "games_played": self.games_played,
            "yellow_cards": self.yellow_cards,
            "red_cards": self.red_cards,
            "is_suspended": self.is_suspended,
            "suspension_reason": self.suspension_reason.value if self.suspension_reason else None,
            "squad_role": self.squad_role.value,
            "squad_order": self.squad_order,
            "nationality": self.nationality,
            "image_url": self.image_url,
        }


# ---------- Club ----------
@dataclass
class Club:
    """
    A manager's club inside one server. Budget is in-game currency only.
    version increments on every budget change (compare-and-set).
    """
    id: str
    owner_id: str
    server_id: str
    name: str
    logo: str
    home_color: str
    away_color: str
    budget: int
    created_at: datetime
    version: int = 1
    last_friendly_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "owner_id": self.owner_id,
            "server_id": self.server_id,
            "name": self.name,
            "logo": self.logo,
            "colors": {"home": self.home_color, "away": self.away_color},
            "budget": self.budget,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }
        if self.last_friendly_at is not None:
            d["last_friendly_at"] = self.last_friendly_at.isoformat()
        return d


@dataclass(frozen=True)
class ClubRef:
    """Identity plus display name; what the scheduler and standings need."""
    id: str
    name: str


# ---------- Prize table ----------
class PrizeDistribution(BaseModel):
    """Prize money per final rank tier."""
    first: int = Field(default=0, ge=0)
    second: int = Field(default=0, ge=0)
    third: int = Field(default=0, ge=0)
    others: int = Field(default=0, ge=0)


# ---------- Standings ----------
@dataclass
class LeaderboardRow:
    club_id: str
    club_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    @property
    def card_weight(self) -> int:
        return self.yellow_cards + 2 * self.red_cards

    def to_dict(self) -> dict[str, Any]:
        return {
            "club_id": self.club_id,
            "club_name": self.club_name,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "yellow_cards": self.yellow_cards,
            "red_cards": self.red_cards,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LeaderboardRow:
        return cls(**d)


@dataclass
class TopEntry:
    """Running goal or assist total for one player."""
    player_id: str
    player_name: str
    club_id: str
    club_name: str
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "club_id": self.club_id,
            "club_name": self.club_name,
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TopEntry:
        return cls(**d)


# ---------- League ----------
@dataclass
class League:
    """
    One league per server. Status: created → started → finished.
    Leaderboard and top tables are stored on the league record and guarded by version.
    """
    id: str
    server_id: str
    name: str
    password_hash: str
    capacity: int
    status: LeagueStatus
    current_matchday: int
    prizes: PrizeDistribution
    created_at: datetime
    reward_player: dict[str, Any] | None = None
    start_date: date | None = None
    club_ids: list[str] = field(default_factory=list)
    leaderboard: list[LeaderboardRow] = field(default_factory=list)
    top_scorers: list[TopEntry] = field(default_factory=list)
    top_assists: list[TopEntry] = field(default_factory=list)
    prizes_distributed: bool = False
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "server_id": self.server_id,
            "name": self.name,
            "capacity": self.capacity,
            "status": self.status.value,
            "current_matchday": self.current_matchday,
            "prizes": self.prizes.model_dump(),
            "clubs": list(self.club_ids),
            "leaderboard": [r.to_dict() for r in self.leaderboard],
            "top_scorers": [e.to_dict() for e in self.top_scorers],
            "top_assists": [e.to_dict() for e in self.top_assists],
            "prizes_distributed": self.prizes_distributed,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }
        if self.reward_player is not None:
            d["reward_player"] = dict(self.reward_player)
        if self.start_date is not None:
            d["start_date"] = self.start_date.isoformat()
        return d


# ---------- Fixture ----------
@dataclass
class Fixture:
    """
    A scheduled pairing on a matchday. sequence keeps creation order within the league.
    home_score / away_score are set once the fixture is played or forfeited.
    """
    id: str
    league_id: str
    matchday: int
    sequence: int
    home_club_id: str
    away_club_id: str
    home_club_name: str
    away_club_name: str
    scheduled_date: date
    status: FixtureStatus
    home_score: int | None = None
    away_score: int | None = None
    is_forfeited: bool = False

    @property
    def is_done(self) -> bool:
        return self.status in FIXTURE_DONE

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "league_id": self.league_id,
            "matchday": self.matchday,
            "sequence": self.sequence,
            "home_club_id": self.home_club_id,
            "away_club_id": self.away_club_id,
            "home_club_name": self.home_club_name,
            "away_club_name": self.away_club_name,
            "scheduled_date": self.scheduled_date.isoformat(),
            "status": self.status.value,
        }
        if self.home_score is not None:
            d["result"] = {
                "home_score": self.home_score,
                "away_score": self.away_score,
                "is_forfeited": self.is_forfeited,
            }
        return d


# ---------- Match events ----------
@dataclass(frozen=True)
class MatchEvent:
    """One timeline entry. is_home is the side the event belongs to."""
    minute: int
    type: EventType
    is_home: bool
    description: str
    player_id: str | None = None
    player_name: str | None = None
    assist_player_id: str | None = None
    assist_player_name: str | None = None
    is_penalty: bool = False


@dataclass(frozen=True)
class StaminaImpact:
    player_id: str
    stamina_before: int
    stamina_after: int


# ---------- Match ----------
@dataclass(frozen=True)
class Match:
    """
    Outcome record of a played or forfeited fixture, or of a friendly.
    Immutable after creation.
    """
    id: str
    match_type: MatchType
    home_club_id: str
    away_club_id: str
    home_club_name: str
    away_club_name: str
    home_score: int
    away_score: int
    played_at: datetime
    league_id: str | None = None
    fixture_id: str | None = None
    matchday: int | None = None
    is_forfeited: bool = False
    events: tuple[MatchEvent, ...] = ()
    commentary: tuple[str, ...] = ()
    stamina_impact: tuple[StaminaImpact, ...] = ()
    seed: int | None = None

    @property
    def goals(self) -> list[MatchEvent]:
        return [e for e in self.events if e.type is EventType.GOAL]

    @property
    def cards(self) -> list[MatchEvent]:
        return [e for e in self.events if e.type in (EventType.YELLOW_CARD, EventType.RED_CARD)]

    def cards_for(self, is_home: bool) -> tuple[int, int]:
        """(yellow, red) counts for one side."""
        yellow = sum(1 for e in self.cards if e.is_home == is_home and e.type is EventType.YELLOW_CARD)
        red = sum(1 for e in self.cards if e.is_home == is_home and e.type is EventType.RED_CARD)
        return yellow, red

    def to_dict(self) -> dict[str, Any]:
        from fantasy_league.simulation.persistence import event_to_dict

        return {
            "id": self.id,
            "match_type": self.match_type.value,
            "league_id": self.league_id,
            "fixture_id": self.fixture_id,
            "matchday": self.matchday,
            "home_club_id": self.home_club_id,
            "away_club_id": self.away_club_id,
            "home_club_name": self.home_club_name,
            "away_club_name": self.away_club_name,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "is_forfeited": self.is_forfeited,
            "events": [event_to_dict(e) for e in self.events],
            "commentary": list(self.commentary),
            "stamina_impact": [
                {"player_id": s.player_id, "stamina_before": s.stamina_before, "stamina_after": s.stamina_after}
                for s in self.stamina_impact
            ],
            "seed": self.seed,
            "played_at": self.played_at.isoformat(),
        }


# ---------- Transfers ----------
@dataclass
class TransferOffer:
    """
    pending → accepted | declined. Accepted offers are deleted once processed.
    amount is the fee (direct) or the top-up paid by the offering club (swap).
    """
    id: str
    from_club_id: str
    to_club_id: str
    offer_type: OfferType
    target_player_id: str
    amount: int
    status: OfferStatus
    created_at: datetime
    swap_player_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "from_club_id": self.from_club_id,
            "to_club_id": self.to_club_id,
            "offer_type": self.offer_type.value,
            "target_player_id": self.target_player_id,
            "amount": self.amount,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
        if self.swap_player_id is not None:
            d["swap_player_id"] = self.swap_player_id
        return d


@dataclass(frozen=True)
class TransferRecord:
    """History entry for one player moving between clubs."""
    id: str
    player_id: str
    player_name: str
    from_club_id: str
    to_club_id: str
    fee: int
    transfer_type: OfferType
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "from_club_id": self.from_club_id,
            "to_club_id": self.to_club_id,
            "fee": self.fee,
            "transfer_type": self.transfer_type.value,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Friendlies ----------
@dataclass
class FriendlyInvite:
    """pending → accepted | declined. match_id is set once the accepted friendly is played."""
    id: str
    from_club_id: str
    to_club_id: str
    from_club_name: str
    to_club_name: str
    status: InviteStatus
    created_at: datetime
    match_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "from_club_id": self.from_club_id,
            "to_club_id": self.to_club_id,
            "from_club_name": self.from_club_name,
            "to_club_name": self.to_club_name,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
        if self.match_id is not None:
            d["match_id"] = self.match_id
        return d
