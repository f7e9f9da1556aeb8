"""
Repository interfaces for league data.
No business logic, only read/write operations. Writes that decide a race
(status or version compare-and-set) return bool: True when this caller won.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import date, datetime
from typing import Any, Iterable

from fantasy_league.catalog import CatalogPlayer
from fantasy_league.models import (
    Club,
    Fixture,
    FixtureStatus,
    FriendlyInvite,
    InviteStatus,
    LeaderboardRow,
    League,
    LeagueStatus,
    Match,
    MatchType,
    OfferStatus,
    OfferType,
    Player,
    Position,
    PrizeDistribution,
    SquadRole,
    SuspensionReason,
    TopEntry,
    TransferOffer,
    TransferRecord,
)
from fantasy_league.simulation.persistence import (
    events_from_json,
    events_to_json,
    stamina_impact_from_json,
    stamina_impact_to_json,
)


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _parse_optional_datetime(s: str | None) -> datetime | None:
    return _parse_datetime(s) if s else None


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


# ---------- ClubRepository ----------

_CLUB_COLS = (
    "id, owner_id, server_id, name, logo, home_color, away_color, budget, version, "
    "last_friendly_at, created_at"
)


def _row_to_club(r: sqlite3.Row) -> Club:
    return Club(
        id=r["id"],
        owner_id=r["owner_id"],
        server_id=r["server_id"],
        name=r["name"],
        logo=r["logo"],
        home_color=r["home_color"],
        away_color=r["away_color"],
        budget=r["budget"],
        version=r["version"],
        last_friendly_at=_parse_optional_datetime(r["last_friendly_at"]),
        created_at=_parse_datetime(r["created_at"]),
    )


class ClubRepository:
    """CRUD for clubs. Budget changes bump version."""

    def create(
        self,
        conn: sqlite3.Connection,
        owner_id: str,
        server_id: str,
        name: str,
        budget: int,
        now: datetime,
        logo: str = "",
        home_color: str = "",
        away_color: str = "",
        id: str | None = None,
    ) -> Club:
        cid = id or str(uuid.uuid4())
        conn.execute(
            f"INSERT INTO clubs ({_CLUB_COLS}) VALUES ({_placeholders(11)})",
            (cid, owner_id, server_id, name, logo, home_color, away_color, budget, 1, None, now.isoformat()),
        )
        return Club(
            id=cid, owner_id=owner_id, server_id=server_id, name=name, logo=logo,
            home_color=home_color, away_color=away_color, budget=budget, created_at=now,
        )

    def get(self, conn: sqlite3.Connection, club_id: str) -> Club | None:
        row = conn.execute(f"SELECT {_CLUB_COLS} FROM clubs WHERE id = ?", (club_id,)).fetchone()
        return _row_to_club(row) if row else None

    def get_by_name(self, conn: sqlite3.Connection, name: str) -> Club | None:
        row = conn.execute(f"SELECT {_CLUB_COLS} FROM clubs WHERE name = ?", (name,)).fetchone()
        return _row_to_club(row) if row else None

    def get_by_owner(self, conn: sqlite3.Connection, server_id: str, owner_id: str) -> Club | None:
        row = conn.execute(
            f"SELECT {_CLUB_COLS} FROM clubs WHERE server_id = ? AND owner_id = ?",
            (server_id, owner_id),
        ).fetchone()
        return _row_to_club(row) if row else None

    def adjust_budget(self, conn: sqlite3.Connection, club_id: str, delta: int) -> bool:
        """Add delta (may be negative). Refuses, returning False, if the balance would go below zero."""
        cur = conn.execute(
            "UPDATE clubs SET budget = budget + ?, version = version + 1 WHERE id = ? AND budget + ? >= 0",
            (delta, club_id, delta),
        )
        return cur.rowcount == 1

    def claim_friendly_slot(
        self, conn: sqlite3.Connection, club_id: str, now: datetime, not_after: datetime
    ) -> bool:
        """Set last_friendly_at = now if the previous friendly was at or before not_after (or never)."""
        cur = conn.execute(
            "UPDATE clubs SET last_friendly_at = ? "
            "WHERE id = ? AND (last_friendly_at IS NULL OR last_friendly_at <= ?)",
            (now.isoformat(), club_id, not_after.isoformat()),
        )
        return cur.rowcount == 1


# ---------- PlayerRepository ----------

_PLAYER_COLS = (
    "id, catalog_id, club_id, name, position, attributes, market_value, stamina_pct, games_played, "
    "yellow_cards, red_cards, is_suspended, suspension_reason, squad_role, squad_order, "
    "nationality, image_url"
)

# starters first, then bench, then reserves; squad_order within each
_ROSTER_ORDER = (
    "CASE squad_role WHEN 'starter' THEN 0 WHEN 'substitute' THEN 1 ELSE 2 END, squad_order, name"
)


def _row_to_player(r: sqlite3.Row) -> Player:
    reason = r["suspension_reason"]
    return Player(
        id=r["id"],
        catalog_id=r["catalog_id"],
        club_id=r["club_id"],
        name=r["name"],
        position=Position(r["position"]),
        attributes=json.loads(r["attributes"] or "{}"),
        market_value=r["market_value"],
        stamina_pct=r["stamina_pct"],
        games_played=r["games_played"],
        yellow_cards=r["yellow_cards"],
        red_cards=r["red_cards"],
        is_suspended=bool(r["is_suspended"]),
        suspension_reason=SuspensionReason(reason) if reason else None,
        squad_role=SquadRole(r["squad_role"]),
        squad_order=r["squad_order"],
        nationality=r["nationality"],
        image_url=r["image_url"],
    )


class PlayerRepository:
    """CRUD for owned players. Roster order: starters, substitutes, reserves."""

    def create(
        self,
        conn: sqlite3.Connection,
        server_id: str,
        club_id: str,
        seed: CatalogPlayer,
        squad_role: SquadRole,
        squad_order: int,
        id: str | None = None,
    ) -> Player:
        player = Player(
            id=id or str(uuid.uuid4()),
            catalog_id=seed.catalog_id,
            club_id=club_id,
            name=seed.name,
            position=seed.position,
            attributes=dict(seed.attributes),
            market_value=seed.market_value,
            squad_role=squad_role,
            squad_order=squad_order,
            nationality=seed.nationality,
            image_url=seed.image_url,
        )
        conn.execute(
            "INSERT INTO players (id, catalog_id, server_id, club_id, name, position, attributes, "
            "market_value, stamina_pct, games_played, yellow_cards, red_cards, is_suspended, "
            "suspension_reason, squad_role, squad_order, nationality, image_url) "
            f"VALUES ({_placeholders(18)})",
            (
                player.id, player.catalog_id, server_id, club_id, player.name, player.position.value,
                json.dumps(player.attributes), player.market_value, player.stamina_pct,
                player.games_played, 0, 0, 0, None, squad_role.value, squad_order,
                player.nationality, player.image_url,
            ),
        )
        return player

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(f"SELECT {_PLAYER_COLS} FROM players WHERE id = ?", (player_id,)).fetchone()
        return _row_to_player(row) if row else None

    def list_by_club(self, conn: sqlite3.Connection, club_id: str) -> list[Player]:
        rows = conn.execute(
            f"SELECT {_PLAYER_COLS} FROM players WHERE club_id = ? ORDER BY {_ROSTER_ORDER}",
            (club_id,),
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    def count_by_club(self, conn: sqlite3.Connection, club_id: str) -> int:
        row = conn.execute("SELECT COUNT(*) FROM players WHERE club_id = ?", (club_id,)).fetchone()
        return int(row[0])

    def max_order(self, conn: sqlite3.Connection, club_id: str, squad_role: SquadRole) -> int:
        """Highest squad_order in a role, -1 when the role is empty."""
        row = conn.execute(
            "SELECT MAX(squad_order) FROM players WHERE club_id = ? AND squad_role = ?",
            (club_id, squad_role.value),
        ).fetchone()
        return -1 if row[0] is None else int(row[0])

    def owned_catalog_ids(self, conn: sqlite3.Connection, server_id: str) -> set[str]:
        rows = conn.execute(
            "SELECT catalog_id FROM players WHERE server_id = ? AND club_id IS NOT NULL",
            (server_id,),
        ).fetchall()
        return {r["catalog_id"] for r in rows}

    def list_by_server_excluding_club(
        self, conn: sqlite3.Connection, server_id: str, exclude_club_id: str
    ) -> list[Player]:
        rows = conn.execute(
            f"SELECT {_PLAYER_COLS} FROM players WHERE server_id = ? AND club_id IS NOT NULL "
            "AND club_id <> ? ORDER BY market_value DESC, name",
            (server_id, exclude_club_id),
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    def update_condition(self, conn: sqlite3.Connection, player: Player) -> None:
        """Persist stamina, games played, cards and suspension."""
        conn.execute(
            "UPDATE players SET stamina_pct = ?, games_played = ?, yellow_cards = ?, red_cards = ?, "
            "is_suspended = ?, suspension_reason = ? WHERE id = ?",
            (
                player.stamina_pct, player.games_played, player.yellow_cards, player.red_cards,
                int(player.is_suspended),
                player.suspension_reason.value if player.suspension_reason else None,
                player.id,
            ),
        )

    def update_conditions(self, conn: sqlite3.Connection, players: Iterable[Player]) -> None:
        for p in players:
            self.update_condition(conn, p)

    def set_role(self, conn: sqlite3.Connection, player_id: str, squad_role: SquadRole, squad_order: int) -> None:
        conn.execute(
            "UPDATE players SET squad_role = ?, squad_order = ? WHERE id = ?",
            (squad_role.value, squad_order, player_id),
        )

    def move(
        self,
        conn: sqlite3.Connection,
        player_id: str,
        from_club_id: str,
        to_club_id: str,
        squad_role: SquadRole,
        squad_order: int,
    ) -> bool:
        """Move a player between clubs; False if the player is no longer at from_club_id."""
        cur = conn.execute(
            "UPDATE players SET club_id = ?, squad_role = ?, squad_order = ? WHERE id = ? AND club_id = ?",
            (to_club_id, squad_role.value, squad_order, player_id, from_club_id),
        )
        return cur.rowcount == 1

    def clear_suspensions(self, conn: sqlite3.Connection, club_ids: list[str]) -> int:
        if not club_ids:
            return 0
        cur = conn.execute(
            "UPDATE players SET is_suspended = 0, suspension_reason = NULL "
            f"WHERE is_suspended = 1 AND club_id IN ({_placeholders(len(club_ids))})",
            tuple(club_ids),
        )
        return cur.rowcount


# ---------- LeagueRepository ----------

_LEAGUE_COLS = (
    "id, server_id, name, password_hash, capacity, status, current_matchday, start_date, prizes, "
    "reward_player, leaderboard, top_scorers, top_assists, prizes_distributed, version, created_at"
)


def _row_to_league(r: sqlite3.Row, club_ids: list[str]) -> League:
    reward = r["reward_player"]
    return League(
        id=r["id"],
        server_id=r["server_id"],
        name=r["name"],
        password_hash=r["password_hash"],
        capacity=r["capacity"],
        status=LeagueStatus(r["status"]),
        current_matchday=r["current_matchday"],
        start_date=date.fromisoformat(r["start_date"]) if r["start_date"] else None,
        prizes=PrizeDistribution.model_validate_json(r["prizes"] or "{}"),
        reward_player=json.loads(reward) if reward else None,
        club_ids=club_ids,
        leaderboard=[LeaderboardRow.from_dict(d) for d in json.loads(r["leaderboard"] or "[]")],
        top_scorers=[TopEntry.from_dict(d) for d in json.loads(r["top_scorers"] or "[]")],
        top_assists=[TopEntry.from_dict(d) for d in json.loads(r["top_assists"] or "[]")],
        prizes_distributed=bool(r["prizes_distributed"]),
        version=r["version"],
        created_at=_parse_datetime(r["created_at"]),
    )


class LeagueRepository:
    """CRUD for leagues and their club membership. State writes are versioned."""

    def create(
        self,
        conn: sqlite3.Connection,
        server_id: str,
        name: str,
        password_hash: str,
        capacity: int,
        prizes: PrizeDistribution,
        now: datetime,
        reward_player: dict[str, Any] | None = None,
        id: str | None = None,
    ) -> League:
        lid = id or str(uuid.uuid4())
        conn.execute(
            "INSERT INTO leagues (id, server_id, name, password_hash, capacity, status, current_matchday, "
            "prizes, reward_player, created_at) VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?)",
            (
                lid, server_id, name, password_hash, capacity, LeagueStatus.CREATED.value,
                prizes.model_dump_json(),
                json.dumps(reward_player) if reward_player is not None else None,
                now.isoformat(),
            ),
        )
        return League(
            id=lid, server_id=server_id, name=name, password_hash=password_hash, capacity=capacity,
            status=LeagueStatus.CREATED, current_matchday=1, prizes=prizes, created_at=now,
            reward_player=reward_player,
        )

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(f"SELECT {_LEAGUE_COLS} FROM leagues WHERE id = ?", (league_id,)).fetchone()
        if row is None:
            return None
        return _row_to_league(row, self.list_club_ids(conn, league_id))

    def get_by_server(self, conn: sqlite3.Connection, server_id: str) -> League | None:
        row = conn.execute(f"SELECT {_LEAGUE_COLS} FROM leagues WHERE server_id = ?", (server_id,)).fetchone()
        if row is None:
            return None
        return _row_to_league(row, self.list_club_ids(conn, row["id"]))

    def list_club_ids(self, conn: sqlite3.Connection, league_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT club_id FROM league_clubs WHERE league_id = ? ORDER BY join_order",
            (league_id,),
        ).fetchall()
        return [r["club_id"] for r in rows]

    def league_id_for_club(self, conn: sqlite3.Connection, club_id: str) -> str | None:
        row = conn.execute("SELECT league_id FROM league_clubs WHERE club_id = ?", (club_id,)).fetchone()
        return row["league_id"] if row else None

    def add_club(
        self, conn: sqlite3.Connection, league_id: str, club_id: str, capacity: int, now: datetime
    ) -> bool:
        """Insert membership only while the league is below capacity. False when full."""
        cur = conn.execute(
            "INSERT INTO league_clubs (league_id, club_id, join_order, joined_at) "
            "SELECT ?, ?, (SELECT COALESCE(MAX(join_order), -1) + 1 FROM league_clubs WHERE league_id = ?), ? "
            "WHERE (SELECT COUNT(*) FROM league_clubs WHERE league_id = ?) < ?",
            (league_id, club_id, league_id, now.isoformat(), league_id, capacity),
        )
        return cur.rowcount == 1

    def remove_all_clubs(self, conn: sqlite3.Connection, league_id: str) -> None:
        conn.execute("DELETE FROM league_clubs WHERE league_id = ?", (league_id,))

    def save_state(self, conn: sqlite3.Connection, league: League) -> bool:
        """
        Write status, matchday, start date, standings and prize flag if the stored
        version still equals league.version. On success league.version is bumped.
        """
        cur = conn.execute(
            "UPDATE leagues SET status = ?, current_matchday = ?, start_date = ?, leaderboard = ?, "
            "top_scorers = ?, top_assists = ?, prizes_distributed = ?, version = version + 1 "
            "WHERE id = ? AND version = ?",
            (
                league.status.value,
                league.current_matchday,
                league.start_date.isoformat() if league.start_date else None,
                json.dumps([r.to_dict() for r in league.leaderboard]),
                json.dumps([e.to_dict() for e in league.top_scorers]),
                json.dumps([e.to_dict() for e in league.top_assists]),
                int(league.prizes_distributed),
                league.id,
                league.version,
            ),
        )
        if cur.rowcount != 1:
            return False
        league.version += 1
        return True


# ---------- FixtureRepository ----------

_FIXTURE_COLS = (
    "id, league_id, matchday, sequence, home_club_id, away_club_id, home_club_name, away_club_name, "
    "scheduled_date, status, home_score, away_score, is_forfeited"
)


def _row_to_fixture(r: sqlite3.Row) -> Fixture:
    return Fixture(
        id=r["id"],
        league_id=r["league_id"],
        matchday=r["matchday"],
        sequence=r["sequence"],
        home_club_id=r["home_club_id"],
        away_club_id=r["away_club_id"],
        home_club_name=r["home_club_name"],
        away_club_name=r["away_club_name"],
        scheduled_date=date.fromisoformat(r["scheduled_date"]),
        status=FixtureStatus(r["status"]),
        home_score=r["home_score"],
        away_score=r["away_score"],
        is_forfeited=bool(r["is_forfeited"]),
    )


class FixtureRepository:
    """CRUD for fixtures. Status changes are compare-and-set on the current status."""

    def create_many(self, conn: sqlite3.Connection, fixtures: Iterable[Fixture]) -> None:
        conn.executemany(
            f"INSERT INTO fixtures ({_FIXTURE_COLS}) VALUES ({_placeholders(13)})",
            [
                (
                    f.id, f.league_id, f.matchday, f.sequence, f.home_club_id, f.away_club_id,
                    f.home_club_name, f.away_club_name, f.scheduled_date.isoformat(), f.status.value,
                    f.home_score, f.away_score, int(f.is_forfeited),
                )
                for f in fixtures
            ],
        )

    def get(self, conn: sqlite3.Connection, fixture_id: str) -> Fixture | None:
        row = conn.execute(f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE id = ?", (fixture_id,)).fetchone()
        return _row_to_fixture(row) if row else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? ORDER BY matchday, sequence",
            (league_id,),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    def list_by_matchday(self, conn: sqlite3.Connection, league_id: str, matchday: int) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND matchday = ? ORDER BY sequence",
            (league_id, matchday),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    def list_overdue_available(self, conn: sqlite3.Connection, league_id: str, today: date) -> list[Fixture]:
        """Available fixtures whose scheduled date is strictly before today."""
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND status = ? AND scheduled_date < ? "
            "ORDER BY matchday, sequence",
            (league_id, FixtureStatus.AVAILABLE.value, today.isoformat()),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    def count_pending(self, conn: sqlite3.Connection, league_id: str, matchday: int | None = None) -> int:
        """Fixtures not yet played or forfeited (whole league, or one matchday)."""
        sql = "SELECT COUNT(*) FROM fixtures WHERE league_id = ? AND status NOT IN (?, ?)"
        args: tuple = (league_id, FixtureStatus.PLAYED.value, FixtureStatus.FORFEITED.value)
        if matchday is not None:
            sql += " AND matchday = ?"
            args = args + (matchday,)
        return int(conn.execute(sql, args).fetchone()[0])

    def transition(
        self, conn: sqlite3.Connection, fixture_id: str, from_status: FixtureStatus, to_status: FixtureStatus
    ) -> bool:
        cur = conn.execute(
            "UPDATE fixtures SET status = ? WHERE id = ? AND status = ?",
            (to_status.value, fixture_id, from_status.value),
        )
        return cur.rowcount == 1

    def record_result(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        from_status: FixtureStatus,
        to_status: FixtureStatus,
        home_score: int,
        away_score: int,
        is_forfeited: bool = False,
    ) -> bool:
        cur = conn.execute(
            "UPDATE fixtures SET status = ?, home_score = ?, away_score = ?, is_forfeited = ? "
            "WHERE id = ? AND status = ?",
            (to_status.value, home_score, away_score, int(is_forfeited), fixture_id, from_status.value),
        )
        return cur.rowcount == 1

    def activate_matchday(self, conn: sqlite3.Connection, league_id: str, matchday: int) -> int:
        """scheduled -> available for every fixture of a matchday. Returns rows changed."""
        cur = conn.execute(
            "UPDATE fixtures SET status = ? WHERE league_id = ? AND matchday = ? AND status = ?",
            (FixtureStatus.AVAILABLE.value, league_id, matchday, FixtureStatus.SCHEDULED.value),
        )
        return cur.rowcount

    def delete_by_league(self, conn: sqlite3.Connection, league_id: str) -> None:
        conn.execute("DELETE FROM fixtures WHERE league_id = ?", (league_id,))


# ---------- MatchRepository ----------

_MATCH_COLS = (
    "id, match_type, league_id, fixture_id, matchday, home_club_id, away_club_id, home_club_name, "
    "away_club_name, home_score, away_score, is_forfeited, events, commentary, stamina_impact, seed, played_at"
)


def _row_to_match(r: sqlite3.Row) -> Match:
    return Match(
        id=r["id"],
        match_type=MatchType(r["match_type"]),
        league_id=r["league_id"],
        fixture_id=r["fixture_id"],
        matchday=r["matchday"],
        home_club_id=r["home_club_id"],
        away_club_id=r["away_club_id"],
        home_club_name=r["home_club_name"],
        away_club_name=r["away_club_name"],
        home_score=r["home_score"],
        away_score=r["away_score"],
        is_forfeited=bool(r["is_forfeited"]),
        events=events_from_json(r["events"]),
        commentary=tuple(json.loads(r["commentary"] or "[]")),
        stamina_impact=stamina_impact_from_json(r["stamina_impact"]),
        seed=r["seed"],
        played_at=_parse_datetime(r["played_at"]),
    )


class MatchRepository:
    """Append-only store of match records. One match per fixture."""

    def create(self, conn: sqlite3.Connection, match: Match) -> Match:
        conn.execute(
            f"INSERT INTO matches ({_MATCH_COLS}) VALUES ({_placeholders(17)})",
            (
                match.id, match.match_type.value, match.league_id, match.fixture_id, match.matchday,
                match.home_club_id, match.away_club_id, match.home_club_name, match.away_club_name,
                match.home_score, match.away_score, int(match.is_forfeited),
                events_to_json(match.events), json.dumps(list(match.commentary)),
                stamina_impact_to_json(match.stamina_impact), match.seed, match.played_at.isoformat(),
            ),
        )
        return match

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute(f"SELECT {_MATCH_COLS} FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _row_to_match(row) if row else None

    def get_by_fixture(self, conn: sqlite3.Connection, fixture_id: str) -> Match | None:
        row = conn.execute(f"SELECT {_MATCH_COLS} FROM matches WHERE fixture_id = ?", (fixture_id,)).fetchone()
        return _row_to_match(row) if row else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Match]:
        rows = conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE league_id = ? ORDER BY matchday, played_at",
            (league_id,),
        ).fetchall()
        return [_row_to_match(r) for r in rows]

    def list_by_club(
        self, conn: sqlite3.Connection, club_id: str, match_type: MatchType | None = None
    ) -> list[Match]:
        sql = f"SELECT {_MATCH_COLS} FROM matches WHERE (home_club_id = ? OR away_club_id = ?)"
        args: tuple = (club_id, club_id)
        if match_type is not None:
            sql += " AND match_type = ?"
            args = args + (match_type.value,)
        rows = conn.execute(sql + " ORDER BY played_at DESC", args).fetchall()
        return [_row_to_match(r) for r in rows]

    def delete_by_league(self, conn: sqlite3.Connection, league_id: str) -> None:
        conn.execute("DELETE FROM matches WHERE league_id = ?", (league_id,))


# ---------- TransferOfferRepository ----------

_OFFER_COLS = "id, from_club_id, to_club_id, offer_type, target_player_id, swap_player_id, amount, status, created_at"


def _row_to_offer(r: sqlite3.Row) -> TransferOffer:
    return TransferOffer(
        id=r["id"],
        from_club_id=r["from_club_id"],
        to_club_id=r["to_club_id"],
        offer_type=OfferType(r["offer_type"]),
        target_player_id=r["target_player_id"],
        swap_player_id=r["swap_player_id"],
        amount=r["amount"],
        status=OfferStatus(r["status"]),
        created_at=_parse_datetime(r["created_at"]),
    )


class TransferOfferRepository:
    """CRUD for transfer offers. pending -> accepted | declined via compare-and-set."""

    def create(
        self,
        conn: sqlite3.Connection,
        from_club_id: str,
        to_club_id: str,
        offer_type: OfferType,
        target_player_id: str,
        amount: int,
        now: datetime,
        swap_player_id: str | None = None,
        id: str | None = None,
    ) -> TransferOffer:
        oid = id or str(uuid.uuid4())
        conn.execute(
            f"INSERT INTO transfer_offers ({_OFFER_COLS}) VALUES ({_placeholders(9)})",
            (
                oid, from_club_id, to_club_id, offer_type.value, target_player_id, swap_player_id,
                amount, OfferStatus.PENDING.value, now.isoformat(),
            ),
        )
        return TransferOffer(
            id=oid, from_club_id=from_club_id, to_club_id=to_club_id, offer_type=offer_type,
            target_player_id=target_player_id, swap_player_id=swap_player_id, amount=amount,
            status=OfferStatus.PENDING, created_at=now,
        )

    def get(self, conn: sqlite3.Connection, offer_id: str) -> TransferOffer | None:
        row = conn.execute(f"SELECT {_OFFER_COLS} FROM transfer_offers WHERE id = ?", (offer_id,)).fetchone()
        return _row_to_offer(row) if row else None

    def find_pending(
        self, conn: sqlite3.Connection, from_club_id: str, target_player_id: str
    ) -> TransferOffer | None:
        row = conn.execute(
            f"SELECT {_OFFER_COLS} FROM transfer_offers "
            "WHERE from_club_id = ? AND target_player_id = ? AND status = ?",
            (from_club_id, target_player_id, OfferStatus.PENDING.value),
        ).fetchone()
        return _row_to_offer(row) if row else None

    def list_received(self, conn: sqlite3.Connection, club_id: str) -> list[TransferOffer]:
        rows = conn.execute(
            f"SELECT {_OFFER_COLS} FROM transfer_offers WHERE to_club_id = ? AND status = ? ORDER BY created_at DESC",
            (club_id, OfferStatus.PENDING.value),
        ).fetchall()
        return [_row_to_offer(r) for r in rows]

    def list_made(self, conn: sqlite3.Connection, club_id: str) -> list[TransferOffer]:
        rows = conn.execute(
            f"SELECT {_OFFER_COLS} FROM transfer_offers WHERE from_club_id = ? ORDER BY created_at DESC",
            (club_id,),
        ).fetchall()
        return [_row_to_offer(r) for r in rows]

    def transition(
        self, conn: sqlite3.Connection, offer_id: str, from_status: OfferStatus, to_status: OfferStatus
    ) -> bool:
        cur = conn.execute(
            "UPDATE transfer_offers SET status = ? WHERE id = ? AND status = ?",
            (to_status.value, offer_id, from_status.value),
        )
        return cur.rowcount == 1

    def delete(self, conn: sqlite3.Connection, offer_id: str) -> None:
        conn.execute("DELETE FROM transfer_offers WHERE id = ?", (offer_id,))


# ---------- TransferHistoryRepository ----------

_HISTORY_COLS = "id, player_id, player_name, from_club_id, to_club_id, fee, transfer_type, created_at"


def _row_to_record(r: sqlite3.Row) -> TransferRecord:
    return TransferRecord(
        id=r["id"],
        player_id=r["player_id"],
        player_name=r["player_name"],
        from_club_id=r["from_club_id"],
        to_club_id=r["to_club_id"],
        fee=r["fee"],
        transfer_type=OfferType(r["transfer_type"]),
        created_at=_parse_datetime(r["created_at"]),
    )


class TransferHistoryRepository:
    """Append-only transfer history."""

    def create(
        self,
        conn: sqlite3.Connection,
        player: Player,
        from_club_id: str,
        to_club_id: str,
        fee: int,
        transfer_type: OfferType,
        now: datetime,
    ) -> TransferRecord:
        record = TransferRecord(
            id=str(uuid.uuid4()),
            player_id=player.id,
            player_name=player.name,
            from_club_id=from_club_id,
            to_club_id=to_club_id,
            fee=fee,
            transfer_type=transfer_type,
            created_at=now,
        )
        conn.execute(
            f"INSERT INTO transfer_history ({_HISTORY_COLS}) VALUES ({_placeholders(8)})",
            (
                record.id, record.player_id, record.player_name, from_club_id, to_club_id,
                fee, transfer_type.value, now.isoformat(),
            ),
        )
        return record

    def list_recent(self, conn: sqlite3.Connection, limit: int = 50) -> list[TransferRecord]:
        rows = conn.execute(
            f"SELECT {_HISTORY_COLS} FROM transfer_history ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_by_club(self, conn: sqlite3.Connection, club_id: str) -> list[TransferRecord]:
        rows = conn.execute(
            f"SELECT {_HISTORY_COLS} FROM transfer_history WHERE from_club_id = ? OR to_club_id = ? "
            "ORDER BY created_at DESC, rowid DESC",
            (club_id, club_id),
        ).fetchall()
        return [_row_to_record(r) for r in rows]


# ---------- FriendlyInviteRepository ----------

_INVITE_COLS = "id, from_club_id, to_club_id, from_club_name, to_club_name, status, match_id, created_at"


def _row_to_invite(r: sqlite3.Row) -> FriendlyInvite:
    return FriendlyInvite(
        id=r["id"],
        from_club_id=r["from_club_id"],
        to_club_id=r["to_club_id"],
        from_club_name=r["from_club_name"],
        to_club_name=r["to_club_name"],
        status=InviteStatus(r["status"]),
        match_id=r["match_id"],
        created_at=_parse_datetime(r["created_at"]),
    )


class FriendlyInviteRepository:
    """CRUD for friendly invites. pending -> accepted | declined via compare-and-set."""

    def create(self, conn: sqlite3.Connection, from_club: Club, to_club: Club, now: datetime) -> FriendlyInvite:
        invite = FriendlyInvite(
            id=str(uuid.uuid4()),
            from_club_id=from_club.id,
            to_club_id=to_club.id,
            from_club_name=from_club.name,
            to_club_name=to_club.name,
            status=InviteStatus.PENDING,
            created_at=now,
        )
        conn.execute(
            f"INSERT INTO friendly_invites ({_INVITE_COLS}) VALUES ({_placeholders(8)})",
            (
                invite.id, invite.from_club_id, invite.to_club_id, invite.from_club_name,
                invite.to_club_name, invite.status.value, None, now.isoformat(),
            ),
        )
        return invite

    def get(self, conn: sqlite3.Connection, invite_id: str) -> FriendlyInvite | None:
        row = conn.execute(f"SELECT {_INVITE_COLS} FROM friendly_invites WHERE id = ?", (invite_id,)).fetchone()
        return _row_to_invite(row) if row else None

    def find_pending(self, conn: sqlite3.Connection, from_club_id: str, to_club_id: str) -> FriendlyInvite | None:
        row = conn.execute(
            f"SELECT {_INVITE_COLS} FROM friendly_invites WHERE from_club_id = ? AND to_club_id = ? AND status = ?",
            (from_club_id, to_club_id, InviteStatus.PENDING.value),
        ).fetchone()
        return _row_to_invite(row) if row else None

    def list_pending_received(self, conn: sqlite3.Connection, club_id: str) -> list[FriendlyInvite]:
        rows = conn.execute(
            f"SELECT {_INVITE_COLS} FROM friendly_invites WHERE to_club_id = ? AND status = ? ORDER BY created_at",
            (club_id, InviteStatus.PENDING.value),
        ).fetchall()
        return [_row_to_invite(r) for r in rows]

    def transition(
        self, conn: sqlite3.Connection, invite_id: str, from_status: InviteStatus, to_status: InviteStatus
    ) -> bool:
        cur = conn.execute(
            "UPDATE friendly_invites SET status = ? WHERE id = ? AND status = ?",
            (to_status.value, invite_id, from_status.value),
        )
        return cur.rowcount == 1

    def set_match(self, conn: sqlite3.Connection, invite_id: str, match_id: str) -> None:
        conn.execute("UPDATE friendly_invites SET match_id = ? WHERE id = ?", (match_id, invite_id))

    def delete(self, conn: sqlite3.Connection, invite_id: str) -> bool:
        cur = conn.execute("DELETE FROM friendly_invites WHERE id = ?", (invite_id,))
        return cur.rowcount == 1
