"""
SQLite schema for league entities.
Each table created with IF NOT EXISTS. JSON columns hold event logs and standings.
"""
from __future__ import annotations


def clubs_schema() -> str:
    """One club per owner per server; club names are unique."""
    return """
    CREATE TABLE IF NOT EXISTS clubs (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        server_id TEXT NOT NULL,
        name TEXT NOT NULL UNIQUE,
        logo TEXT NOT NULL DEFAULT '',
        home_color TEXT NOT NULL DEFAULT '',
        away_color TEXT NOT NULL DEFAULT '',
        budget INTEGER NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        last_friendly_at TEXT,
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_clubs_server_owner ON clubs(server_id, owner_id);
    CREATE INDEX IF NOT EXISTS ix_clubs_server ON clubs(server_id);
    """


def players_schema() -> str:
    """A catalog player is owned at most once per server. squad_role: starter | substitute | reserve."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        catalog_id TEXT NOT NULL,
        server_id TEXT NOT NULL,
        club_id TEXT,
        name TEXT NOT NULL,
        position TEXT NOT NULL,
        attributes TEXT NOT NULL DEFAULT '{}',
        market_value INTEGER NOT NULL DEFAULT 0,
        stamina_pct INTEGER NOT NULL DEFAULT 100,
        games_played INTEGER NOT NULL DEFAULT 0,
        yellow_cards INTEGER NOT NULL DEFAULT 0,
        red_cards INTEGER NOT NULL DEFAULT 0,
        is_suspended INTEGER NOT NULL DEFAULT 0,
        suspension_reason TEXT,
        squad_role TEXT NOT NULL DEFAULT 'reserve',
        squad_order INTEGER NOT NULL DEFAULT 0,
        nationality TEXT,
        image_url TEXT,
        FOREIGN KEY (club_id) REFERENCES clubs(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_players_server_catalog ON players(server_id, catalog_id);
    CREATE INDEX IF NOT EXISTS ix_players_club ON players(club_id);
    """


def leagues_schema() -> str:
    """One league per server. status: created | started | finished. version guards standings writes."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        server_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        password_hash TEXT NOT NULL DEFAULT '',
        capacity INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'created',
        current_matchday INTEGER NOT NULL DEFAULT 1,
        start_date TEXT,
        prizes TEXT NOT NULL DEFAULT '{}',
        reward_player TEXT,
        leaderboard TEXT NOT NULL DEFAULT '[]',
        top_scorers TEXT NOT NULL DEFAULT '[]',
        top_assists TEXT NOT NULL DEFAULT '[]',
        prizes_distributed INTEGER NOT NULL DEFAULT 0,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_leagues_status ON leagues(status);
    """


def league_clubs_schema() -> str:
    """Join table. A club belongs to at most one league; join_order fixes scheduling order."""
    return """
    CREATE TABLE IF NOT EXISTS league_clubs (
        league_id TEXT NOT NULL,
        club_id TEXT NOT NULL UNIQUE,
        join_order INTEGER NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (league_id, club_id),
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (club_id) REFERENCES clubs(id)
    );
    """


def fixtures_schema() -> str:
    """status: scheduled | available | playing | played | forfeited. Scores NULL until done."""
    return """
    CREATE TABLE IF NOT EXISTS fixtures (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        matchday INTEGER NOT NULL,
        sequence INTEGER NOT NULL,
        home_club_id TEXT NOT NULL,
        away_club_id TEXT NOT NULL,
        home_club_name TEXT NOT NULL,
        away_club_name TEXT NOT NULL,
        scheduled_date TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'scheduled',
        home_score INTEGER,
        away_score INTEGER,
        is_forfeited INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        CHECK (home_club_id <> away_club_id)
    );
    CREATE INDEX IF NOT EXISTS ix_fixtures_league_matchday ON fixtures(league_id, matchday);
    CREATE INDEX IF NOT EXISTS ix_fixtures_league_status ON fixtures(league_id, status);
    """


def matches_schema() -> str:
    """Append-only. league_id and fixture_id NULL for friendlies; at most one match per fixture."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        match_type TEXT NOT NULL,
        league_id TEXT,
        fixture_id TEXT UNIQUE,
        matchday INTEGER,
        home_club_id TEXT NOT NULL,
        away_club_id TEXT NOT NULL,
        home_club_name TEXT NOT NULL,
        away_club_name TEXT NOT NULL,
        home_score INTEGER NOT NULL,
        away_score INTEGER NOT NULL,
        is_forfeited INTEGER NOT NULL DEFAULT 0,
        events TEXT NOT NULL DEFAULT '[]',
        commentary TEXT NOT NULL DEFAULT '[]',
        stamina_impact TEXT NOT NULL DEFAULT '[]',
        seed INTEGER,
        played_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_matches_league ON matches(league_id);
    CREATE INDEX IF NOT EXISTS ix_matches_home ON matches(home_club_id);
    CREATE INDEX IF NOT EXISTS ix_matches_away ON matches(away_club_id);
    """


def transfer_offers_schema() -> str:
    """status: pending | accepted | declined. Accepted offers are deleted once processed."""
    return """
    CREATE TABLE IF NOT EXISTS transfer_offers (
        id TEXT PRIMARY KEY,
        from_club_id TEXT NOT NULL,
        to_club_id TEXT NOT NULL,
        offer_type TEXT NOT NULL,
        target_player_id TEXT NOT NULL,
        swap_player_id TEXT,
        amount INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_offers_to ON transfer_offers(to_club_id, status);
    CREATE INDEX IF NOT EXISTS ix_offers_from ON transfer_offers(from_club_id, status);
    """


def transfer_history_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS transfer_history (
        id TEXT PRIMARY KEY,
        player_id TEXT NOT NULL,
        player_name TEXT NOT NULL,
        from_club_id TEXT NOT NULL,
        to_club_id TEXT NOT NULL,
        fee INTEGER NOT NULL DEFAULT 0,
        transfer_type TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_transfer_history_created ON transfer_history(created_at);
    """


def friendly_invites_schema() -> str:
    """status: pending | accepted | declined. At most one pending invite per ordered pair of clubs."""
    return """
    CREATE TABLE IF NOT EXISTS friendly_invites (
        id TEXT PRIMARY KEY,
        from_club_id TEXT NOT NULL,
        to_club_id TEXT NOT NULL,
        from_club_name TEXT NOT NULL,
        to_club_name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        match_id TEXT,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_invites_to ON friendly_invites(to_club_id, status);
    CREATE UNIQUE INDEX IF NOT EXISTS ux_invites_pending_pair
        ON friendly_invites(from_club_id, to_club_id) WHERE status = 'pending';
    """


def all_schema_sql() -> str:
    """Full schema in dependency order."""
    return "\n".join([
        clubs_schema(),
        players_schema(),
        leagues_schema(),
        league_clubs_schema(),
        fixtures_schema(),
        matches_schema(),
        transfer_offers_schema(),
        transfer_history_schema(),
        friendly_invites_schema(),
    ])
