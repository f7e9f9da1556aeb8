"""
Shared fixtures: temporary database, fixed clock, synthetic catalog, club factory.
"""
from __future__ import annotations

import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from fantasy_league.catalog import PlayerCatalog
from fantasy_league.clock import FixedClock
from fantasy_league.models import Player, Position
from fantasy_league.persistence.db import get_connection, init_db, set_db_path
from fantasy_league.services.squad_service import SquadService

START = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

# 19 players per catalog team: 2 GK, 7 DEF, 6 MID, 4 ATT
TEAM_POSITIONS = (
    ["Goalkeeper"] * 2
    + ["Centre-Back"] * 3 + ["Left-Back"] * 2 + ["Right-Back"] * 2
    + ["Defensive Midfield", "Central Midfield", "Central Midfield", "Attacking Midfield",
       "Left Midfield", "Right Midfield"]
    + ["Left Winger", "Right Winger", "Centre-Forward", "Second Striker"]
)


def build_catalog_document(teams: int = 6, seed: int = 7) -> dict:
    """Catalog JSON in the upstream layout, with one unusable record per team."""
    rng = random.Random(seed)
    doc: dict = {"teams": {}}
    next_id = 1
    for t in range(teams):
        players = []
        for pos in TEAM_POSITIONS:
            players.append({
                "id": next_id,
                "name": f"Player {next_id}",
                "position": pos,
                "nationality": ["France"] if next_id % 2 else "Spain",
                "market_value": f"€{rng.randint(1, 40) * 50}k",
                "image_url": f"https://img.example/{next_id}.png",
                "attributes": {
                    "pace": rng.randint(50, 95),
                    "shooting": rng.randint(40, 95),
                    "passing": rng.randint(40, 95),
                    "defense": rng.randint(30, 90),
                },
            })
            next_id += 1
        players.append({"id": next_id, "name": f"Unknown {next_id}", "position": None, "attributes": {}})
        next_id += 1
        doc["teams"][f"team_{t}"] = {"name": f"Team {t}", "logo": "", "players": players}
    return doc


def make_player(
    player_id: str,
    position: Position = Position.CENTRAL_MIDFIELD,
    rating: float = 70.0,
    stamina: int = 100,
    club_id: str | None = "club",
) -> Player:
    return Player(
        id=player_id,
        catalog_id=player_id,
        club_id=club_id,
        name=f"Name {player_id}",
        position=position,
        attributes={"pace": rating, "passing": rating},
        market_value=100_000,
        stamina_pct=stamina,
    )


def make_eleven(prefix: str, rating: float = 70.0, stamina: int = 100) -> list[Player]:
    """A 1-4-4-2 eleven followed by two substitutes."""
    shape = (
        [Position.GOALKEEPER]
        + [Position.CENTRE_BACK, Position.CENTRE_BACK, Position.LEFT_BACK, Position.RIGHT_BACK]
        + [Position.CENTRAL_MIDFIELD, Position.CENTRAL_MIDFIELD, Position.LEFT_MIDFIELD, Position.RIGHT_MIDFIELD]
        + [Position.CENTRE_FORWARD, Position.LEFT_WINGER]
        + [Position.GOALKEEPER, Position.CENTRE_BACK]
    )
    return [make_player(f"{prefix}{i}", pos, rating, stamina) for i, pos in enumerate(shape)]


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def catalog():
    return PlayerCatalog.from_document(build_catalog_document())


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with the full schema."""
    db_path = tmp_path / "league_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def squad_service(catalog, clock):
    return SquadService(catalog, clock=clock)


@pytest.fixture
def make_club(db_conn, squad_service):
    """Factory: make_club("Name", owner_id=None, server_id="srv-1") -> Club with a 17-player squad."""
    counter = {"n": 0}

    def _make(name: str, owner_id: str | None = None, server_id: str = "srv-1"):
        counter["n"] += 1
        return squad_service.create_club(
            db_conn,
            owner_id=owner_id or f"owner-{counter['n']}",
            server_id=server_id,
            name=name,
            colors=("#ff0000", "#ffffff"),
            seed=counter["n"],
        )

    return _make
