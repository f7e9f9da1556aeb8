"""
Club creation and squad management: balanced initial squad draw from the
catalog, lineup changes, roster reads.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Sequence

from fantasy_league.catalog import CatalogPlayer, PlayerCatalog
from fantasy_league.clock import Clock, SystemClock
from fantasy_league.config import get_settings
from fantasy_league.errors import NotFoundError, StateConflictError, ValidationError
from fantasy_league.models import (
    STARTING_ELEVEN,
    Club,
    Player,
    PositionBucket,
    SquadRole,
    position_bucket,
)
from fantasy_league.persistence.db import transaction
from fantasy_league.persistence.repositories import ClubRepository, PlayerRepository
from fantasy_league.simulation.rng import SeededRNG

logger = logging.getLogger(__name__)

STARTER_SHAPE: tuple[tuple[PositionBucket, int], ...] = (
    (PositionBucket.GK, 1),
    (PositionBucket.DEF, 4),
    (PositionBucket.MID, 4),
    (PositionBucket.ATT, 2),
)
SUBSTITUTE_SHAPE: tuple[tuple[PositionBucket, int], ...] = (
    (PositionBucket.GK, 1),
    (PositionBucket.DEF, 2),
    (PositionBucket.MID, 2),
    (PositionBucket.ATT, 1),
)


def select_balanced_squad(
    available: Sequence[CatalogPlayer], rng: SeededRNG
) -> list[tuple[CatalogPlayer, SquadRole]]:
    """
    Draw starters (1 GK, 4 DEF, 4 MID, 2 ATT) then substitutes (1 GK, 2 DEF, 2 MID, 1 ATT)
    at random per bucket. A thin pool yields fewer players, never duplicates.
    """
    picked: list[tuple[CatalogPlayer, SquadRole]] = []
    taken: set[str] = set()
    for role, shape in ((SquadRole.STARTER, STARTER_SHAPE), (SquadRole.SUBSTITUTE, SUBSTITUTE_SHAPE)):
        for bucket, count in shape:
            pool = [p for p in available if p.catalog_id not in taken and position_bucket(p.position) is bucket]
            for p in rng.sample(pool, count):
                taken.add(p.catalog_id)
                picked.append((p, role))
    return picked


class SquadService:
    """
    Club creation and lineup management. Squads are drawn from catalog players
    not yet owned by any club in the same server.
    """

    def __init__(self, catalog: PlayerCatalog, clock: Clock | None = None) -> None:
        self._catalog = catalog
        self._clock = clock or SystemClock()
        self._club_repo = ClubRepository()
        self._player_repo = PlayerRepository()

    def create_club(
        self,
        conn: sqlite3.Connection,
        owner_id: str,
        server_id: str,
        name: str,
        logo: str = "",
        colors: tuple[str, str] = ("", ""),
        seed: int | None = None,
    ) -> Club:
        """Create a club with the starting budget and a balanced 17-player squad."""
        name = name.strip()
        if not name:
            raise ValidationError("Club name is required")
        with transaction(conn):
            if self._club_repo.get_by_name(conn, name) is not None:
                raise StateConflictError(f"Club name already taken: {name}")
            if self._club_repo.get_by_owner(conn, server_id, owner_id) is not None:
                raise StateConflictError(f"Owner {owner_id} already has a club in server {server_id}")
            owned = self._player_repo.owned_catalog_ids(conn, server_id)
            squad = select_balanced_squad(self._catalog.excluding(owned), SeededRNG(seed))
            if len([p for p, role in squad if role is SquadRole.STARTER]) < STARTING_ELEVEN:
                raise ValidationError(f"Not enough free catalog players in server {server_id} for a starting eleven")
            club = self._club_repo.create(
                conn,
                owner_id=owner_id,
                server_id=server_id,
                name=name,
                budget=get_settings().starting_budget,
                now=self._clock.now(),
                logo=logo,
                home_color=colors[0],
                away_color=colors[1],
            )
            orders = {SquadRole.STARTER: 0, SquadRole.SUBSTITUTE: 0}
            for seed_player, role in squad:
                self._player_repo.create(conn, server_id, club.id, seed_player, role, orders[role])
                orders[role] += 1
        logger.info("Club %s created in server %s with %d players", club.name, server_id, len(squad))
        return club

    def get_club(self, conn: sqlite3.Connection, club_id: str) -> Club:
        club = self._club_repo.get(conn, club_id)
        if club is None:
            raise NotFoundError(f"Club not found: {club_id}")
        return club

    def get_roster(self, conn: sqlite3.Connection, club_id: str) -> list[Player]:
        self.get_club(conn, club_id)
        return self._player_repo.list_by_club(conn, club_id)

    def set_lineup(self, conn: sqlite3.Connection, club_id: str, starter_ids: Sequence[str]) -> list[Player]:
        """
        Make exactly eleven distinct owned players the starters, in the given order.
        Displaced starters move to the end of the bench.
        """
        if len(starter_ids) != STARTING_ELEVEN or len(set(starter_ids)) != STARTING_ELEVEN:
            raise ValidationError(f"A lineup needs exactly {STARTING_ELEVEN} distinct players")
        with transaction(conn):
            roster = self.get_roster(conn, club_id)
            by_id = {p.id: p for p in roster}
            missing = [pid for pid in starter_ids if pid not in by_id]
            if missing:
                raise ValidationError(f"Players not in club {club_id}: {', '.join(missing)}")
            chosen = set(starter_ids)
            next_bench = self._player_repo.max_order(conn, club_id, SquadRole.SUBSTITUTE) + 1
            for p in roster:
                if p.squad_role is SquadRole.STARTER and p.id not in chosen:
                    self._player_repo.set_role(conn, p.id, SquadRole.SUBSTITUTE, next_bench)
                    next_bench += 1
            for order, pid in enumerate(starter_ids):
                self._player_repo.set_role(conn, pid, SquadRole.STARTER, order)
            updated = self._player_repo.list_by_club(conn, club_id)
        logger.info("Lineup updated for club %s", club_id)
        return updated
