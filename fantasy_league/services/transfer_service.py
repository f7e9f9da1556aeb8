"""
Transfer engine: direct purchases and swap-plus-money deals between clubs.

Accepting an offer is one transaction: offer status, both rosters, both budgets
and the history rows change together or not at all. Processed offers are deleted.
"""
from __future__ import annotations

import logging
import sqlite3

from fantasy_league.catalog import format_currency, parse_market_value
from fantasy_league.clock import Clock, SystemClock
from fantasy_league.errors import NotFoundError, StateConflictError, ValidationError
from fantasy_league.models import (
    MAX_SQUAD_SIZE,
    STARTING_ELEVEN,
    SUBSTITUTE_LIMIT,
    Club,
    OfferStatus,
    OfferType,
    Player,
    SquadRole,
    TransferOffer,
    TransferRecord,
)
from fantasy_league.persistence.db import transaction
from fantasy_league.persistence.repositories import (
    ClubRepository,
    PlayerRepository,
    TransferHistoryRepository,
    TransferOfferRepository,
)

logger = logging.getLogger(__name__)

SWAP_TOP_UP_PERCENT = 30
DIRECT_SALE_MIN_SQUAD = SUBSTITUTE_LIMIT  # sellers above this size can be bought from directly
HISTORY_LIMIT = 50

__all__ = [
    "TransferService",
    "max_swap_top_up",
    "role_for_roster_size",
    "parse_market_value",
    "format_currency",
]


def max_swap_top_up(target_value: int, swap_value: int) -> int:
    """30% of the positive value gap, integer arithmetic; 0 when the offered player is worth as much or more."""
    gap = max(0, target_value - swap_value)
    return gap * SWAP_TOP_UP_PERCENT // 100


def role_for_roster_size(size: int) -> SquadRole:
    """Role for a newcomer joining a roster that currently has size players."""
    if size < STARTING_ELEVEN:
        return SquadRole.STARTER
    if size < SUBSTITUTE_LIMIT:
        return SquadRole.SUBSTITUTE
    return SquadRole.RESERVE


class TransferService:
    """Offers between clubs of the same server."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._club_repo = ClubRepository()
        self._player_repo = PlayerRepository()
        self._offer_repo = TransferOfferRepository()
        self._history_repo = TransferHistoryRepository()

    # ---------- Lookups ----------

    def _club(self, conn: sqlite3.Connection, club_id: str) -> Club:
        club = self._club_repo.get(conn, club_id)
        if club is None:
            raise NotFoundError(f"Club not found: {club_id}")
        return club

    def _player(self, conn: sqlite3.Connection, player_id: str) -> Player:
        player = self._player_repo.get(conn, player_id)
        if player is None or player.club_id is None:
            raise NotFoundError(f"Player not found: {player_id}")
        return player

    def _offer(self, conn: sqlite3.Connection, offer_id: str) -> TransferOffer:
        offer = self._offer_repo.get(conn, offer_id)
        if offer is None:
            raise NotFoundError(f"Offer not found: {offer_id}")
        return offer

    # ---------- Making offers ----------

    def make_direct_offer(
        self,
        conn: sqlite3.Connection,
        from_club_id: str,
        target_player_id: str,
        amount: int | None = None,
    ) -> TransferOffer:
        """Offer to buy a player outright. amount defaults to the player's market value."""
        buyer = self._club(conn, from_club_id)
        target = self._player(conn, target_player_id)
        if target.club_id == buyer.id:
            raise ValidationError("Cannot bid for your own player")
        seller = self._club(conn, target.club_id)
        if seller.server_id != buyer.server_id:
            raise ValidationError("Transfers are only possible within one server")
        fee = target.market_value if amount is None else amount
        if fee < 0:
            raise ValidationError("Offer amount cannot be negative")
        if buyer.budget < max(fee, target.market_value):
            raise ValidationError(
                f"Insufficient budget: {format_currency(buyer.budget)} available, "
                f"{format_currency(max(fee, target.market_value))} needed"
            )
        if self._player_repo.count_by_club(conn, buyer.id) >= MAX_SQUAD_SIZE:
            raise ValidationError(f"Squad is full ({MAX_SQUAD_SIZE} players)")
        if self._offer_repo.find_pending(conn, buyer.id, target.id) is not None:
            raise StateConflictError(f"A pending offer for {target.name} already exists")
        offer = self._offer_repo.create(
            conn, buyer.id, seller.id, OfferType.DIRECT, target.id, fee, self._clock.now(),
        )
        logger.info("Direct offer %s: %s bids %d for %s", offer.id, buyer.name, fee, target.name)
        return offer

    def make_swap_offer(
        self,
        conn: sqlite3.Connection,
        from_club_id: str,
        target_player_id: str,
        swap_player_id: str,
        additional_money: int = 0,
    ) -> TransferOffer:
        """Offer one own player (plus optional money) for the target. Top-up capped by max_swap_top_up."""
        offering = self._club(conn, from_club_id)
        target = self._player(conn, target_player_id)
        swap = self._player(conn, swap_player_id)
        if swap.club_id != offering.id:
            raise ValidationError(f"{swap.name} does not belong to {offering.name}")
        if target.club_id == offering.id:
            raise ValidationError("Cannot swap with your own player")
        receiving = self._club(conn, target.club_id)
        if receiving.server_id != offering.server_id:
            raise ValidationError("Transfers are only possible within one server")
        if additional_money < 0:
            raise ValidationError("Additional money cannot be negative")
        cap = max_swap_top_up(target.market_value, swap.market_value)
        if additional_money > cap:
            raise ValidationError(
                f"Additional money {format_currency(additional_money)} exceeds the cap of {format_currency(cap)}"
            )
        if offering.budget < additional_money:
            raise ValidationError("Insufficient budget for the additional money")
        if self._offer_repo.find_pending(conn, offering.id, target.id) is not None:
            raise StateConflictError(f"A pending offer for {target.name} already exists")
        offer = self._offer_repo.create(
            conn, offering.id, receiving.id, OfferType.SWAP, target.id, additional_money,
            self._clock.now(), swap_player_id=swap.id,
        )
        logger.info("Swap offer %s: %s offers %s + %d for %s", offer.id, offering.name, swap.name, additional_money, target.name)
        return offer

    # ---------- Responding ----------

    def respond_to_offer(
        self, conn: sqlite3.Connection, offer_id: str, accept: bool
    ) -> list[TransferRecord] | None:
        """Accept (process the transfer, returns history rows) or decline (returns None)."""
        if accept:
            return self.process_transfer(conn, offer_id)
        if not self._offer_repo.transition(conn, offer_id, OfferStatus.PENDING, OfferStatus.DECLINED):
            self._offer(conn, offer_id)
            raise StateConflictError(f"Offer {offer_id} was already resolved")
        logger.info("Offer %s declined", offer_id)
        return None

    def process_transfer(self, conn: sqlite3.Connection, offer_id: str) -> list[TransferRecord]:
        """Execute an offer atomically. Any failure leaves offer, rosters and budgets untouched."""
        with transaction(conn):
            offer = self._offer(conn, offer_id)
            if not self._offer_repo.transition(conn, offer.id, OfferStatus.PENDING, OfferStatus.ACCEPTED):
                raise StateConflictError(f"Offer {offer_id} was already resolved")
            if offer.offer_type is OfferType.DIRECT:
                records = self._process_direct(conn, offer)
            else:
                records = self._process_swap(conn, offer)
            self._offer_repo.delete(conn, offer.id)
        return records

    def _process_direct(self, conn: sqlite3.Connection, offer: TransferOffer) -> list[TransferRecord]:
        buyer = self._club(conn, offer.from_club_id)
        seller = self._club(conn, offer.to_club_id)
        target = self._player(conn, offer.target_player_id)
        if target.club_id != seller.id:
            raise StateConflictError(f"{target.name} no longer plays for {seller.name}")
        if buyer.budget < target.market_value or buyer.budget < offer.amount:
            raise ValidationError(
                f"Insufficient budget: {format_currency(buyer.budget)} available, "
                f"{format_currency(max(offer.amount, target.market_value))} needed"
            )
        size = self._player_repo.count_by_club(conn, buyer.id)
        if size + 1 > MAX_SQUAD_SIZE:
            raise ValidationError(f"Squad is full ({MAX_SQUAD_SIZE} players)")
        role = role_for_roster_size(size)
        order = self._player_repo.max_order(conn, buyer.id, role) + 1
        if not self._club_repo.adjust_budget(conn, buyer.id, -offer.amount):
            raise ValidationError("Insufficient budget")
        self._club_repo.adjust_budget(conn, seller.id, offer.amount)
        if not self._player_repo.move(conn, target.id, seller.id, buyer.id, role, order):
            raise StateConflictError(f"{target.name} was moved concurrently")
        record = self._history_repo.create(
            conn, target, seller.id, buyer.id, offer.amount, OfferType.DIRECT, self._clock.now()
        )
        logger.info("Transfer: %s from %s to %s for %d as %s", target.name, seller.name, buyer.name, offer.amount, role.value)
        return [record]

    def _process_swap(self, conn: sqlite3.Connection, offer: TransferOffer) -> list[TransferRecord]:
        offering = self._club(conn, offer.from_club_id)
        receiving = self._club(conn, offer.to_club_id)
        target = self._player(conn, offer.target_player_id)
        if offer.swap_player_id is None:
            raise ValidationError(f"Swap offer {offer.id} has no swap player")
        swap = self._player(conn, offer.swap_player_id)
        if target.club_id != receiving.id:
            raise StateConflictError(f"{target.name} no longer plays for {receiving.name}")
        if swap.club_id != offering.id:
            raise StateConflictError(f"{swap.name} no longer plays for {offering.name}")
        if offer.amount > 0:
            if not self._club_repo.adjust_budget(conn, offering.id, -offer.amount):
                raise ValidationError("Insufficient budget for the additional money")
            self._club_repo.adjust_budget(conn, receiving.id, offer.amount)
        # each player takes over the other's slot
        self._player_repo.move(conn, target.id, receiving.id, offering.id, swap.squad_role, swap.squad_order)
        self._player_repo.move(conn, swap.id, offering.id, receiving.id, target.squad_role, target.squad_order)
        now = self._clock.now()
        records = [
            self._history_repo.create(conn, target, receiving.id, offering.id, offer.amount, OfferType.SWAP, now),
            self._history_repo.create(conn, swap, offering.id, receiving.id, 0, OfferType.SWAP, now),
        ]
        logger.info("Swap: %s (%s) <-> %s (%s), top-up %d", target.name, receiving.name, swap.name, offering.name, offer.amount)
        return records

    # ---------- Reads ----------

    def list_received_offers(self, conn: sqlite3.Connection, club_id: str) -> list[TransferOffer]:
        return self._offer_repo.list_received(conn, club_id)

    def list_made_offers(self, conn: sqlite3.Connection, club_id: str) -> list[TransferOffer]:
        return self._offer_repo.list_made(conn, club_id)

    def available_players_for_transfer(
        self, conn: sqlite3.Connection, exclude_club_id: str
    ) -> list[tuple[Player, bool]]:
        """
        Players of other clubs in the same server, most valuable first, each
        paired with whether a direct purchase is possible (seller has more than 17 players).
        """
        club = self._club(conn, exclude_club_id)
        players = self._player_repo.list_by_server_excluding_club(conn, club.server_id, club.id)
        sizes: dict[str, int] = {}
        out: list[tuple[Player, bool]] = []
        for p in players:
            if p.club_id not in sizes:
                sizes[p.club_id] = self._player_repo.count_by_club(conn, p.club_id)
            out.append((p, sizes[p.club_id] > DIRECT_SALE_MIN_SQUAD))
        return out

    def transfer_history(self, conn: sqlite3.Connection, limit: int = HISTORY_LIMIT) -> list[TransferRecord]:
        return self._history_repo.list_recent(conn, limit)
