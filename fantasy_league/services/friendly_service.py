"""
Friendly matches between any two clubs of a server, outside the league.
A club invites another; accepting plays the friendly with the inviter at home.
Lighter stamina cost, cards do not count, one friendly per club per cooldown window.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta

from fantasy_league.clock import Clock, SystemClock
from fantasy_league.config import get_settings
from fantasy_league.errors import NotFoundError, StateConflictError, ValidationError
from fantasy_league.models import Club, FriendlyInvite, InviteStatus, Match, MatchType
from fantasy_league.persistence.db import transaction
from fantasy_league.persistence.repositories import ClubRepository, FriendlyInviteRepository, MatchRepository
from fantasy_league.services.simulation_service import (
    apply_condition_changes,
    load_match_setup,
    run_match_simulation,
)

logger = logging.getLogger(__name__)


class FriendlyService:
    def __init__(self, clock: Clock | None = None, cooldown_hours: int | None = None) -> None:
        self._clock = clock or SystemClock()
        self._cooldown = timedelta(
            hours=cooldown_hours if cooldown_hours is not None else get_settings().friendly_cooldown_hours
        )
        self._club_repo = ClubRepository()
        self._match_repo = MatchRepository()
        self._invite_repo = FriendlyInviteRepository()

    def _club(self, conn: sqlite3.Connection, club_id: str) -> Club:
        club = self._club_repo.get(conn, club_id)
        if club is None:
            raise NotFoundError(f"Club not found: {club_id}")
        return club

    def _invite(self, conn: sqlite3.Connection, invite_id: str) -> FriendlyInvite:
        invite = self._invite_repo.get(conn, invite_id)
        if invite is None:
            raise NotFoundError(f"Friendly invite not found: {invite_id}")
        return invite

    def _cooldown_label(self) -> str:
        return f"{int(self._cooldown.total_seconds() // 3600)} hours"

    def next_friendly_at(self, conn: sqlite3.Connection, club_id: str) -> datetime | None:
        """When the club may next play a friendly; None if it may play now."""
        club = self._club_repo.get(conn, club_id)
        if club is None or club.last_friendly_at is None:
            return None
        ready = club.last_friendly_at + self._cooldown
        return ready if ready > self._clock.now() else None

    # ---------- Invites ----------

    def send_invite(self, conn: sqlite3.Connection, from_club_id: str, to_club_id: str) -> FriendlyInvite:
        """
        Invite another club of the same server. The inviter must be off cooldown;
        only one pending invite per pair and direction.
        """
        if from_club_id == to_club_id:
            raise ValidationError("A club cannot invite itself to a friendly")
        with transaction(conn):
            inviter = self._club(conn, from_club_id)
            invited = self._club(conn, to_club_id)
            if inviter.server_id != invited.server_id:
                raise ValidationError("Friendlies are only possible within one server")
            if self.next_friendly_at(conn, inviter.id) is not None:
                raise StateConflictError(f"{inviter.name} already played a friendly in the last {self._cooldown_label()}")
            if self._invite_repo.find_pending(conn, inviter.id, invited.id) is not None:
                raise StateConflictError(f"{inviter.name} already has a pending invite to {invited.name}")
            invite = self._invite_repo.create(conn, inviter, invited, self._clock.now())
        logger.info("Friendly invite %s: %s invites %s", invite.id, inviter.name, invited.name)
        return invite

    def list_pending_invites(self, conn: sqlite3.Connection, club_id: str) -> list[FriendlyInvite]:
        """Pending invites received by the club, oldest first."""
        return self._invite_repo.list_pending_received(conn, club_id)

    def respond_to_invite(
        self, conn: sqlite3.Connection, invite_id: str, accept: bool, seed: int | None = None
    ) -> Match | None:
        """
        Decline (returns None) or accept and play at once (returns the Match).
        If the friendly cannot be played the invite stays pending.
        """
        if not accept:
            if not self._invite_repo.transition(conn, invite_id, InviteStatus.PENDING, InviteStatus.DECLINED):
                self._invite(conn, invite_id)
                raise StateConflictError(f"Friendly invite {invite_id} was already answered")
            logger.info("Friendly invite %s declined", invite_id)
            return None
        with transaction(conn):
            invite = self._invite(conn, invite_id)
            if not self._invite_repo.transition(conn, invite.id, InviteStatus.PENDING, InviteStatus.ACCEPTED):
                raise StateConflictError(f"Friendly invite {invite_id} was already answered")
            match = self.play_friendly(conn, invite.from_club_id, invite.to_club_id, seed=seed)
            self._invite_repo.set_match(conn, invite.id, match.id)
        return match

    def delete_invite(self, conn: sqlite3.Connection, invite_id: str) -> None:
        if not self._invite_repo.delete(conn, invite_id):
            raise NotFoundError(f"Friendly invite not found: {invite_id}")

    # ---------- Play ----------

    def play_friendly(
        self, conn: sqlite3.Connection, home_club_id: str, away_club_id: str, seed: int | None = None
    ) -> Match:
        if home_club_id == away_club_id:
            raise ValidationError("A club cannot play a friendly against itself")
        setup = load_match_setup(conn, home_club_id, away_club_id)
        if setup.home_club.server_id != setup.away_club.server_id:
            raise ValidationError("Friendlies are only possible within one server")
        result = run_match_simulation(setup, is_league=False, seed=seed)
        now = self._clock.now()
        not_after = now - self._cooldown
        with transaction(conn):
            for club in (setup.home_club, setup.away_club):
                if not self._club_repo.claim_friendly_slot(conn, club.id, now, not_after):
                    raise StateConflictError(f"{club.name} already played a friendly in the last {self._cooldown_label()}")
            match = Match(
                id=str(uuid.uuid4()),
                match_type=MatchType.FRIENDLY,
                home_club_id=setup.home_club.id,
                away_club_id=setup.away_club.id,
                home_club_name=setup.home_club.name,
                away_club_name=setup.away_club.name,
                home_score=result.home_score,
                away_score=result.away_score,
                played_at=now,
                events=tuple(result.events),
                commentary=tuple(result.commentary),
                stamina_impact=tuple(result.stamina_impact),
                seed=result.seed,
            )
            self._match_repo.create(conn, match)
            apply_condition_changes(conn, setup, result, count_cards=False)
        logger.info(
            "Friendly: %s %d-%d %s", match.home_club_name, match.home_score, match.away_score, match.away_club_name
        )
        return match

    def list_friendlies(self, conn: sqlite3.Connection, club_id: str) -> list[Match]:
        return self._match_repo.list_by_club(conn, club_id, MatchType.FRIENDLY)
