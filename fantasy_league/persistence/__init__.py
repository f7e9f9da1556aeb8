"""
Persistence layer for league data.
No business logic, no simulation; only read/write interfaces.
"""
from .db import get_connection, init_db, set_db_path, transaction
from .repositories import (
    ClubRepository,
    PlayerRepository,
    LeagueRepository,
    FixtureRepository,
    MatchRepository,
    TransferOfferRepository,
    TransferHistoryRepository,
    FriendlyInviteRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "transaction",
    "ClubRepository",
    "PlayerRepository",
    "LeagueRepository",
    "FixtureRepository",
    "MatchRepository",
    "TransferOfferRepository",
    "TransferHistoryRepository",
    "FriendlyInviteRepository",
]
