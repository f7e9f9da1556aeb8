"""
Service layer: league state machine, scheduling, standings, transfers, friendlies.
simulation_service is the only bridge to the pure match engine.
"""
from .scheduling import generate_fixtures, verify_schedule
from .league_service import LeagueService, TerminationResult
from .squad_service import SquadService, select_balanced_squad
from .transfer_service import TransferService, max_swap_top_up
from .friendly_service import FriendlyService

__all__ = [
    "generate_fixtures",
    "verify_schedule",
    "LeagueService",
    "TerminationResult",
    "SquadService",
    "select_balanced_squad",
    "TransferService",
    "max_swap_top_up",
    "FriendlyService",
]
