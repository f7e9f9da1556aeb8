"""
Typed failures raised by the service layer.
Every error carries a human-readable message and is scoped to one league or club.
"""
from __future__ import annotations


class LeagueError(Exception):
    """Base class for all domain failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LeagueError):
    """Bad input: capacity, password, budget, squad cap. Never retried."""


class NotFoundError(ValidationError):
    """Referenced league, club, fixture, player or offer does not exist."""


class StateConflictError(LeagueError):
    """Record not in the expected state (fixture status, offer resolved, club joined)."""


class ComputationError(LeagueError):
    """Simulation failed while generating events."""


class ConsistencyError(LeagueError):
    """Internal invariant broken (e.g. the scheduler produced a self-match). Fatal."""
