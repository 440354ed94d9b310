"""Errors raised by the tracking services. Routers map them to HTTP responses."""

from __future__ import annotations


class GoalNotFoundError(LookupError):
    """Goal does not exist or is not owned by the requesting user."""


class SessionNotFoundError(LookupError):
    """Session does not exist or is not owned by the requesting user."""


class InvalidSessionError(ValueError):
    """Session input rejected before anything is persisted."""


class ConcurrencyConflictError(RuntimeError):
    """Write collision persisted after all retries. The client should resubmit."""

    def __init__(self, goal_id: int, attempts: int) -> None:
        super().__init__(f"Concurrent update on goal {goal_id} after {attempts} attempts")
        self.goal_id = goal_id
        self.attempts = attempts


class InvalidGoalError(ValueError):
    """Goal fields out of range (target minutes, category)."""
