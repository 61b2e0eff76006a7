"""Error types raised by the sprint tracking services."""

from typing import Optional


class SprintTrackerError(Exception):
    """Base class for errors scoped to a single sprint operation."""


class ValidationError(SprintTrackerError):
    """Input rejected before any state change.

    ``field`` names the offending input (a team, a day token, a ticket field)
    so callers can point the user at it.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(SprintTrackerError):
    """A referenced sprint or ticket does not exist."""


class SprintLockedError(ValidationError):
    """Ticket mutation attempted on a completed sprint."""
