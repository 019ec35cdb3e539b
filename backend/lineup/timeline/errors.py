"""Errors raised by the timeline core.

Each class corresponds to a status class of the HTTP surface; the controller
turns them into state (banner text, inline form errors, a mode change).
"""
from __future__ import annotations


class TimelineError(Exception):
    """Base class for timeline failures."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class TaskValidationError(TimelineError):
    """Input rejected before any network call; shown inline in the form."""

    default_message = "Invalid task"


class ReadOnlyError(TimelineError):
    """Mutation attempted while the timeline cannot be edited."""

    default_message = "This timeline is read-only"


class SessionExpiredError(TimelineError):
    """The server rejected the session (401/403)."""

    default_message = "Your session has expired"


class TaskNotFoundError(TimelineError):
    """The task no longer exists (404)."""

    default_message = "Task not found"


class TransientError(TimelineError):
    """Network failure or 5xx; retried only by later user actions."""

    default_message = "Network error, please try again"


class AuthFailedError(TimelineError):
    """Login or signup was rejected (bad credentials, duplicate email)."""

    default_message = "Could not sign in"
