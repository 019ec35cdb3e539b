"""Session modes of the timeline.

The mode is a closed set of variants. Every operation that behaves differently
per mode dispatches on it in one place, and mutation entry points accept only
:data:`MutableMode`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from lineup.timeline.errors import ReadOnlyError


@dataclass(frozen=True)
class SessionUser:
    user_id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_data_url: Optional[str] = None
    role: str = "user"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SessionUser":
        return cls(
            user_id=str(payload["user_id"]),
            email=str(payload.get("email") or ""),
            name=payload.get("name"),
            avatar_url=payload.get("avatar_url"),
            avatar_data_url=payload.get("avatar_data_url"),
            role=payload.get("role") or "user",
        )


@dataclass(frozen=True)
class Loading:
    """Session check in flight."""


@dataclass(frozen=True)
class Guest:
    """Anonymous visitor; tasks live only in memory."""


@dataclass(frozen=True)
class UserSession:
    user: SessionUser


@dataclass(frozen=True)
class AdminView:
    """Operator browsing another user's timeline, read-only."""

    target_user_id: str


SessionMode = Union[Loading, Guest, UserSession, AdminView]
MutableMode = Union[Guest, UserSession]


def mode_name(mode: SessionMode) -> str:
    if isinstance(mode, UserSession):
        return "user"
    if isinstance(mode, AdminView):
        return "admin"
    if isinstance(mode, Guest):
        return "guest"
    return "loading"


def require_mutable(mode: SessionMode) -> MutableMode:
    """Narrow ``mode`` to one that may create, edit, delete or reorder tasks."""
    if isinstance(mode, (Guest, UserSession)):
        return mode
    if isinstance(mode, AdminView):
        raise ReadOnlyError()
    raise ReadOnlyError("Still checking your session")
