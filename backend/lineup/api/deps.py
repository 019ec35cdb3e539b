"""Session resolution dependencies for API routes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, Request, Response, status

from lineup.core.config import settings
from lineup.core.context import set_actor
from lineup.core.security import verify_admin_token, verify_auth_token


@dataclass(frozen=True)
class CurrentUser:
    """Signed-in user resolved from the session cookie or bearer token."""

    user_id: UUID
    email: Optional[str]


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    if not header.lower().startswith("bearer "):
        return None
    token = header.split(" ", maxsplit=1)[1].strip()
    return token or None


def resolve_session(request: Request) -> Optional[CurrentUser]:
    """Return the user identity for this request, or ``None`` for guests."""
    token = request.cookies.get(settings.auth_cookie_name) or _bearer_token(request)
    if not token:
        return None
    identity = verify_auth_token(token)
    if identity is None:
        return None
    try:
        user_id = UUID(identity.user_id)
    except ValueError:
        return None
    return CurrentUser(user_id=user_id, email=identity.email)


def resolve_admin_session(request: Request) -> bool:
    token = request.cookies.get(settings.admin_cookie_name)
    return bool(token) and verify_admin_token(token)


async def require_user(request: Request) -> CurrentUser:
    user = resolve_session(request)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    set_actor(str(user.user_id))
    return user


async def require_admin(request: Request) -> None:
    if not resolve_admin_session(request):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    set_actor("admin")


def _set_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def set_auth_cookie(response: Response, token: str) -> None:
    _set_cookie(response, settings.auth_cookie_name, token, settings.auth_token_ttl_days * 24 * 60 * 60)


def clear_auth_cookie(response: Response) -> None:
    _set_cookie(response, settings.auth_cookie_name, "", 0)


def set_admin_cookie(response: Response, token: str) -> None:
    _set_cookie(response, settings.admin_cookie_name, token, settings.admin_token_ttl_days * 24 * 60 * 60)


def clear_admin_cookie(response: Response) -> None:
    _set_cookie(response, settings.admin_cookie_name, "", 0)
