"""Account routes: signup, login, logout and session lookup."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from lineup.api.deps import clear_auth_cookie, resolve_session, set_auth_cookie
from lineup.api.schemas.user import AuthResponse, CredentialsRequest, MeResponse, UserOut
from lineup.api.schemas.task import OkResponse
from lineup.core.security import sign_auth_token
from lineup.db.deps import get_db
from lineup.db.models.user import User
from lineup.observability.metrics import log_metric
from lineup.services import user_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/auth/signup", response_model=AuthResponse, tags=["auth"])
def signup(payload: CredentialsRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    email = user_service.normalize_email(payload.email)
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email")
    try:
        user = user_service.create_user(db, email, payload.password or "")
    except user_service.UserInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except user_service.EmailAlreadyRegistered as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc

    token = sign_auth_token(user_id=str(user.id), email=user.email)
    set_auth_cookie(response, token)
    log_metric("auth.signup", 1)
    return AuthResponse(user=serialize_user(user), token=token)


@router.post("/auth/login", response_model=AuthResponse, tags=["auth"])
def login(payload: CredentialsRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    email = user_service.normalize_email(payload.email)
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email")
    if not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")

    user = user_service.authenticate(db, email, payload.password)
    if user is None:
        logger.info("Rejected login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = sign_auth_token(user_id=str(user.id), email=user.email)
    set_auth_cookie(response, token)
    return AuthResponse(user=serialize_user(user), token=token)


@router.post("/auth/logout", response_model=OkResponse, tags=["auth"])
def logout(response: Response) -> OkResponse:
    clear_auth_cookie(response)
    return OkResponse()


@router.get("/auth/me", response_model=MeResponse, tags=["auth"])
def me(request: Request, db: Session = Depends(get_db)):
    """Current user, or ``{"user": null}`` with 401 for guests and stale sessions."""
    session = resolve_session(request)
    user = user_service.get_user(db, session.user_id) if session else None
    if user is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"user": None})
    return MeResponse(user=serialize_user(user))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_user(user: User) -> UserOut:
    return UserOut(
        user_id=str(user.id),
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        avatar_data_url=user.avatar_data_url,
        role=user.role or "user",
        created_at=_as_utc(user.created_at),
        updated_at=_as_utc(user.updated_at),
    )
