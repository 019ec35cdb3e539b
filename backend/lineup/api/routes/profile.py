"""Profile routes for the signed-in user."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from lineup.api.deps import CurrentUser, require_user
from lineup.api.routes.auth import serialize_user
from lineup.api.schemas.user import ProfileResponse, ProfileUpdateRequest
from lineup.db.deps import get_db
from lineup.db.models.user import User
from lineup.services import user_service

router = APIRouter()


def _load_user(db: Session, current: CurrentUser) -> User:
    user = user_service.get_user(db, current.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


@router.get("/profile", response_model=ProfileResponse, tags=["profile"])
def get_profile(
    current: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    return ProfileResponse(profile=serialize_user(_load_user(db, current)))


@router.patch("/profile", response_model=ProfileResponse, tags=["profile"])
def update_profile(
    payload: ProfileUpdateRequest,
    current: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Replace name and avatar fields; omitted or blank fields are cleared."""
    user = _load_user(db, current)
    try:
        user = user_service.update_profile(
            db,
            user,
            name=payload.name,
            avatar_url=payload.avatar_url,
            avatar_data_url=payload.avatar_data_url,
        )
    except user_service.UserInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ProfileResponse(profile=serialize_user(user))
