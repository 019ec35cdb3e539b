"""Helpers for working with users and their profiles."""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lineup.core.security import hash_password, verify_password
from lineup.db.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 200
MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 60
MAX_AVATAR_URL_LENGTH = 500
MAX_AVATAR_DATA_URL_LENGTH = 400_000


class UserInputError(ValueError):
    """Raised for malformed signup/profile input."""


class EmailAlreadyRegistered(Exception):
    """Raised when signing up with an email that already exists."""


def normalize_email(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    if "@" not in email or len(email) > MAX_EMAIL_LENGTH:
        return None
    return email


def create_user(db: Session, email: str, password: str) -> User:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise UserInputError("Password must be 6+ characters")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise UserInputError("Password too long")

    user = User(email=email, password_hash=hash_password(password), role="user")
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise EmailAlreadyRegistered(email) from exc
    db.refresh(user)
    logger.info("Created user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email).one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def get_user(db: Session, user_id: UUID) -> Optional[User]:
    return db.get(User, user_id)


def list_users(db: Session, limit: int = 500) -> List[User]:
    return db.query(User).order_by(desc(User.created_at)).limit(limit).all()


def _clip(value: object, max_len: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    return text[:max_len]


def update_profile(
    db: Session,
    user: User,
    *,
    name: object,
    avatar_url: object,
    avatar_data_url: object,
) -> User:
    """Replace the editable profile fields; blank values clear them."""
    clean_name = _clip(name, MAX_NAME_LENGTH)
    clean_avatar_url = _clip(avatar_url, MAX_AVATAR_URL_LENGTH)
    clean_data_url = avatar_data_url.strip() if isinstance(avatar_data_url, str) and avatar_data_url.strip() else None

    if clean_avatar_url and not clean_avatar_url.lower().startswith(("http://", "https://")):
        raise UserInputError("avatar_url must start with http(s)://")
    if clean_data_url:
        if not clean_data_url.startswith("data:image/"):
            raise UserInputError("avatar_data_url must be a data:image/* url")
        if len(clean_data_url) > MAX_AVATAR_DATA_URL_LENGTH:
            raise UserInputError("Avatar image too large")

    user.name = clean_name
    user.avatar_url = clean_avatar_url
    user.avatar_data_url = clean_data_url
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user
