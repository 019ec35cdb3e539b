"""Password hashing and signed session tokens."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hmac import compare_digest
from typing import Any, Dict, Optional

import bcrypt
import jwt

from lineup.core.config import settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DEV_JWT_SECRET = "lineup-dev-secret-change-me"


class MissingSecretError(RuntimeError):
    """Raised when production runs without a JWT secret configured."""


@dataclass(frozen=True)
class SessionIdentity:
    """Identity carried by a user session token."""

    user_id: str
    email: Optional[str]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def passwords_match(candidate: str, expected: str) -> bool:
    """Constant-time comparison for the shared admin password."""
    return compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def _secret_key() -> str:
    if settings.jwt_secret:
        return settings.jwt_secret
    if settings.is_production:
        raise MissingSecretError("Missing JWT_SECRET. Add it to your environment (e.g. .env).")
    return DEV_JWT_SECRET


def _sign(claims: Dict[str, Any], ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, _secret_key(), algorithm=JWT_ALGORITHM)


def _verify(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, _secret_key(), algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def sign_auth_token(*, user_id: str, email: Optional[str]) -> str:
    return _sign({"user_id": user_id, "email": email}, timedelta(days=settings.auth_token_ttl_days))


def verify_auth_token(token: str) -> Optional[SessionIdentity]:
    payload = _verify(token)
    if not payload or not payload.get("user_id"):
        return None
    email = payload.get("email")
    return SessionIdentity(user_id=str(payload["user_id"]), email=str(email) if email else None)


def sign_admin_token() -> str:
    return _sign({"admin": True}, timedelta(days=settings.admin_token_ttl_days))


def verify_admin_token(token: str) -> bool:
    payload = _verify(token)
    return bool(payload and payload.get("admin") is True)
