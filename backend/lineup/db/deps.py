"""FastAPI database dependency."""
from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session


def get_db() -> Iterator[Session]:
    """Yield a session per request and always close it."""
    from lineup.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
