"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
actor_ctx_var: ContextVar[str | None] = ContextVar("actor", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_actor() -> str | None:
    """Return the authenticated actor (user id or ``admin``) for the current request."""
    return actor_ctx_var.get()


def set_actor(actor: str) -> None:
    actor_ctx_var.set(actor)
