"""Read-only admin panel routes."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from lineup.api.deps import clear_admin_cookie, require_admin, set_admin_cookie
from lineup.api.routes.auth import serialize_user
from lineup.api.routes.task import parse_range, serialize_task
from lineup.api.schemas.task import OkResponse, TaskCountResponse, TaskListResponse
from lineup.api.schemas.user import AdminLoginRequest, UserListResponse, UserResponse
from lineup.core.config import settings
from lineup.core.security import passwords_match, sign_admin_token
from lineup.db.deps import get_db
from lineup.observability.tracing import trace
from lineup.services import task_store, user_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/admin/login", response_model=OkResponse, tags=["admin"])
def admin_login(payload: AdminLoginRequest, response: Response) -> OkResponse:
    expected = settings.admin_panel_password
    if not expected:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Admin password not configured")
    if not isinstance(payload.password, str):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")
    if not passwords_match(payload.password, expected):
        logger.warning("Rejected admin login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")

    set_admin_cookie(response, sign_admin_token())
    return OkResponse()


@router.post("/admin/logout", response_model=OkResponse, tags=["admin"])
def admin_logout(response: Response) -> OkResponse:
    clear_admin_cookie(response)
    return OkResponse()


@router.get("/admin/users", response_model=UserListResponse, tags=["admin"], dependencies=[Depends(require_admin)])
def list_users(db: Session = Depends(get_db)) -> UserListResponse:
    return UserListResponse(users=[serialize_user(user) for user in user_service.list_users(db)])


@router.get("/admin/users/{user_id}", response_model=UserResponse, tags=["admin"], dependencies=[Depends(require_admin)])
def get_user(user_id: str, db: Session = Depends(get_db)) -> UserResponse:
    user = user_service.get_user(db, _parse_user_id(user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return UserResponse(user=serialize_user(user))


@router.get(
    "/admin/users/{user_id}/tasks",
    response_model=TaskListResponse,
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)
def list_user_tasks(
    user_id: str,
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    """Tasks of any user in ``[start, end)``, for the read-only admin timeline."""
    owner_id = _parse_user_id(user_id)
    start_day, end_day = parse_range(start, end)
    with trace("admin.task.list", metadata={"owner_id": user_id, "start": start, "end": end}):
        tasks = task_store.list_tasks(db, owner_id, start_day, end_day)
    return TaskListResponse(tasks=[serialize_task(task) for task in tasks])


@router.get(
    "/admin/users/{user_id}/tasks/count",
    response_model=TaskCountResponse,
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)
def count_user_tasks(user_id: str, db: Session = Depends(get_db)) -> TaskCountResponse:
    return TaskCountResponse(count=task_store.count_tasks(db, _parse_user_id(user_id)))


def _parse_user_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid id") from exc
