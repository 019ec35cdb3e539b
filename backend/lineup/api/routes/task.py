"""Task API routes for the signed-in user's timeline."""
from __future__ import annotations

from datetime import date, datetime, timezone
from time import perf_counter
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from lineup.api.deps import CurrentUser, require_user
from lineup.api.schemas.task import (
    OkResponse,
    ReorderRequest,
    ReorderResponse,
    TaskCountResponse,
    TaskCreateRequest,
    TaskListResponse,
    TaskOut,
    TaskResponse,
    TaskUpdateRequest,
)
from lineup.core.dates import (
    day_key_from_local_date,
    is_valid_scheduled_iso,
    local_date_from_day_key,
    scheduled_iso_from_day_key,
)
from lineup.db.deps import get_db
from lineup.db.models.task import Task
from lineup.observability.metrics import log_metric
from lineup.observability.tracing import trace
from lineup.services import task_store
from lineup.services.task_fields import (
    TaskFieldError,
    derive_task_fields,
    resolve_video_metadata,
    validate_task_input,
)

router = APIRouter()

MAX_REORDER_UPDATES = 300
SCHEDULED_ISO_HINT = "must be ISO like YYYY-MM-DDT00:00:00.000Z"


@router.get("/tasks", response_model=TaskListResponse, tags=["tasks"])
def list_tasks(
    http_request: Request,
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    """List the caller's tasks scheduled in ``[start, end)``."""
    start_day, end_day = parse_range(start, end)
    request_id = getattr(http_request.state, "request_id", None)

    with trace(
        "task.list",
        metadata={"route": "/tasks", "start": start, "end": end, "request_id": request_id},
        user_id=str(user.user_id),
        request_id=request_id,
    ):
        tasks = task_store.list_tasks(db, user.user_id, start_day, end_day)

    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user.user_id)})
    return TaskListResponse(tasks=[serialize_task(task) for task in tasks])


@router.get("/tasks/count", response_model=TaskCountResponse, tags=["tasks"])
def count_tasks(
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> TaskCountResponse:
    return TaskCountResponse(count=task_store.count_tasks(db, user.user_id))


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    http_request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> TaskResponse:
    """Create a note or video task; video metadata is resolved best-effort."""
    if not is_valid_scheduled_iso(payload.scheduled_date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"`scheduled_date` {SCHEDULED_ISO_HINT}")
    try:
        task_input = validate_task_input(payload.video_url, payload.notes, payload.time_to_complete, require_time=True)
    except TaskFieldError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    request_id = getattr(http_request.state, "request_id", None)
    start_time = perf_counter()
    with trace(
        "task.create",
        metadata={"route": "/tasks", "type": task_input.task_type, "request_id": request_id},
        user_id=str(user.user_id),
        request_id=request_id,
    ):
        metadata = resolve_video_metadata(task_input.video_url) if task_input.video_url else None
        derived = derive_task_fields(task_input.video_url, task_input.notes, metadata)
        task = task_store.create_task(
            db,
            user.user_id,
            scheduled_day=local_date_from_day_key(payload.scheduled_date[:10]),
            video_url=task_input.video_url,
            notes=task_input.notes,
            time_to_complete=task_input.time_to_complete,
            derived=derived,
        )

    log_metric("task.create.success", 1, metadata={"user_id": str(user.user_id), "type": derived.type})
    log_metric("task.create.latency_ms", (perf_counter() - start_time) * 1000, metadata={"type": derived.type})
    return TaskResponse(task=serialize_task(task))


@router.post("/tasks/reorder", response_model=ReorderResponse, tags=["tasks"])
def reorder_tasks(
    payload: ReorderRequest,
    http_request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> ReorderResponse:
    """Persist a drag-and-drop result: new day and order for each task."""
    if not payload.updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates")
    if len(payload.updates) > MAX_REORDER_UPDATES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Too many updates")

    updates: List[task_store.OrderUpdate] = []
    for item in payload.updates:
        task_id = _parse_task_id(item.id, detail="Invalid id in updates")
        if not is_valid_scheduled_iso(item.scheduled_date):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid scheduled_date")
        if item.order < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order")
        updates.append(
            task_store.OrderUpdate(
                task_id=task_id,
                scheduled_day=local_date_from_day_key(item.scheduled_date[:10]),
                order=item.order,
            )
        )

    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.reorder",
        metadata={"route": "/tasks/reorder", "updates": len(updates), "request_id": request_id},
        user_id=str(user.user_id),
        request_id=request_id,
    ):
        modified = task_store.bulk_set_order(db, user.user_id, updates)

    log_metric("task.reorder.modified", modified, metadata={"user_id": str(user.user_id)})
    return ReorderResponse(modified_count=modified)


@router.patch("/tasks/{task_id}", response_model=TaskResponse, tags=["tasks"])
def update_task(
    task_id: str,
    payload: TaskUpdateRequest,
    http_request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> TaskResponse:
    """Edit a task; derived fields are recomputed from the submitted link or note."""
    parsed_id = _parse_task_id(task_id)
    if payload.scheduled_date is not None and not is_valid_scheduled_iso(payload.scheduled_date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"`scheduled_date` {SCHEDULED_ISO_HINT}")
    if payload.order is not None and payload.order < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order")
    try:
        task_input = validate_task_input(payload.video_url, payload.notes, payload.time_to_complete, require_time=False)
    except TaskFieldError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/tasks/{task_id}",
        "task_id": task_id,
        "type": task_input.task_type,
        "request_id": request_id,
    }
    with trace("task.update", metadata=metadata, user_id=str(user.user_id), request_id=request_id):
        if task_store.get_task(db, user.user_id, parsed_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
        video_meta = resolve_video_metadata(task_input.video_url) if task_input.video_url else None
        derived = derive_task_fields(task_input.video_url, task_input.notes, video_meta)
        task = task_store.update_task(
            db,
            user.user_id,
            parsed_id,
            video_url=task_input.video_url,
            notes=task_input.notes,
            derived=derived,
            time_to_complete=task_input.time_to_complete,
            scheduled_day=local_date_from_day_key(payload.scheduled_date[:10]) if payload.scheduled_date else None,
            order=payload.order,
        )
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    log_metric("task.update.success", 1, metadata={"user_id": str(user.user_id), "task_id": task_id})
    return TaskResponse(task=serialize_task(task))


@router.delete("/tasks/{task_id}", response_model=OkResponse, tags=["tasks"])
def delete_task(
    task_id: str,
    http_request: Request,
    user: CurrentUser = Depends(require_user),
    db: Session = Depends(get_db),
) -> OkResponse:
    parsed_id = _parse_task_id(task_id)
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.delete",
        metadata={"route": f"/tasks/{task_id}", "task_id": task_id, "request_id": request_id},
        user_id=str(user.user_id),
        request_id=request_id,
    ):
        deleted = task_store.delete_task(db, user.user_id, parsed_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    log_metric("task.delete.success", 1, metadata={"user_id": str(user.user_id), "task_id": task_id})
    return OkResponse()


def parse_range(start: Optional[str], end: Optional[str]) -> tuple[date, date]:
    """Validate a ``[start, end)`` query range of canonical UTC-midnight timestamps."""
    if start is None or end is None or not (is_valid_scheduled_iso(start) and is_valid_scheduled_iso(end)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"`start` and `end` {SCHEDULED_ISO_HINT}",
        )
    if start >= end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="`start` must be < `end`")
    return local_date_from_day_key(start[:10]), local_date_from_day_key(end[:10])


def _parse_task_id(value: str, *, detail: str = "Invalid id") -> UUID:
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_task(task: Task) -> TaskOut:
    day_key = day_key_from_local_date(task.scheduled_day)
    return TaskOut(
        id=str(task.id),
        owner_id=str(task.user_id),
        type=task.type,
        title=task.title,
        video_url=task.video_url,
        notes=task.notes,
        thumbnail_url=task.thumbnail_url,
        video_duration=task.video_duration,
        scheduled_date=scheduled_iso_from_day_key(day_key),
        day_key=day_key,
        time_to_complete=task.time_to_complete,
        order=task.order,
        created_at=_as_utc(task.created_at),
        updated_at=_as_utc(task.updated_at),
    )
