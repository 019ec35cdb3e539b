"""Owner-scoped persistence for timeline tasks.

Ranges are half-open ``[start, end)`` at day granularity. Listings come back in
the canonical order ``(scheduled_day asc, order asc, created_at desc)``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import asc, desc, func, nulls_last, update
from sqlalchemy.orm import Session

from lineup.db.models.task import Task
from lineup.services.task_fields import PLACEHOLDER_TITLES, DerivedFields

logger = logging.getLogger(__name__)

ORDER_STEP = 1000


@dataclass(frozen=True)
class OrderUpdate:
    task_id: UUID
    scheduled_day: date
    order: int


def list_tasks(db: Session, owner_id: UUID, start_day: date, end_day_exclusive: date) -> List[Task]:
    return (
        db.query(Task)
        .filter(
            Task.user_id == owner_id,
            Task.scheduled_day >= start_day,
            Task.scheduled_day < end_day_exclusive,
        )
        .order_by(asc(Task.scheduled_day), nulls_last(asc(Task.order)), desc(Task.created_at))
        .all()
    )


def count_tasks(db: Session, owner_id: UUID) -> int:
    return db.query(func.count(Task.id)).filter(Task.user_id == owner_id).scalar() or 0


def next_order(db: Session, owner_id: UUID, scheduled_day: date) -> int:
    """Append position for a day: current max order plus one step."""
    max_order = (
        db.query(func.max(Task.order))
        .filter(Task.user_id == owner_id, Task.scheduled_day == scheduled_day)
        .scalar()
    )
    return (max_order or 0) + ORDER_STEP


def get_task(db: Session, owner_id: UUID, task_id: UUID) -> Optional[Task]:
    task = db.get(Task, task_id)
    if task is None or task.user_id != owner_id:
        return None
    return task


def create_task(
    db: Session,
    owner_id: UUID,
    *,
    scheduled_day: date,
    video_url: Optional[str],
    notes: Optional[str],
    time_to_complete: Optional[int],
    derived: DerivedFields,
) -> Task:
    task = Task(
        user_id=owner_id,
        type=derived.type,
        title=derived.title,
        video_url=video_url,
        thumbnail_url=derived.thumbnail_url,
        video_duration=derived.video_duration,
        notes=notes,
        scheduled_day=scheduled_day,
        time_to_complete=time_to_complete,
        order=next_order(db, owner_id, scheduled_day),
    )
    db.add(task)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(task)
    return task


def update_task(
    db: Session,
    owner_id: UUID,
    task_id: UUID,
    *,
    video_url: Optional[str],
    notes: Optional[str],
    derived: DerivedFields,
    time_to_complete: Optional[int] = None,
    scheduled_day: Optional[date] = None,
    order: Optional[int] = None,
) -> Optional[Task]:
    """Re-apply derived fields; ``None`` when the task is missing or not owned."""
    task = get_task(db, owner_id, task_id)
    if task is None:
        return None

    task.type = derived.type
    task.title = derived.title
    task.video_url = video_url
    task.thumbnail_url = derived.thumbnail_url
    task.video_duration = derived.video_duration
    task.notes = notes
    if time_to_complete is not None:
        task.time_to_complete = time_to_complete
    if scheduled_day is not None and scheduled_day != task.scheduled_day:
        task.scheduled_day = scheduled_day
        if order is None:
            # Moving to another day without an explicit slot appends to its end.
            order = next_order(db, owner_id, scheduled_day)
    if order is not None:
        task.order = order

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(task)
    return task


def delete_task(db: Session, owner_id: UUID, task_id: UUID) -> bool:
    task = get_task(db, owner_id, task_id)
    if task is None:
        return False
    db.delete(task)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


def bulk_set_order(db: Session, owner_id: UUID, updates: Iterable[OrderUpdate]) -> int:
    """Apply ``{id, day, order}`` updates in one transaction; returns rows modified."""
    modified = 0
    now = datetime.now(timezone.utc)
    try:
        for item in updates:
            result = db.execute(
                update(Task)
                .where(Task.id == item.task_id, Task.user_id == owner_id)
                .where((Task.scheduled_day != item.scheduled_day) | (Task.order.is_(None)) | (Task.order != item.order))
                .values(scheduled_day=item.scheduled_day, order=item.order, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            modified += result.rowcount or 0
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.debug("Bulk reorder for %s modified %s tasks", owner_id, modified)
    return modified


def find_placeholder_video_tasks(db: Session, limit: int) -> List[Task]:
    """Video tasks whose metadata looks generic or incomplete, oldest first."""
    return (
        db.query(Task)
        .filter(
            Task.type == "video",
            Task.video_url.isnot(None),
            (Task.title.is_(None))
            | (Task.title.in_(sorted(PLACEHOLDER_TITLES)))
            | (Task.thumbnail_url.is_(None))
            | (Task.video_duration.is_(None)),
        )
        .order_by(asc(Task.updated_at))
        .limit(limit)
        .all()
    )
