"""Create, edit and delete tasks for the active session."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from lineup.core.dates import is_valid_day_key, scheduled_iso_from_day_key
from lineup.services.task_fields import TaskFieldError, TaskInput, derive_task_fields, validate_task_input
from lineup.services.youtube import VideoMetadata
from lineup.timeline.board import ORDER_STEP, TaskBoard, TimelineTask
from lineup.timeline.errors import TaskNotFoundError, TaskValidationError, TimelineError
from lineup.timeline.gateway import TaskGateway
from lineup.timeline.session import SessionMode, UserSession, require_mutable

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TaskDraft:
    """Editor input; ``task_id`` is set when editing an existing task."""

    day_key: str
    video_url: Optional[str] = None
    notes: Optional[str] = None
    time_to_complete: Any = None
    task_id: Optional[str] = None


class TaskMutationEngine:
    def __init__(
        self,
        board: TaskBoard,
        gateway: TaskGateway,
        *,
        on_deleted: Optional[Callable[[str], None]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self._board = board
        self._gateway = gateway
        self._on_deleted = on_deleted
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._clock = clock or utc_now_iso

    @staticmethod
    def validate(draft: TaskDraft) -> TaskInput:
        if not is_valid_day_key(draft.day_key):
            raise TaskValidationError("Invalid day")
        try:
            return validate_task_input(
                draft.video_url,
                draft.notes,
                draft.time_to_complete,
                require_time=draft.task_id is None,
            )
        except TaskFieldError as exc:
            raise TaskValidationError(str(exc)) from exc

    async def save(self, mode: SessionMode, draft: TaskDraft) -> TimelineTask:
        """Create or edit a task and merge the result into the board."""
        session = require_mutable(mode)
        task_input = self.validate(draft)

        if isinstance(session, UserSession):
            task = await self._save_persisted(draft, task_input)
        else:
            task = await self._save_guest(draft, task_input)
        self._board.merge([task])
        return task

    async def _save_persisted(self, draft: TaskDraft, task_input: TaskInput) -> TimelineTask:
        if draft.task_id is None:
            return await self._gateway.create_task(
                draft.day_key,
                task_input.video_url,
                task_input.notes,
                task_input.time_to_complete or 0,
            )
        try:
            return await self._gateway.update_task(
                draft.task_id,
                task_input.video_url,
                task_input.notes,
                task_input.time_to_complete,
            )
        except TaskNotFoundError:
            self._forget(draft.task_id)
            raise

    async def _resolve_metadata(self, video_url: str) -> Optional[VideoMetadata]:
        try:
            return await self._gateway.fetch_video_metadata(video_url)
        except TimelineError as exc:
            logger.info("Metadata lookup failed, using placeholder: %s", exc)
            return None

    async def _save_guest(self, draft: TaskDraft, task_input: TaskInput) -> TimelineTask:
        existing = self._board.find(draft.task_id) if draft.task_id else None
        if draft.task_id and existing is None:
            raise TaskNotFoundError()

        metadata = await self._resolve_metadata(task_input.video_url) if task_input.video_url else None
        derived = derive_task_fields(task_input.video_url, task_input.notes, metadata)
        now = self._clock()

        if existing is not None:
            return replace(
                existing,
                type=derived.type,
                title=derived.title,
                video_url=task_input.video_url,
                notes=task_input.notes,
                thumbnail_url=derived.thumbnail_url,
                video_duration=derived.video_duration,
                time_to_complete=task_input.time_to_complete or existing.time_to_complete,
                updated_at=now,
            )

        return TimelineTask(
            id=self._id_factory(),
            type=derived.type,
            title=derived.title,
            scheduled_date=scheduled_iso_from_day_key(draft.day_key),
            day_key=draft.day_key,
            video_url=task_input.video_url,
            notes=task_input.notes,
            thumbnail_url=derived.thumbnail_url,
            video_duration=derived.video_duration,
            time_to_complete=task_input.time_to_complete,
            order=max((task.order or 0 for task in self._board.tasks_for(draft.day_key)), default=0) + ORDER_STEP,
            created_at=now,
            updated_at=now,
        )

    async def delete(self, mode: SessionMode, task_id: str) -> Optional[TimelineTask]:
        """Delete a task; a task already gone on the server is removed locally too."""
        session = require_mutable(mode)
        if isinstance(session, UserSession):
            try:
                await self._gateway.delete_task(task_id)
            except TaskNotFoundError:
                logger.info("Task %s was already deleted", task_id)
        return self._forget(task_id)

    def _forget(self, task_id: str) -> Optional[TimelineTask]:
        removed = self._board.remove(task_id)
        if self._on_deleted is not None:
            self._on_deleted(task_id)
        return removed
