"""Range loading for the timeline board."""
from __future__ import annotations

import logging
from typing import Iterable, Set

from lineup.services.task_fields import looks_like_placeholder
from lineup.timeline.banner import Banner
from lineup.timeline.board import TaskBoard, TimelineTask
from lineup.timeline.errors import SessionExpiredError, TimelineError
from lineup.timeline.gateway import TaskGateway
from lineup.timeline.runner import BackgroundRunner
from lineup.timeline.session import AdminView, Guest, Loading, SessionMode, UserSession

logger = logging.getLogger(__name__)


class SegmentLoader:
    """Fetches ``[start, end)`` day ranges into a :class:`TaskBoard` at most once each.

    Only one fetch runs at a time. Calls arriving while a fetch is in flight
    are dropped; the next viewport event asks again.
    """

    def __init__(
        self,
        board: TaskBoard,
        gateway: TaskGateway,
        banner: Banner,
        runner: BackgroundRunner,
    ) -> None:
        self._board = board
        self._gateway = gateway
        self._banner = banner
        self._runner = runner
        self._in_flight = False
        self._repair_attempted: Set[str] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def load(self, start_day_key: str, end_day_key_exclusive: str, mode: SessionMode) -> None:
        if self._board.is_segment_loaded(start_day_key, end_day_key_exclusive):
            return
        if self._in_flight:
            logger.debug("Dropping load %s..%s: fetch in flight", start_day_key, end_day_key_exclusive)
            return
        if isinstance(mode, Loading):
            return
        if isinstance(mode, Guest):
            self._board.mark_segment_loaded(start_day_key, end_day_key_exclusive)
            return

        self._in_flight = True
        self._banner.clear()
        try:
            if isinstance(mode, AdminView):
                tasks = await self._gateway.list_user_tasks(mode.target_user_id, start_day_key, end_day_key_exclusive)
            else:
                tasks = await self._gateway.list_tasks(start_day_key, end_day_key_exclusive)
        except SessionExpiredError:
            raise
        except TimelineError as exc:
            if not self._runner.closed:
                self._banner.show(exc.message)
            return
        finally:
            self._in_flight = False

        if self._runner.closed:
            return
        self._board.mark_segment_loaded(start_day_key, end_day_key_exclusive)
        self._board.merge(tasks)
        if isinstance(mode, UserSession):
            self._schedule_repairs(tasks)

    def _schedule_repairs(self, tasks: Iterable[TimelineTask]) -> None:
        for task in tasks:
            if not looks_like_placeholder(task) or task.id in self._repair_attempted:
                continue
            self._repair_attempted.add(task.id)
            self._runner.spawn(self._repair(task))

    async def _repair(self, task: TimelineTask) -> None:
        """Re-save a placeholder video task so the server re-resolves its metadata."""
        try:
            updated = await self._gateway.update_task(task.id, task.video_url, task.notes, task.time_to_complete)
        except TimelineError as exc:
            logger.debug("Metadata repair for %s failed: %s", task.id, exc)
            self._repair_attempted.discard(task.id)
            return
        if not self._runner.closed:
            self._board.merge([updated])
