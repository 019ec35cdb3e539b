"""Drag-and-drop ordering within a day and across days."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from lineup.core.dates import add_days_to_day_key, build_day_key_range
from lineup.timeline.banner import Banner
from lineup.timeline.board import TaskBoard, TimelineTask, reindex
from lineup.timeline.errors import SessionExpiredError, TimelineError
from lineup.timeline.gateway import OrderChange, TaskGateway
from lineup.timeline.session import SessionMode, UserSession, require_mutable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragState:
    task_id: str
    from_day_key: str


@dataclass(frozen=True)
class ReorderResult:
    days: Dict[str, List[TimelineTask]]

    @property
    def updates(self) -> List[OrderChange]:
        return [
            OrderChange(task_id=task.id, scheduled_date=task.scheduled_date, order=task.order or 0)
            for tasks in self.days.values()
            for task in tasks
        ]


def drop_index_for_cursor(card_bounds: Sequence[Tuple[float, float]], cursor_x: float) -> int:
    """Insertion index for a drop at ``cursor_x`` over cards given as ``(left, width)``.

    Left of a card's midpoint inserts before it; past the last midpoint appends.
    """
    for index, (left, width) in enumerate(card_bounds):
        if cursor_x < left + width / 2:
            return index
    return len(card_bounds)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def compute_move(board: TaskBoard, drag: DragState, to_day_key: str, to_index: int) -> Optional[ReorderResult]:
    """New contents of the affected day(s), densely reindexed; ``None`` if the task is gone."""
    from_sorted = board.tasks_for(drag.from_day_key)
    from_index = next((i for i, task in enumerate(from_sorted) if task.id == drag.task_id), None)
    if from_index is None:
        return None
    moved = from_sorted[from_index]
    without = from_sorted[:from_index] + from_sorted[from_index + 1 :]
    raw_index = _clamp(int(to_index or 0), 0, len(board.tasks_for(to_day_key)) + 1)

    if drag.from_day_key == to_day_key:
        insert_at = raw_index
        if insert_at > from_index:
            # Removing the dragged card shifts later slots left by one.
            insert_at = max(0, insert_at - 1)
        insert_at = _clamp(insert_at, 0, len(without))
        reordered = without[:insert_at] + [moved] + without[insert_at:]
        return ReorderResult(days={to_day_key: reindex(to_day_key, reordered)})

    to_sorted = board.tasks_for(to_day_key)
    insert_at = _clamp(raw_index, 0, len(to_sorted))
    destination = to_sorted[:insert_at] + [moved] + to_sorted[insert_at:]
    return ReorderResult(
        days={
            drag.from_day_key: reindex(drag.from_day_key, without),
            to_day_key: reindex(to_day_key, destination),
        }
    )


class ReorderEngine:
    """Applies drops to the board at once, then persists them for signed-in users."""

    def __init__(self, board: TaskBoard, gateway: TaskGateway, banner: Banner) -> None:
        self._board = board
        self._gateway = gateway
        self._banner = banner
        self._drag: Optional[DragState] = None
        self.busy = False

    @property
    def drag(self) -> Optional[DragState]:
        return self._drag

    def start_drag(self, mode: SessionMode, task_id: str, from_day_key: str) -> None:
        require_mutable(mode)
        self._drag = DragState(task_id=task_id, from_day_key=from_day_key)

    def cancel_drag(self) -> None:
        self._drag = None

    async def drop(self, mode: SessionMode, to_day_key: str, to_index: int) -> Optional[ReorderResult]:
        drag = self._drag
        if drag is None:
            return None
        if self.busy:
            self._drag = None
            return None
        session = require_mutable(mode)

        result = compute_move(self._board, drag, to_day_key, to_index)
        self._drag = None
        if result is None:
            return None
        for day_key, tasks in result.days.items():
            self._board.replace_day(day_key, tasks)

        if isinstance(session, UserSession):
            self.busy = True
            try:
                await self._gateway.bulk_reorder(result.updates)
            except SessionExpiredError:
                raise
            except TimelineError as exc:
                self._banner.show(f"Failed to reorder: {exc.message}")
                await self._reconcile(result)
            finally:
                self.busy = False
        return result

    async def _reconcile(self, result: ReorderResult) -> None:
        """Reload the affected days from the server after a failed save."""
        day_keys = sorted(result.days)
        start, end = day_keys[0], add_days_to_day_key(day_keys[-1], 1)
        try:
            tasks = await self._gateway.list_tasks(start, end)
        except TimelineError as exc:
            logger.info("Could not reload %s..%s after reorder failure: %s", start, end, exc)
            return
        self._board.replace_days(build_day_key_range(start, end), tasks)
