"""Per-day task map and loaded-segment bookkeeping."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from lineup.core.dates import day_key_from_scheduled_iso, scheduled_iso_from_day_key

ORDER_STEP = 1000


@dataclass(frozen=True)
class TimelineTask:
    id: str
    type: str
    title: Optional[str]
    scheduled_date: str
    day_key: str
    video_url: Optional[str] = None
    notes: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_duration: Optional[str] = None
    time_to_complete: Optional[int] = None
    order: Optional[int] = None
    owner_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TimelineTask":
        scheduled_date = str(payload["scheduled_date"])
        return cls(
            id=str(payload["id"]),
            type=payload.get("type") or ("video" if payload.get("video_url") else "note"),
            title=payload.get("title"),
            scheduled_date=scheduled_date,
            day_key=payload.get("day_key") or day_key_from_scheduled_iso(scheduled_date),
            video_url=payload.get("video_url"),
            notes=payload.get("notes"),
            thumbnail_url=payload.get("thumbnail_url"),
            video_duration=payload.get("video_duration"),
            time_to_complete=payload.get("time_to_complete"),
            order=payload.get("order"),
            owner_id=payload.get("owner_id"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )

    def moved_to(self, day_key: str, order: int) -> "TimelineTask":
        return replace(self, day_key=day_key, scheduled_date=scheduled_iso_from_day_key(day_key), order=order)


def _order_key(task: TimelineTask) -> float:
    return task.order if task.order is not None else math.inf


def sort_tasks(tasks: Iterable[TimelineTask]) -> List[TimelineTask]:
    """Render order: ``order`` ascending (missing last), then ``created_at`` descending."""
    newest_first = sorted(tasks, key=lambda task: task.created_at or "", reverse=True)
    return sorted(newest_first, key=_order_key)


def reindex(day_key: str, tasks: Iterable[TimelineTask]) -> List[TimelineTask]:
    """Pin ``tasks`` to ``day_key`` with dense orders 1000, 2000, ... in the given sequence."""
    return [task.moved_to(day_key, (position + 1) * ORDER_STEP) for position, task in enumerate(tasks)]


class TaskBoard:
    """Sole owner of the day -> tasks map and the set of loaded ranges.

    A fresh board is built on every session change rather than cleared in place.
    """

    def __init__(self) -> None:
        self._by_day: Dict[str, List[TimelineTask]] = {}
        self._day_of: Dict[str, str] = {}
        self._loaded_segments: Set[Tuple[str, str]] = set()

    def __len__(self) -> int:
        return len(self._day_of)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._day_of

    def tasks_for(self, day_key: str) -> List[TimelineTask]:
        return sort_tasks(self._by_day.get(day_key, ()))

    def day_keys(self) -> List[str]:
        return sorted(day for day, tasks in self._by_day.items() if tasks)

    def find(self, task_id: str) -> Optional[TimelineTask]:
        day_key = self._day_of.get(task_id)
        if day_key is None:
            return None
        return next((task for task in self._by_day[day_key] if task.id == task_id), None)

    def merge(self, tasks: Iterable[TimelineTask]) -> None:
        """Insert or replace tasks by id; a task whose day changed is moved."""
        for task in tasks:
            previous_day = self._day_of.get(task.id)
            if previous_day is not None and previous_day != task.day_key:
                self._drop_from_day(previous_day, task.id)
            day_list = self._by_day.setdefault(task.day_key, [])
            for index, existing in enumerate(day_list):
                if existing.id == task.id:
                    day_list[index] = task
                    break
            else:
                day_list.append(task)
            self._day_of[task.id] = task.day_key

    def replace_day(self, day_key: str, tasks: Iterable[TimelineTask]) -> None:
        for task_id in [task.id for task in self._by_day.get(day_key, ())]:
            self._day_of.pop(task_id, None)
        self._by_day[day_key] = []
        self.merge(tasks)

    def replace_days(self, day_keys: Iterable[str], tasks: Iterable[TimelineTask]) -> None:
        """Make ``tasks`` the full content of ``day_keys``; tasks on other days are merged."""
        for day_key in day_keys:
            self.replace_day(day_key, ())
        self.merge(tasks)

    def remove(self, task_id: str) -> Optional[TimelineTask]:
        task = self.find(task_id)
        if task is not None:
            self._drop_from_day(task.day_key, task_id)
            del self._day_of[task_id]
        return task

    def _drop_from_day(self, day_key: str, task_id: str) -> None:
        self._by_day[day_key] = [task for task in self._by_day.get(day_key, ()) if task.id != task_id]

    @staticmethod
    def segment_key(start_day_key: str, end_day_key_exclusive: str) -> Tuple[str, str]:
        return (start_day_key, end_day_key_exclusive)

    def is_segment_loaded(self, start_day_key: str, end_day_key_exclusive: str) -> bool:
        return self.segment_key(start_day_key, end_day_key_exclusive) in self._loaded_segments

    def mark_segment_loaded(self, start_day_key: str, end_day_key_exclusive: str) -> None:
        self._loaded_segments.add(self.segment_key(start_day_key, end_day_key_exclusive))

    @property
    def loaded_segments(self) -> Set[Tuple[str, str]]:
        return set(self._loaded_segments)
