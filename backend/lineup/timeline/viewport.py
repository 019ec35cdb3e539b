"""Materialized day window with infinite scroll in both directions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple

from lineup.core.dates import add_days_to_day_key, build_day_key_range, make_range_around, today_day_key

logger = logging.getLogger(__name__)

INITIAL_PAST_DAYS = 5
INITIAL_FUTURE_DAYS = 5
PAGE_SIZE_DAYS = 10
JUMP_BUFFER_DAYS = 5

SegmentRequest = Callable[[str, str], Awaitable[None]]


class ScrollSurface(Protocol):
    """The scrollable element rendering one row per day key."""

    scroll_top: float

    @property
    def scroll_height(self) -> float: ...

    @property
    def client_height(self) -> float: ...

    def row_bounds(self, day_key: str) -> Optional[Tuple[float, float]]:
        """``(top, height)`` of the day row, or ``None`` while it is not rendered."""

    def task_bounds(self, task_id: str) -> Optional[Tuple[float, float]]:
        """``(top, height)`` of the task card, or ``None`` while it is not rendered."""

    def scroll_to(self, top: float, *, smooth: bool) -> None: ...


@dataclass(frozen=True)
class _PrependAnchor:
    scroll_top: float
    scroll_height: float


class ViewportController:
    """Owns the contiguous list of day keys; it only ever grows.

    The host calls :meth:`on_layout` after each render so the controller can
    restore the scroll offset after a prepend and perform deferred scrolls.
    """

    def __init__(
        self,
        request_segment: SegmentRequest,
        *,
        today: Optional[str] = None,
        surface: Optional[ScrollSurface] = None,
    ) -> None:
        self.today = today or today_day_key()
        self._request_segment = request_segment
        self._surface = surface
        self._days: List[str] = make_range_around(self.today, INITIAL_PAST_DAYS, INITIAL_FUTURE_DAYS)
        self._prepend_anchor: Optional[_PrependAnchor] = None
        self._pending_target: Optional[str] = None
        self._centered_today = False

    @property
    def days(self) -> List[str]:
        return list(self._days)

    @property
    def first_day_key(self) -> str:
        return self._days[0]

    @property
    def last_day_key(self) -> str:
        return self._days[-1]

    @property
    def centered_today(self) -> bool:
        return self._centered_today

    def current_range(self) -> Tuple[str, str]:
        return self.first_day_key, add_days_to_day_key(self.last_day_key, 1)

    def attach(self, surface: ScrollSurface) -> None:
        self._surface = surface

    def _remember_anchor(self) -> None:
        if self._surface is not None:
            self._prepend_anchor = _PrependAnchor(self._surface.scroll_top, self._surface.scroll_height)

    def _prepend(self, start_day_key: str) -> Tuple[str, str]:
        end = self.first_day_key
        new_days = build_day_key_range(start_day_key, end)
        if new_days:
            self._remember_anchor()
            self._days = new_days + self._days
        return start_day_key, end

    def _append(self, end_day_key_exclusive: str) -> Tuple[str, str]:
        start = add_days_to_day_key(self.last_day_key, 1)
        self._days = self._days + build_day_key_range(start, end_day_key_exclusive)
        return start, end_day_key_exclusive

    async def on_top_reached(self) -> None:
        start, end = self._prepend(add_days_to_day_key(self.first_day_key, -PAGE_SIZE_DAYS))
        await self._request_segment(start, end)

    async def on_bottom_reached(self) -> None:
        start = add_days_to_day_key(self.last_day_key, 1)
        start, end = self._append(add_days_to_day_key(start, PAGE_SIZE_DAYS))
        await self._request_segment(start, end)

    async def jump_to(self, target_day_key: str) -> None:
        """Scroll to ``target_day_key``, growing the window first when it is outside."""
        if target_day_key in self._days:
            self.scroll_to_day(target_day_key)
            return

        if target_day_key < self.first_day_key:
            segment = self._prepend(add_days_to_day_key(target_day_key, -JUMP_BUFFER_DAYS))
        else:
            segment = self._append(add_days_to_day_key(target_day_key, JUMP_BUFFER_DAYS + 1))
        self._pending_target = target_day_key
        await self._request_segment(*segment)

    def on_layout(self) -> None:
        surface = self._surface
        if surface is None:
            return
        if self._prepend_anchor is not None:
            anchor = self._prepend_anchor
            surface.scroll_top = anchor.scroll_top + (surface.scroll_height - anchor.scroll_height)
            self._prepend_anchor = None
        if not self._centered_today and self._centered_offset(self.today) is not None:
            self._centered_today = self.scroll_to_day(self.today, smooth=False)
        if self._pending_target is not None and self.scroll_to_day(self._pending_target):
            self._pending_target = None

    def _centered_offset(self, day_key: str) -> Optional[float]:
        if self._surface is None:
            return None
        bounds = self._surface.row_bounds(day_key)
        if bounds is None:
            return None
        top, height = bounds
        return max(0.0, top - self._surface.client_height / 2 + height / 2)

    def scroll_to_day(self, day_key: str, *, smooth: bool = True) -> bool:
        offset = self._centered_offset(day_key)
        if offset is None or self._surface is None:
            return False
        self._surface.scroll_to(offset, smooth=smooth)
        return True

    def scroll_to_today(self) -> bool:
        return self.scroll_to_day(self.today)

    def scroll_to_task(self, task_id: str) -> bool:
        if self._surface is None:
            return False
        bounds = self._surface.task_bounds(task_id)
        if bounds is None:
            return False
        top, height = bounds
        self._surface.scroll_to(max(0.0, top - self._surface.client_height / 2 + height / 2), smooth=True)
        return True
