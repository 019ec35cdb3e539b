"""Substring search across the materialized window."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from lineup.timeline.board import TaskBoard


@dataclass(frozen=True)
class SearchMatch:
    day_key: str
    task_id: str


class SearchEngine:
    """Matches in render order with a circular active-match cursor.

    ``board`` and ``days`` are read through callables so the engine survives a
    session change that swaps the board.
    """

    def __init__(
        self,
        board: Callable[[], TaskBoard],
        days: Callable[[], Sequence[str]],
        on_activate: Optional[Callable[[SearchMatch], None]] = None,
    ) -> None:
        self._board = board
        self._days = days
        self._on_activate = on_activate
        self._query = ""
        self.active_index = 0
        self._shown: Optional[Tuple[int, int]] = None

    @property
    def query(self) -> str:
        return self._query

    def matches(self) -> List[SearchMatch]:
        if not self._query:
            return []
        board = self._board()
        found: List[SearchMatch] = []
        for day_key in self._days():
            for task in board.tasks_for(day_key):
                haystack = f"{task.title or ''}\n{task.notes or ''}".lower()
                if self._query in haystack:
                    found.append(SearchMatch(day_key=day_key, task_id=task.id))
        return found

    @property
    def active_match(self) -> Optional[SearchMatch]:
        found = self.matches()
        if not found or self.active_index >= len(found):
            return None
        return found[self.active_index]

    def set_query(self, text: str) -> None:
        normalized = (text or "").strip().lower()
        if normalized == self._query:
            return
        self._query = normalized
        self.active_index = 0
        self._shown = None
        self._activate()

    def refresh(self) -> None:
        """Re-clamp after the board or window changed.

        Scrolls only when the match count or the active index changed.
        """
        found = self.matches()
        if not found:
            self._shown = None
            return
        if self.active_index >= len(found):
            self.active_index = 0
        if self._shown != (len(found), self.active_index):
            self._activate(found)

    def next(self) -> Optional[SearchMatch]:
        return self._step(1)

    def previous(self) -> Optional[SearchMatch]:
        return self._step(-1)

    def _step(self, delta: int) -> Optional[SearchMatch]:
        found = self.matches()
        if not found:
            return None
        self.active_index = (self.active_index + delta) % len(found)
        return self._activate(found)

    def clear(self) -> None:
        self._query = ""
        self.active_index = 0
        self._shown = None

    def _activate(self, found: Optional[List[SearchMatch]] = None) -> Optional[SearchMatch]:
        found = self.matches() if found is None else found
        if not found:
            return None
        match = found[self.active_index]
        self._shown = (len(found), self.active_index)
        if self._on_activate is not None:
            self._on_activate(match)
        return match
