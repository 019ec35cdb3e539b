"""Top-level timeline state for one mounted view.

The controller is the error boundary of the timeline: failures from the
loader and engines become banner text, form errors or a session change.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from lineup.timeline.banner import Banner
from lineup.timeline.board import TaskBoard, TimelineTask
from lineup.timeline.errors import (
    ReadOnlyError,
    SessionExpiredError,
    TaskValidationError,
    TimelineError,
)
from lineup.timeline.gateway import TaskGateway
from lineup.timeline.mutations import TaskDraft, TaskMutationEngine
from lineup.timeline.reorder import ReorderEngine, ReorderResult, drop_index_for_cursor
from lineup.timeline.runner import BackgroundRunner
from lineup.timeline.search import SearchEngine, SearchMatch
from lineup.timeline.segments import SegmentLoader
from lineup.timeline.session import (
    AdminView,
    Guest,
    Loading,
    SessionMode,
    SessionUser,
    UserSession,
    mode_name,
)
from lineup.timeline.viewport import ScrollSurface, ViewportController

logger = logging.getLogger(__name__)


class TimelineController:
    def __init__(
        self,
        gateway: TaskGateway,
        *,
        view_as_user_id: Optional[str] = None,
        today: Optional[str] = None,
        surface: Optional[ScrollSurface] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.gateway = gateway
        self.banner = Banner()
        self.mode: SessionMode = AdminView(view_as_user_id) if view_as_user_id else Loading()
        self.form_error: Optional[str] = None
        self.auth_error: Optional[str] = None
        self.open_notes_task_id: Optional[str] = None
        self.open_menu_task_id: Optional[str] = None
        self._id_factory = id_factory
        self._clock = clock
        self._closed = False
        self.runner = BackgroundRunner()

        self.viewport = ViewportController(self.load_segment, today=today, surface=surface)
        self.search = SearchEngine(lambda: self.board, lambda: self.viewport.days, on_activate=self._reveal_match)
        self._build_session_state()

    def _build_session_state(self) -> None:
        """Start over with an empty board for the current mode."""
        self.runner.cancel_all()
        self.runner = BackgroundRunner()
        self.board = TaskBoard()
        self.loader = SegmentLoader(self.board, self.gateway, self.banner, self.runner)
        self.mutations = TaskMutationEngine(
            self.board,
            self.gateway,
            on_deleted=self._close_popovers_for,
            id_factory=self._id_factory,
            clock=self._clock,
        )
        self.reorder = ReorderEngine(self.board, self.gateway, self.banner)

    @property
    def read_only(self) -> bool:
        return isinstance(self.mode, AdminView)

    @property
    def user(self) -> Optional[SessionUser]:
        return self.mode.user if isinstance(self.mode, UserSession) else None

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Resolve the session (unless viewing as admin) and load the initial window."""
        if isinstance(self.mode, Loading):
            try:
                user = await self.gateway.me()
            except TimelineError as exc:
                logger.info("Session check failed, continuing as guest: %s", exc)
                user = None
            if self._closed:
                return
            await self._switch_mode(UserSession(user) if user else Guest())
            return
        await self.load_segment(*self.viewport.current_range())

    async def _switch_mode(self, mode: SessionMode) -> None:
        logger.info("Timeline mode %s -> %s", mode_name(self.mode), mode_name(mode))
        self.mode = mode
        self._close_popovers()
        self.reorder.cancel_drag()
        self._build_session_state()
        await self.load_segment(*self.viewport.current_range())

    async def _session_expired(self) -> None:
        if isinstance(self.mode, AdminView):
            self.banner.show("Admin session required")
            return
        self.banner.show(SessionExpiredError.default_message)
        await self._switch_mode(Guest())

    async def load_segment(self, start_day_key: str, end_day_key_exclusive: str) -> None:
        if self._closed:
            return
        try:
            await self.loader.load(start_day_key, end_day_key_exclusive, self.mode)
        except SessionExpiredError:
            await self._session_expired()
            return
        self.search.refresh()

    async def _authenticate(
        self, action: Callable[[str, str], Awaitable[SessionUser]], email: str, password: str
    ) -> bool:
        self.auth_error = None
        try:
            user = await action(email, password)
        except TimelineError as exc:
            self.auth_error = exc.message
            return False
        if self._closed:
            return False
        await self._switch_mode(UserSession(user))
        return True

    async def login(self, email: str, password: str) -> bool:
        return await self._authenticate(self.gateway.login, email, password)

    async def signup(self, email: str, password: str) -> bool:
        return await self._authenticate(self.gateway.signup, email, password)

    async def logout(self) -> None:
        try:
            await self.gateway.logout()
        except TimelineError as exc:
            logger.info("Logout request failed: %s", exc)
        if not self._closed:
            await self._switch_mode(Guest())

    async def save_task(self, draft: TaskDraft) -> Optional[TimelineTask]:
        """Create or edit a task.

        Validation and read-only failures are raised for the form to display;
        everything else is reported on the banner.
        """
        self.form_error = None
        try:
            task = await self.mutations.save(self.mode, draft)
        except (TaskValidationError, ReadOnlyError) as exc:
            self.form_error = exc.message
            raise
        except SessionExpiredError:
            await self._session_expired()
            return None
        except TimelineError as exc:
            self.banner.show(exc.message)
            return None
        self.search.refresh()
        return task

    async def delete_task(self, task_id: str) -> bool:
        try:
            await self.mutations.delete(self.mode, task_id)
        except ReadOnlyError as exc:
            self.banner.show(exc.message)
            return False
        except SessionExpiredError:
            await self._session_expired()
            return False
        except TimelineError as exc:
            self.banner.show(exc.message)
            return False
        self.search.refresh()
        return True

    def start_drag(self, task_id: str, from_day_key: str) -> bool:
        try:
            self.reorder.start_drag(self.mode, task_id, from_day_key)
        except ReadOnlyError:
            return False
        return True

    def drop_index(self, card_bounds: Sequence[Tuple[float, float]], cursor_x: float) -> int:
        return drop_index_for_cursor(card_bounds, cursor_x)

    async def drop(self, to_day_key: str, to_index: int) -> Optional[ReorderResult]:
        try:
            result = await self.reorder.drop(self.mode, to_day_key, to_index)
        except ReadOnlyError:
            self.reorder.cancel_drag()
            return None
        except SessionExpiredError:
            await self._session_expired()
            return None
        self.search.refresh()
        return result

    def set_search_query(self, text: str) -> None:
        self.search.set_query(text)

    def search_next(self) -> Optional[SearchMatch]:
        return self.search.next()

    def search_previous(self) -> Optional[SearchMatch]:
        return self.search.previous()

    def clear_search(self) -> None:
        self.search.clear()

    def _reveal_match(self, match: SearchMatch) -> None:
        self.viewport.scroll_to_task(match.task_id)

    def open_notes(self, task_id: str) -> None:
        self.open_menu_task_id = None
        self.open_notes_task_id = task_id

    def open_menu(self, task_id: str) -> None:
        self.open_notes_task_id = None
        self.open_menu_task_id = task_id

    def _close_popovers(self) -> None:
        self.open_notes_task_id = None
        self.open_menu_task_id = None

    def _close_popovers_for(self, task_id: str) -> None:
        if self.open_notes_task_id == task_id:
            self.open_notes_task_id = None
        if self.open_menu_task_id == task_id:
            self.open_menu_task_id = None

    def dismiss_popovers(self) -> None:
        """Outside click or Escape."""
        if not self._closed:
            self._close_popovers()

    async def close(self) -> None:
        """Tear down: cancel background work and ignore late completions."""
        self._closed = True
        self.runner.cancel_all()
        self._close_popovers()
        self.reorder.cancel_drag()
