from __future__ import annotations

import asyncio
import itertools

import pytest

from lineup.timeline.controller import TimelineController
from lineup.timeline.errors import ReadOnlyError, TaskValidationError
from lineup.timeline.mutations import TaskDraft, utc_now_iso
from lineup.timeline.session import Guest, SessionUser, UserSession
from timeline_fakes import REAL_METADATA, VIDEO_URL, FakeGateway, make_task

TODAY = "2024-03-10"


def _controller(gateway, **kwargs):
    counter = itertools.count(1)
    return TimelineController(
        gateway,
        today=TODAY,
        id_factory=lambda: f"local-{next(counter)}",
        clock=lambda: "2024-03-10T09:00:00.000Z",
        **kwargs,
    )


def test_utc_now_iso_has_millisecond_z_format():
    value = utc_now_iso()

    assert value.endswith("Z")
    assert len(value) == len("2024-03-10T09:00:00.000Z")


def test_guest_note_is_created_locally():
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        first = await controller.save_task(
            TaskDraft(day_key=TODAY, notes="Read chapter 4\nthen summarize", time_to_complete=30)
        )
        second = await controller.save_task(TaskDraft(day_key=TODAY, notes="Stretch", time_to_complete=60))
        return first, second

    first, second = asyncio.run(scenario())

    assert isinstance(controller.mode, Guest)
    assert first.id == "local-1"
    assert first.type == "note"
    assert first.title == "Read chapter 4"
    assert first.scheduled_date == "2024-03-10T00:00:00.000Z"
    assert first.order == 1000
    assert second.order == 2000
    assert [task.id for task in controller.board.tasks_for(TODAY)] == ["local-1", "local-2"]
    assert gateway.calls == []
    assert gateway.metadata_calls == []


def test_guest_video_uses_metadata_lookup_only():
    gateway = FakeGateway(metadata={VIDEO_URL: REAL_METADATA})
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        return await controller.save_task(TaskDraft(day_key=TODAY, video_url=VIDEO_URL, time_to_complete=30))

    task = asyncio.run(scenario())

    assert task.type == "video"
    assert task.title == "Never Gonna Give You Up"
    assert task.video_duration == "3:33"
    assert gateway.metadata_calls == [VIDEO_URL]
    assert gateway.calls == []


def test_guest_video_falls_back_to_placeholder_when_lookup_fails():
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        return await controller.save_task(TaskDraft(day_key=TODAY, video_url=VIDEO_URL, time_to_complete=30))

    task = asyncio.run(scenario())

    assert task.title == "Untitled video"
    assert task.thumbnail_url == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
    assert task.video_duration is None
    assert controller.banner.message is None


def test_guest_edit_keeps_id_day_and_order():
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        await controller.save_task(TaskDraft(day_key=TODAY, notes="First", time_to_complete=30))
        await controller.save_task(TaskDraft(day_key=TODAY, notes="Second", time_to_complete=30))
        return await controller.save_task(
            TaskDraft(day_key="2024-03-12", notes="First, revised", task_id="local-1")
        )

    edited = asyncio.run(scenario())

    assert edited.id == "local-1"
    assert edited.day_key == TODAY
    assert edited.order == 1000
    assert edited.title == "First, revised"
    assert edited.time_to_complete == 30
    assert len(controller.board) == 2


def test_guest_task_created_after_a_delete_goes_last():
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        for notes in ("one", "two", "three"):
            await controller.save_task(TaskDraft(day_key=TODAY, notes=notes, time_to_complete=30))
        await controller.delete_task("local-1")
        await controller.save_task(TaskDraft(day_key=TODAY, notes="four", time_to_complete=30))

    asyncio.run(scenario())

    assert [(task.title, task.order) for task in controller.board.tasks_for(TODAY)] == [
        ("two", 2000),
        ("three", 3000),
        ("four", 4000),
    ]
    assert gateway.calls == []


def test_guest_tasks_do_not_survive_a_new_timeline():
    gateway = FakeGateway()
    first = _controller(gateway)

    async def scenario():
        await first.start()
        await first.save_task(TaskDraft(day_key=TODAY, notes="Ephemeral", time_to_complete=30))
        await first.close()
        second = _controller(gateway)
        await second.start()
        return second

    second = asyncio.run(scenario())

    assert len(second.board) == 0
    assert gateway.calls == []


@pytest.mark.parametrize(
    "draft",
    [
        TaskDraft(day_key=TODAY, video_url=VIDEO_URL, notes="both", time_to_complete=30),
        TaskDraft(day_key=TODAY, time_to_complete=30),
        TaskDraft(day_key=TODAY, notes="no time"),
        TaskDraft(day_key=TODAY, video_url="https://example.com/clip", time_to_complete=30),
        TaskDraft(day_key="2024-02-30", notes="bad day", time_to_complete=30),
    ],
)
def test_invalid_drafts_are_rejected_before_any_call(draft):
    gateway = FakeGateway(user=SessionUser(user_id="u-1", email="ada@example.com"))
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        with pytest.raises(TaskValidationError):
            await controller.save_task(draft)

    asyncio.run(scenario())

    assert controller.form_error
    assert gateway.calls_to("create_task") == []
    assert gateway.metadata_calls == []


def test_user_session_creates_through_the_gateway():
    gateway = FakeGateway(user=SessionUser(user_id="u-1", email="ada@example.com"))
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        return await controller.save_task(TaskDraft(day_key=TODAY, notes="Plan sprint", time_to_complete="120"))

    task = asyncio.run(scenario())

    assert isinstance(controller.mode, UserSession)
    assert gateway.calls_to("create_task") == [(TODAY, None, "Plan sprint", 120)]
    assert task.id == "srv-1"
    assert controller.board.find("srv-1") == task


def test_editing_a_task_deleted_elsewhere_drops_it():
    gateway = FakeGateway(user=SessionUser(user_id="u-1", email="ada@example.com"))
    gateway.tasks["gone"] = make_task("gone", TODAY, 1000)
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        del gateway.tasks["gone"]
        return await controller.save_task(TaskDraft(day_key=TODAY, notes="Edited", task_id="gone"))

    result = asyncio.run(scenario())

    assert result is None
    assert "gone" not in controller.board
    assert controller.banner.message == "Task not found"


def test_deleting_closes_popovers_for_that_task():
    gateway = FakeGateway(user=SessionUser(user_id="u-1", email="ada@example.com"))
    gateway.tasks["a"] = make_task("a", TODAY, 1000)
    gateway.tasks["b"] = make_task("b", TODAY, 2000)
    controller = _controller(gateway)

    async def scenario():
        await controller.start()
        controller.open_notes("a")
        deleted = await controller.delete_task("a")
        controller.open_menu("b")
        missing = await controller.delete_task("already-gone")
        return deleted, missing

    deleted, missing = asyncio.run(scenario())

    assert deleted is True
    assert missing is True
    assert controller.open_notes_task_id is None
    assert controller.open_menu_task_id == "b"
    assert "a" not in controller.board
    assert gateway.calls_to("delete_task") == [("a",), ("already-gone",)]


def test_admin_view_is_read_only():
    gateway = FakeGateway([make_task("a", TODAY, 1000)])
    controller = _controller(gateway, view_as_user_id="u-9")

    async def scenario():
        await controller.start()
        with pytest.raises(ReadOnlyError):
            await controller.save_task(TaskDraft(day_key=TODAY, notes="x", time_to_complete=30))
        return await controller.delete_task("a")

    deleted = asyncio.run(scenario())

    assert controller.read_only
    assert controller.form_error == "This timeline is read-only"
    assert deleted is False
    assert controller.start_drag("a", TODAY) is False
    assert "a" in controller.board
    assert gateway.calls_to("list_user_tasks") == [("u-9", "2024-03-05", "2024-03-16")]
    assert gateway.calls_to("create_task") == []
    assert gateway.calls_to("delete_task") == []


def test_mutations_wait_for_the_session_check():
    controller = _controller(FakeGateway())

    with pytest.raises(ReadOnlyError):
        asyncio.run(controller.save_task(TaskDraft(day_key=TODAY, notes="x", time_to_complete=30)))
