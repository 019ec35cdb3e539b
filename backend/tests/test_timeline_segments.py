from __future__ import annotations

import asyncio

import pytest

from lineup.timeline.banner import Banner
from lineup.timeline.board import TaskBoard
from lineup.timeline.errors import SessionExpiredError, TransientError
from lineup.timeline.runner import BackgroundRunner
from lineup.timeline.segments import SegmentLoader
from lineup.timeline.session import AdminView, Guest, Loading, SessionUser, UserSession
from timeline_fakes import REAL_METADATA, VIDEO_URL, FakeGateway, make_task

USER = UserSession(SessionUser(user_id="u-1", email="ada@example.com"))


def _loader(gateway):
    board = TaskBoard()
    banner = Banner()
    runner = BackgroundRunner()
    return SegmentLoader(board, gateway, banner, runner), board, banner, runner


def test_each_segment_is_fetched_once():
    gateway = FakeGateway([make_task("a", "2024-03-10", 1000)])
    loader, board, _, _ = _loader(gateway)

    async def scenario():
        await loader.load("2024-03-05", "2024-03-16", USER)
        await loader.load("2024-03-05", "2024-03-16", USER)

    asyncio.run(scenario())

    assert gateway.calls_to("list_tasks") == [("2024-03-05", "2024-03-16")]
    assert board.is_segment_loaded("2024-03-05", "2024-03-16")
    assert [task.id for task in board.tasks_for("2024-03-10")] == ["a"]


def test_loads_arriving_mid_fetch_are_dropped():
    gateway = FakeGateway()
    loader, board, _, _ = _loader(gateway)

    async def scenario():
        gateway.gate = asyncio.Event()
        first = asyncio.create_task(loader.load("2024-03-05", "2024-03-16", USER))
        await asyncio.sleep(0)
        assert loader.in_flight
        await loader.load("2024-03-16", "2024-03-26", USER)
        gateway.gate.set()
        await first

    asyncio.run(scenario())

    assert gateway.calls_to("list_tasks") == [("2024-03-05", "2024-03-16")]
    assert not board.is_segment_loaded("2024-03-16", "2024-03-26")
    assert not loader.in_flight


def test_loading_mode_fetches_nothing_and_marks_nothing():
    gateway = FakeGateway()
    loader, board, _, _ = _loader(gateway)

    asyncio.run(loader.load("2024-03-05", "2024-03-16", Loading()))

    assert gateway.calls == []
    assert board.loaded_segments == set()


def test_guest_segments_are_marked_without_fetching():
    gateway = FakeGateway([make_task("a", "2024-03-10", 1000)])
    loader, board, _, _ = _loader(gateway)

    asyncio.run(loader.load("2024-03-05", "2024-03-16", Guest()))

    assert gateway.calls == []
    assert board.is_segment_loaded("2024-03-05", "2024-03-16")
    assert len(board) == 0


def test_admin_view_reads_the_target_users_tasks():
    gateway = FakeGateway([make_task("a", "2024-03-10", 1000)])
    loader, board, _, _ = _loader(gateway)

    asyncio.run(loader.load("2024-03-05", "2024-03-16", AdminView("u-9")))

    assert gateway.calls_to("list_user_tasks") == [("u-9", "2024-03-05", "2024-03-16")]
    assert gateway.calls_to("list_tasks") == []
    assert "a" in board


def test_failed_fetch_shows_banner_and_can_be_retried():
    gateway = FakeGateway([make_task("a", "2024-03-10", 1000)])
    gateway.fail("list_tasks", TransientError("Server unavailable"))
    loader, board, banner, _ = _loader(gateway)

    asyncio.run(loader.load("2024-03-05", "2024-03-16", USER))

    assert banner.message == "Server unavailable"
    assert not board.is_segment_loaded("2024-03-05", "2024-03-16")

    asyncio.run(loader.load("2024-03-05", "2024-03-16", USER))

    assert banner.message is None
    assert "a" in board


def test_session_expiry_propagates():
    gateway = FakeGateway()
    gateway.fail("list_tasks", SessionExpiredError())
    loader, board, _, _ = _loader(gateway)

    with pytest.raises(SessionExpiredError):
        asyncio.run(loader.load("2024-03-05", "2024-03-16", USER))
    assert not loader.in_flight
    assert board.loaded_segments == set()


def _placeholder_video():
    return make_task(
        "vid",
        "2024-03-10",
        1000,
        type="video",
        title="Untitled video",
        video_url=VIDEO_URL,
        thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        time_to_complete=30,
    )


def test_placeholder_videos_are_repaired_in_the_background():
    gateway = FakeGateway([_placeholder_video()], metadata={VIDEO_URL: REAL_METADATA})
    loader, board, _, runner = _loader(gateway)

    async def scenario():
        await loader.load("2024-03-05", "2024-03-16", USER)
        await runner.drain()
        await loader.load("2024-03-04", "2024-03-16", USER)
        await runner.drain()

    asyncio.run(scenario())

    assert [args[0] for args in gateway.calls_to("update_task")] == ["vid"]
    repaired = board.find("vid")
    assert repaired.title == "Never Gonna Give You Up"
    assert repaired.video_duration == "3:33"


def test_failed_repair_is_retried_on_a_later_load():
    gateway = FakeGateway([_placeholder_video()], metadata={VIDEO_URL: REAL_METADATA})
    gateway.fail("update_task", TransientError())
    loader, board, _, runner = _loader(gateway)

    async def scenario():
        await loader.load("2024-03-05", "2024-03-16", USER)
        await runner.drain()
        assert board.find("vid").title == "Untitled video"
        await loader.load("2024-03-04", "2024-03-16", USER)
        await runner.drain()

    asyncio.run(scenario())

    assert len(gateway.calls_to("update_task")) == 2
    assert board.find("vid").title == "Never Gonna Give You Up"


def test_guest_and_admin_loads_never_repair():
    gateway = FakeGateway([_placeholder_video()], metadata={VIDEO_URL: REAL_METADATA})
    loader, _, _, runner = _loader(gateway)

    async def scenario():
        await loader.load("2024-03-05", "2024-03-16", AdminView("u-9"))
        await runner.drain()

    asyncio.run(scenario())

    assert gateway.calls_to("update_task") == []
