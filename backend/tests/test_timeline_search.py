from __future__ import annotations

from lineup.timeline.board import TaskBoard
from lineup.timeline.search import SearchEngine, SearchMatch
from timeline_fakes import make_task

DAYS = ["2024-03-10", "2024-03-11", "2024-03-12"]


def _engine(tasks, activated=None):
    board = TaskBoard()
    board.merge(tasks)
    engine = SearchEngine(lambda: board, lambda: DAYS, on_activate=activated.append if activated is not None else None)
    return engine, board


def _tasks():
    return [
        make_task("late", "2024-03-12", 1000, title="Deep work block"),
        make_task("first", "2024-03-10", 2000, title="Email", notes="then some DEEP reading"),
        make_task("other", "2024-03-10", 1000, title="Groceries"),
        make_task("outside", "2024-03-20", 1000, title="Deep dive"),
    ]


def test_matches_follow_render_order_across_title_and_notes():
    engine, _ = _engine(_tasks())

    engine.set_query("  deep ")

    assert engine.query == "deep"
    assert engine.matches() == [
        SearchMatch(day_key="2024-03-10", task_id="first"),
        SearchMatch(day_key="2024-03-12", task_id="late"),
    ]
    assert engine.active_match == SearchMatch(day_key="2024-03-10", task_id="first")


def test_next_and_previous_wrap_around():
    activated = []
    engine, _ = _engine(_tasks(), activated)
    engine.set_query("deep")

    assert engine.next().task_id == "late"
    assert engine.active_index == 1
    assert engine.next().task_id == "first"
    assert engine.active_index == 0
    assert engine.previous().task_id == "late"
    assert [match.task_id for match in activated] == ["first", "late", "first", "late"]


def test_changing_the_query_resets_the_cursor():
    engine, _ = _engine(_tasks())
    engine.set_query("deep")
    engine.next()

    engine.set_query("DEEP")
    assert engine.active_index == 1

    engine.set_query("e")
    assert engine.active_index == 0


def test_refresh_clamps_when_matches_disappear():
    engine, board = _engine(_tasks())
    engine.set_query("deep")
    engine.next()

    board.remove("late")
    engine.refresh()

    assert engine.active_index == 0
    assert engine.active_match.task_id == "first"


def test_refresh_keeps_the_view_when_nothing_changed():
    activated = []
    engine, board = _engine(_tasks(), activated)
    engine.set_query("deep")

    board.merge([make_task("plain", "2024-03-11", 1000, title="Laundry")])
    engine.refresh()
    engine.refresh()

    assert [match.task_id for match in activated] == ["first"]


def test_refresh_reveals_again_when_matches_change():
    activated = []
    engine, board = _engine(_tasks(), activated)
    engine.set_query("deep")
    engine.next()

    board.merge([make_task("new", "2024-03-11", 1000, title="Deep sleep")])
    engine.refresh()

    assert engine.active_index == 1
    assert [match.task_id for match in activated] == ["first", "late", "new"]


def test_matches_loaded_later_are_revealed():
    activated = []
    engine, board = _engine([make_task("other", "2024-03-10", 1000, title="Groceries")], activated)
    engine.set_query("deep")
    assert activated == []

    board.merge([make_task("late", "2024-03-12", 1000, title="Deep work block")])
    engine.refresh()

    assert [match.task_id for match in activated] == ["late"]


def test_empty_query_and_clear():
    engine, _ = _engine(_tasks())

    assert engine.matches() == []
    assert engine.next() is None

    engine.set_query("groceries")
    engine.clear()

    assert engine.query == ""
    assert engine.active_match is None
