from __future__ import annotations

from types import SimpleNamespace

import pytest

from lineup.services.task_fields import (
    TaskFieldError,
    derive_task_fields,
    derive_title,
    looks_like_placeholder,
    resolve_time_to_complete,
    validate_task_input,
    validate_time_to_complete,
)
from lineup.services.youtube import VideoMetadata


def test_validate_task_input_trims_and_types():
    note = validate_task_input(None, "  Read chapter 4  ", "30")
    video = validate_task_input(" https://youtu.be/dQw4w9WgXcQ ", "   ", 60)

    assert note.notes == "Read chapter 4"
    assert note.time_to_complete == 30
    assert note.task_type == "note"
    assert video.video_url == "https://youtu.be/dQw4w9WgXcQ"
    assert video.notes is None
    assert video.task_type == "video"


def test_edit_may_omit_time_to_complete():
    assert validate_task_input(None, "x", None, require_time=False).time_to_complete is None


@pytest.mark.parametrize("value", [0, -5, 10081, True, "12a", 1.5])
def test_time_to_complete_bounds(value):
    with pytest.raises(TaskFieldError):
        validate_time_to_complete(value, required=True)


def test_time_to_complete_upper_bound_is_inclusive():
    assert validate_time_to_complete(10080, required=True) == 10080


def test_presets_and_custom_minutes_are_exclusive():
    assert resolve_time_to_complete(120, None) == 120
    assert resolve_time_to_complete(None, "45 min") == 45
    with pytest.raises(TaskFieldError):
        resolve_time_to_complete(30, "45")
    with pytest.raises(TaskFieldError):
        resolve_time_to_complete(45, None)
    with pytest.raises(TaskFieldError):
        resolve_time_to_complete(None, "")


def test_derive_title():
    assert derive_title("note", "Read chapter 4\nthen summarize") == "Read chapter 4"
    assert derive_title("note", "\n\n") == "Note"
    assert derive_title("video", None, None) == "Untitled video"
    assert derive_title("video", None, "Talk") == "Talk"


def test_video_without_metadata_gets_placeholder():
    derived = derive_task_fields("https://www.youtube.com/watch?v=dQw4w9WgXcQ", None)

    assert derived.type == "video"
    assert derived.title == "Untitled video"
    assert derived.thumbnail_url == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
    assert derived.video_duration is None


def test_video_metadata_without_thumbnail_keeps_id_thumbnail():
    meta = VideoMetadata(video_id="dQw4w9WgXcQ", title="Talk", thumbnail_url=None, video_duration="4:05")

    derived = derive_task_fields("https://youtu.be/dQw4w9WgXcQ", None, meta)

    assert derived.title == "Talk"
    assert derived.thumbnail_url == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"title": "Untitled video", "thumbnail_url": "t", "video_duration": "1:00"}, True),
        ({"title": "YouTube video", "thumbnail_url": "t", "video_duration": "1:00"}, True),
        ({"title": "Talk", "thumbnail_url": "t", "video_duration": None}, True),
        ({"title": "Talk", "thumbnail_url": "t", "video_duration": "1:00"}, False),
    ],
)
def test_looks_like_placeholder(fields, expected):
    task = SimpleNamespace(type="video", video_url="https://youtu.be/x", **fields)

    assert looks_like_placeholder(task) is expected


def test_notes_are_never_placeholders():
    assert looks_like_placeholder(SimpleNamespace(type="note", video_url=None, title=None)) is False
