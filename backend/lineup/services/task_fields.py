"""Validation and derived fields shared by the server and the guest timeline.

Both code paths build a task's ``type``, ``title``, ``thumbnail_url`` and
``video_duration`` through :func:`derive_task_fields`, so a guest sees exactly
what a signed-in user would.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from lineup.services.youtube import (
    UNTITLED_VIDEO,
    InvalidVideoUrl,
    VideoMetadata,
    extract_youtube_video_id,
    fetch_video_metadata,
    placeholder_thumbnail_url,
)

PRESET_MINUTES = (30, 60, 120, 1440)
MAX_TIME_TO_COMPLETE = 7 * 24 * 60
NOTE_TITLE_MAX = 80
PLACEHOLDER_TITLES = frozenset({"YouTube video", UNTITLED_VIDEO})


class TaskFieldError(ValueError):
    """Raised when task input fails validation."""


@dataclass(frozen=True)
class TaskInput:
    video_url: Optional[str]
    notes: Optional[str]
    time_to_complete: Optional[int]

    @property
    def task_type(self) -> str:
        return "video" if self.video_url else "note"


@dataclass(frozen=True)
class DerivedFields:
    type: str
    title: str
    thumbnail_url: Optional[str]
    video_duration: Optional[str]


def normalize_optional_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def validate_time_to_complete(value: Any, *, required: bool) -> Optional[int]:
    if value is None or value == "":
        if required:
            raise TaskFieldError("`time_to_complete` is required")
        return None
    if isinstance(value, bool):
        raise TaskFieldError("`time_to_complete` must be a positive integer (minutes)")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise TaskFieldError("`time_to_complete` must be a positive integer (minutes)")
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise TaskFieldError("`time_to_complete` must be a positive integer (minutes)")
    if value > MAX_TIME_TO_COMPLETE:
        raise TaskFieldError("`time_to_complete` is too large")
    return value


def resolve_time_to_complete(preset: Optional[int], custom: Optional[str]) -> int:
    """Collapse the editor's preset/custom choice into the minutes contract.

    Presets and the free-form field are mutually exclusive; custom input keeps
    digits only, like the editor field does.
    """
    custom_digits = "".join(ch for ch in (custom or "") if ch.isdigit())
    if preset is not None and custom_digits:
        raise TaskFieldError("Choose a preset or enter custom minutes, not both")
    if preset is not None:
        if preset not in PRESET_MINUTES:
            raise TaskFieldError(f"Unknown preset: {preset}")
        return preset
    resolved = validate_time_to_complete(custom_digits or None, required=True)
    return int(resolved or 0)


def validate_task_input(
    video_url: Any,
    notes: Any,
    time_to_complete: Any,
    *,
    require_time: bool = True,
) -> TaskInput:
    """Normalize and validate create/edit input before any I/O happens."""
    video = normalize_optional_string(video_url)
    note = normalize_optional_string(notes)
    if not video and not note:
        raise TaskFieldError("Provide at least a YouTube link or notes")
    if video and note:
        raise TaskFieldError("Provide either a YouTube link or notes, not both")
    if video and not extract_youtube_video_id(video):
        raise TaskFieldError("Provide a valid YouTube link")
    minutes = validate_time_to_complete(time_to_complete, required=require_time)
    return TaskInput(video_url=video, notes=note, time_to_complete=minutes)


def derive_title(task_type: str, notes: Optional[str], metadata_title: Optional[str] = None) -> str:
    if task_type == "video":
        return metadata_title or UNTITLED_VIDEO
    first_line = (notes or "").split("\n")[0].strip()[:NOTE_TITLE_MAX]
    return first_line or "Note"


def placeholder_metadata(video_url: str) -> VideoMetadata:
    video_id = extract_youtube_video_id(video_url) or ""
    return VideoMetadata(
        video_id=video_id,
        title=UNTITLED_VIDEO,
        thumbnail_url=placeholder_thumbnail_url(video_id),
        video_duration=None,
    )


def derive_task_fields(
    video_url: Optional[str],
    notes: Optional[str],
    metadata: Optional[VideoMetadata] = None,
) -> DerivedFields:
    """Compute derived fields; a video without metadata gets the placeholder."""
    if video_url:
        meta = metadata or placeholder_metadata(video_url)
        return DerivedFields(
            type="video",
            title=derive_title("video", notes, meta.title),
            thumbnail_url=meta.thumbnail_url or placeholder_thumbnail_url(extract_youtube_video_id(video_url)),
            video_duration=meta.video_duration,
        )
    return DerivedFields(type="note", title=derive_title("note", notes), thumbnail_url=None, video_duration=None)


def resolve_video_metadata(video_url: str) -> Optional[VideoMetadata]:
    """Server-side lookup; ``None`` lets callers fall back to the placeholder."""
    try:
        return fetch_video_metadata(video_url)
    except InvalidVideoUrl:
        return None


def looks_like_placeholder(task: Any) -> bool:
    """True for video tasks whose metadata is missing or generic."""
    if getattr(task, "type", None) != "video" or not getattr(task, "video_url", None):
        return False
    title = getattr(task, "title", None)
    return (
        not title
        or title in PLACEHOLDER_TITLES
        or not getattr(task, "thumbnail_url", None)
        or not getattr(task, "video_duration", None)
    )
