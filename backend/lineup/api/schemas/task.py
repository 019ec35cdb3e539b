"""Schemas for timeline tasks."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TaskOut(BaseModel):
    id: str
    owner_id: Optional[str] = None
    type: Literal["video", "note"]
    title: Optional[str] = None
    video_url: Optional[str] = None
    notes: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_duration: Optional[str] = None
    scheduled_date: str
    day_key: str
    time_to_complete: Optional[int] = None
    order: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskCreateRequest(BaseModel):
    scheduled_date: str
    video_url: Optional[str] = None
    notes: Optional[str] = None
    time_to_complete: Optional[int] = None


class TaskUpdateRequest(BaseModel):
    video_url: Optional[str] = None
    notes: Optional[str] = None
    time_to_complete: Optional[int] = None
    scheduled_date: Optional[str] = None
    order: Optional[int] = None


class TaskResponse(BaseModel):
    task: TaskOut


class TaskListResponse(BaseModel):
    tasks: List[TaskOut]


class TaskCountResponse(BaseModel):
    count: int


class ReorderItem(BaseModel):
    id: str
    scheduled_date: str
    order: int


class ReorderRequest(BaseModel):
    updates: List[ReorderItem] = Field(default_factory=list)


class ReorderResponse(BaseModel):
    ok: bool = True
    modified_count: int


class OkResponse(BaseModel):
    ok: bool = True
