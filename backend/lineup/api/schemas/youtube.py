"""Schemas for the video metadata lookup."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class VideoMetadataOut(BaseModel):
    video_id: str
    title: str
    thumbnail_url: Optional[str]
    video_duration: Optional[str]


class VideoMetadataResponse(BaseModel):
    meta: VideoMetadataOut
