"""Video metadata lookup used by the task editor preview."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from lineup.api.schemas.youtube import VideoMetadataOut, VideoMetadataResponse
from lineup.services.youtube import InvalidVideoUrl, fetch_video_metadata

router = APIRouter()


@router.get("/youtube/metadata", response_model=VideoMetadataResponse, tags=["youtube"])
def get_video_metadata(url: Optional[str] = Query(default=None)) -> VideoMetadataResponse:
    """Resolve title, thumbnail and duration; provider failures degrade to placeholders."""
    if not url or not url.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing url")
    try:
        meta = fetch_video_metadata(url.strip())
    except InvalidVideoUrl as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid YouTube url") from exc
    return VideoMetadataResponse(
        meta=VideoMetadataOut(
            video_id=meta.video_id,
            title=meta.title,
            thumbnail_url=meta.thumbnail_url,
            video_duration=meta.video_duration,
        )
    )
