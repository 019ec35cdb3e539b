"""YouTube metadata lookup with cascading providers.

Providers run in order and only fill fields still missing. Each provider has
its own timeout and the whole chain is bounded by an aggregate deadline, so a
slow upstream can never hold up task creation for long.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from time import monotonic
from typing import List, Optional, Sequence
from urllib.parse import parse_qs, urlparse

import httpx

from lineup.core.config import settings
from lineup.core.durations import format_duration_seconds, parse_iso8601_duration
from lineup.observability.metrics import log_metric
from lineup.observability.tracing import trace

logger = logging.getLogger(__name__)

UNTITLED_VIDEO = "Untitled video"
BROWSER_HEADERS = {
    "user-agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "accept-language": "en-US,en;q=0.9",
}
_PLAYER_RESPONSE_RE = re.compile(
    r"ytInitialPlayerResponse\s*=\s*(\{.*?\})\s*;\s*(?:var\s|</script>)",
    re.DOTALL,
)


class InvalidVideoUrl(ValueError):
    """Raised when no YouTube video id can be extracted from a link."""


@dataclass
class PartialMetadata:
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_duration: Optional[str] = None


@dataclass(frozen=True)
class VideoMetadata:
    video_id: str
    title: str
    thumbnail_url: Optional[str]
    video_duration: Optional[str]


def extract_youtube_video_id(video_url: Optional[str]) -> Optional[str]:
    """Return the video id from watch, youtu.be, shorts or embed links."""
    if not video_url:
        return None
    try:
        parsed = urlparse(video_url.strip())
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    if parsed.hostname == "youtu.be":
        video_id = parsed.path.lstrip("/").split("/")[0].strip()
        return video_id or None

    query_id = parse_qs(parsed.query).get("v")
    if query_id and query_id[0]:
        return query_id[0]

    parts = [part for part in parsed.path.split("/") if part]
    for idx, part in enumerate(parts):
        if part in ("shorts", "embed") and idx + 1 < len(parts):
            return parts[idx + 1]
    return None


def placeholder_thumbnail_url(video_id: Optional[str]) -> Optional[str]:
    if not video_id:
        return None
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


class MetadataProvider:
    """Base interface for metadata providers."""

    name = "base"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def is_enabled(self) -> bool:
        return True

    def fetch(self, client: httpx.Client, video_url: str, video_id: str, timeout: float) -> Optional[PartialMetadata]:
        raise NotImplementedError


class DataApiProvider(MetadataProvider):
    """YouTube Data API v3; the only provider that works reliably from servers."""

    name = "data_api"
    endpoint = "https://www.googleapis.com/youtube/v3/videos"

    def __init__(self, timeout: float, api_key: Optional[str]) -> None:
        super().__init__(timeout)
        self.api_key = api_key

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def fetch(self, client: httpx.Client, video_url: str, video_id: str, timeout: float) -> Optional[PartialMetadata]:
        response = client.get(
            self.endpoint,
            params={"id": video_id, "part": "snippet,contentDetails", "key": self.api_key},
            timeout=timeout,
        )
        response.raise_for_status()
        items = response.json().get("items") or []
        if not items:
            return None
        item = items[0]
        snippet = item.get("snippet") or {}
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = None
        for size in ("maxres", "high", "medium"):
            url = (thumbnails.get(size) or {}).get("url")
            if url:
                thumbnail = url
                break
        seconds = parse_iso8601_duration((item.get("contentDetails") or {}).get("duration"))
        return PartialMetadata(
            title=snippet.get("title") or None,
            thumbnail_url=thumbnail,
            video_duration=format_duration_seconds(seconds) if seconds else None,
        )


class WatchPageProvider(MetadataProvider):
    """Reads the player response embedded in the public watch page."""

    name = "watch_page"

    def fetch(self, client: httpx.Client, video_url: str, video_id: str, timeout: float) -> Optional[PartialMetadata]:
        response = client.get(
            "https://www.youtube.com/watch",
            params={"v": video_id},
            headers=BROWSER_HEADERS,
            timeout=timeout,
        )
        response.raise_for_status()
        match = _PLAYER_RESPONSE_RE.search(response.text)
        if not match:
            return None
        details = json.loads(match.group(1)).get("videoDetails") or {}
        thumbs = (details.get("thumbnail") or {}).get("thumbnails") or []
        length = details.get("lengthSeconds")
        return PartialMetadata(
            title=details.get("title") or None,
            thumbnail_url=thumbs[-1].get("url") if thumbs else None,
            video_duration=format_duration_seconds(length) if length else None,
        )


class OEmbedProvider(MetadataProvider):
    """oEmbed endpoint; title and thumbnail only, no duration."""

    name = "oembed"

    def fetch(self, client: httpx.Client, video_url: str, video_id: str, timeout: float) -> Optional[PartialMetadata]:
        response = client.get(
            "https://www.youtube.com/oembed",
            params={"format": "json", "url": video_url},
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
        return PartialMetadata(title=data.get("title") or None, thumbnail_url=data.get("thumbnail_url") or None)


def default_providers() -> List[MetadataProvider]:
    return [
        DataApiProvider(settings.metadata_data_api_timeout_s, settings.youtube_api_key),
        WatchPageProvider(settings.metadata_watch_page_timeout_s),
        OEmbedProvider(settings.metadata_oembed_timeout_s),
    ]


def fetch_video_metadata(
    video_url: str,
    *,
    providers: Optional[Sequence[MetadataProvider]] = None,
    client: Optional[httpx.Client] = None,
    total_timeout: Optional[float] = None,
) -> VideoMetadata:
    """Resolve best-effort metadata for ``video_url``.

    Raises ``InvalidVideoUrl`` when the link has no extractable id. Provider
    failures never raise: missing fields fall back to ``"Untitled video"`` and
    the id-derived thumbnail.
    """
    video_id = extract_youtube_video_id(video_url)
    if not video_id:
        raise InvalidVideoUrl("Invalid YouTube URL")

    chain = list(providers) if providers is not None else default_providers()
    budget = settings.metadata_total_timeout_s if total_timeout is None else total_timeout
    deadline = monotonic() + budget
    found = PartialMetadata()
    providers_used: List[str] = []

    owns_client = client is None
    http = client or httpx.Client(follow_redirects=True)
    try:
        with trace("youtube.metadata", metadata={"video_id": video_id, "providers": [p.name for p in chain]}):
            for provider in chain:
                if found.title and found.thumbnail_url and found.video_duration:
                    break
                if not provider.is_enabled():
                    continue
                remaining = deadline - monotonic()
                if remaining <= 0:
                    logger.info("Metadata lookup for %s hit the aggregate deadline", video_id)
                    break
                try:
                    result = provider.fetch(http, video_url, video_id, min(provider.timeout, remaining))
                except (httpx.HTTPError, ValueError) as exc:
                    logger.debug("Metadata provider %s failed for %s: %s", provider.name, video_id, exc)
                    continue
                if not result:
                    continue
                providers_used.append(provider.name)
                found.title = found.title or result.title
                found.thumbnail_url = found.thumbnail_url or result.thumbnail_url
                found.video_duration = found.video_duration or result.video_duration
    finally:
        if owns_client:
            http.close()

    log_metric(
        "youtube.metadata.resolved",
        1 if found.title else 0,
        metadata={"video_id": video_id, "providers": providers_used},
    )
    return VideoMetadata(
        video_id=video_id,
        title=found.title or UNTITLED_VIDEO,
        thumbnail_url=found.thumbnail_url or placeholder_thumbnail_url(video_id),
        video_duration=found.video_duration,
    )
