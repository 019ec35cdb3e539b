"""Network boundary of the timeline core."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from lineup.core.config import settings
from lineup.core.dates import scheduled_iso_from_day_key
from lineup.services.youtube import VideoMetadata
from lineup.timeline.board import TimelineTask
from lineup.timeline.errors import (
    AuthFailedError,
    SessionExpiredError,
    TaskNotFoundError,
    TaskValidationError,
    TransientError,
)
from lineup.timeline.session import SessionUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderChange:
    task_id: str
    scheduled_date: str
    order: int


class TaskGateway(Protocol):
    """Calls the timeline makes against the backend."""

    async def list_tasks(self, start_day_key: str, end_day_key_exclusive: str) -> List[TimelineTask]: ...

    async def list_user_tasks(
        self, user_id: str, start_day_key: str, end_day_key_exclusive: str
    ) -> List[TimelineTask]: ...

    async def create_task(
        self, day_key: str, video_url: Optional[str], notes: Optional[str], time_to_complete: int
    ) -> TimelineTask: ...

    async def update_task(
        self, task_id: str, video_url: Optional[str], notes: Optional[str], time_to_complete: Optional[int]
    ) -> TimelineTask: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def bulk_reorder(self, updates: Sequence[OrderChange]) -> int: ...

    async def fetch_video_metadata(self, video_url: str) -> VideoMetadata: ...

    async def me(self) -> Optional[SessionUser]: ...

    async def login(self, email: str, password: str) -> SessionUser: ...

    async def signup(self, email: str, password: str) -> SessionUser: ...

    async def logout(self) -> None: ...


class HttpTaskGateway:
    """:class:`TaskGateway` over the JSON API using a pooled ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._timeout = timeout
        self._client = client
        self._token: Optional[str] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.info("%s %s failed: %s", method, path, exc)
            raise TransientError() from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body["error"]
        return None

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = self._error_message(response)
        code = response.status_code
        if code in (400, 422):
            raise TaskValidationError(message)
        if code in (401, 403):
            raise SessionExpiredError(message)
        if code == 404:
            raise TaskNotFoundError(message)
        raise TransientError(message)

    async def _json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise TransientError("Unexpected response from server") from exc

    @staticmethod
    def _range_params(start_day_key: str, end_day_key_exclusive: str) -> Dict[str, str]:
        return {
            "start": scheduled_iso_from_day_key(start_day_key),
            "end": scheduled_iso_from_day_key(end_day_key_exclusive),
        }

    async def list_tasks(self, start_day_key: str, end_day_key_exclusive: str) -> List[TimelineTask]:
        data = await self._json("GET", "/tasks", params=self._range_params(start_day_key, end_day_key_exclusive))
        return [TimelineTask.from_payload(item) for item in data.get("tasks") or []]

    async def list_user_tasks(
        self, user_id: str, start_day_key: str, end_day_key_exclusive: str
    ) -> List[TimelineTask]:
        data = await self._json(
            "GET",
            f"/admin/users/{user_id}/tasks",
            params=self._range_params(start_day_key, end_day_key_exclusive),
        )
        return [TimelineTask.from_payload(item) for item in data.get("tasks") or []]

    async def create_task(
        self, day_key: str, video_url: Optional[str], notes: Optional[str], time_to_complete: int
    ) -> TimelineTask:
        payload = {
            "scheduled_date": scheduled_iso_from_day_key(day_key),
            "video_url": video_url,
            "notes": notes,
            "time_to_complete": time_to_complete,
        }
        data = await self._json("POST", "/tasks", json=payload)
        return TimelineTask.from_payload(data["task"])

    async def update_task(
        self, task_id: str, video_url: Optional[str], notes: Optional[str], time_to_complete: Optional[int]
    ) -> TimelineTask:
        payload = {"video_url": video_url, "notes": notes, "time_to_complete": time_to_complete}
        data = await self._json("PATCH", f"/tasks/{task_id}", json=payload)
        return TimelineTask.from_payload(data["task"])

    async def delete_task(self, task_id: str) -> None:
        await self._json("DELETE", f"/tasks/{task_id}")

    async def bulk_reorder(self, updates: Sequence[OrderChange]) -> int:
        payload = {
            "updates": [
                {"id": change.task_id, "scheduled_date": change.scheduled_date, "order": change.order}
                for change in updates
            ]
        }
        data = await self._json("POST", "/tasks/reorder", json=payload)
        return int(data.get("modified_count") or 0)

    async def fetch_video_metadata(self, video_url: str) -> VideoMetadata:
        data = await self._json("GET", "/youtube/metadata", params={"url": video_url})
        meta = data["meta"]
        return VideoMetadata(
            video_id=meta["video_id"],
            title=meta["title"],
            thumbnail_url=meta.get("thumbnail_url"),
            video_duration=meta.get("video_duration"),
        )

    async def me(self) -> Optional[SessionUser]:
        response = await self._request("GET", "/auth/me")
        if response.status_code == 401:
            return None
        self._raise_for_status(response)
        user = response.json().get("user")
        return SessionUser.from_payload(user) if user else None

    async def _authenticate(self, path: str, email: str, password: str) -> SessionUser:
        response = await self._request("POST", path, json={"email": email, "password": password})
        if response.status_code in (400, 401, 409, 422):
            raise AuthFailedError(self._error_message(response))
        self._raise_for_status(response)
        data = response.json()
        self._token = data.get("token")
        return SessionUser.from_payload(data["user"])

    async def login(self, email: str, password: str) -> SessionUser:
        return await self._authenticate("/auth/login", email, password)

    async def signup(self, email: str, password: str) -> SessionUser:
        return await self._authenticate("/auth/signup", email, password)

    async def logout(self) -> None:
        self._token = None
        response = await self._request("POST", "/auth/logout")
        (await self._get_client()).cookies.clear()
        self._raise_for_status(response)
