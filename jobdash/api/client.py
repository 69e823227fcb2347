from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from jobdash.errors import RequestFailed
from jobdash.models import Job, LogEntry, LogPage, MutationResult


class JobsApi(Protocol):
    async def fetch_jobs(self) -> List[Job]: ...

    async def create_job(self, cmd: str, *, id: str = "") -> MutationResult: ...

    async def delete_job(self, id: str) -> MutationResult: ...

    def stream_run(self, id: str) -> AsyncIterator[str]: ...


class LogsApi(Protocol):
    async def fetch_logs(self, *, job: Optional[str] = None, page: Optional[int] = None) -> LogPage: ...

    async def fetch_log(self, id: str) -> LogEntry: ...


@dataclass(frozen=True)
class ApiSession:
    """
    Thin async HTTP wrapper around the dashboard backend.

    Every failure below the application payload (connection errors, timeouts,
    non-2xx statuses, undecodable bodies) is raised as RequestFailed so callers
    only ever deal with one transport error type. Application-level outcomes
    (`success: false`) are data, not exceptions.

    Mockable in tests via the httpx transport override.
    """

    base_url: str
    timeout_s: float = 15.0
    transport: httpx.AsyncBaseTransport | None = None

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport, follow_redirects=True)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            async with self._client() as c:
                r = await c.get(self._url(path), params=params)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            raise RequestFailed("GET", path, f"status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RequestFailed("GET", path, f"{type(e).__name__}: {e}") from e
        except json.JSONDecodeError as e:
            raise RequestFailed("GET", path, f"invalid JSON response: {e}") from e

    async def stream_text(self, path: str) -> AsyncIterator[str]:
        try:
            async with self._client() as c:
                async with c.stream("GET", self._url(path)) as r:
                    r.raise_for_status()
                    async for chunk in r.aiter_text():
                        if chunk:
                            yield chunk
        except httpx.HTTPStatusError as e:
            raise RequestFailed("GET", path, f"status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RequestFailed("GET", path, f"{type(e).__name__}: {e}") from e


def _parse(path: str, model: Any, data: Any) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestFailed("GET", path, f"unexpected response shape: {e.error_count()} error(s)") from e


@dataclass(frozen=True)
class JobResource:
    session: ApiSession

    async def fetch_jobs(self) -> List[Job]:
        data = await self.session.get_json("/jobs")
        if data is None:
            return []
        if not isinstance(data, list):
            raise RequestFailed("GET", "/jobs", "expected a list of jobs")
        return [_parse("/jobs", Job, row) for row in data]

    async def create_job(self, cmd: str, *, id: str = "") -> MutationResult:
        # Ids are assigned by the backend; never send an update for an unsaved job.
        data = await self.session.get_json("/addJob", params={"id": id or "", "cmd": cmd or ""})
        return _parse("/addJob", MutationResult, data)

    async def delete_job(self, id: str) -> MutationResult:
        data = await self.session.get_json("/deleteJob", params={"id": id})
        return _parse("/deleteJob", MutationResult, data)

    def stream_run(self, id: str) -> AsyncIterator[str]:
        # Job ids are file names on the backend; `?`, `#` and `/` must stay inside the segment.
        return self.session.stream_text(f"/run/{quote(id, safe='')}")


@dataclass(frozen=True)
class LogResource:
    session: ApiSession

    async def fetch_logs(self, *, job: Optional[str] = None, page: Optional[int] = None) -> LogPage:
        params: Dict[str, Any] = {}
        if job:
            params["job"] = job
        if page is not None:
            params["page"] = int(page)
        data = await self.session.get_json("/logs", params=params or None)
        if not isinstance(data, dict):
            raise RequestFailed("GET", "/logs", "expected an object with Entries")
        result = _parse("/logs", LogPage, data)
        return result.model_copy(update={"page": page})

    async def fetch_log(self, id: str) -> LogEntry:
        data = await self.session.get_json("/logs", params={"id": id})
        if not isinstance(data, dict):
            raise RequestFailed("GET", "/logs", "expected an object with body")
        return LogEntry(id=id, body=str(data.get("body") or ""))
