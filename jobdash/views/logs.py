from __future__ import annotations

from typing import Optional

from jobdash.api.client import LogsApi
from jobdash.cache import CollectionCache
from jobdash.errors import RequestFailed
from jobdash.models import LogEntry
from jobdash.telemetry.audit import SessionAudit
from jobdash.views.display import Display
from jobdash.views.render import LOG_DETAIL, LOG_LIST, render_failure, render_log_detail, render_log_list


class LogsView:
    """Log list (optionally filtered by job, optionally paged) and log detail screens."""

    def __init__(
        self,
        *,
        api: LogsApi,
        cache: CollectionCache[LogEntry],
        display: Display,
        audit: SessionAudit | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.display = display
        self.job: Optional[str] = None
        self._audit = audit

    def _request_failed(self, e: RequestFailed) -> None:
        if self._audit:
            self._audit.write("request.failed", {"method": e.method, "path": e.path, "reason": e.reason})

    async def list_logs(self, job: Optional[str] = None, page: Optional[int] = None) -> None:
        ticket = self.display.claim()
        try:
            result = await self.api.fetch_logs(job=job, page=page)
        except RequestFailed as e:
            self._request_failed(e)
            self.display.mount(LOG_LIST, render_failure("Logs"), ticket=ticket)
            return
        if not self.display.is_current(ticket):
            self.display.discard(LOG_LIST, ticket)
            return
        self.job = job
        snap = self.cache.replace(result.entries, result.cursors())
        self.display.mount(LOG_LIST, render_log_list(snap.items, snap.cursors, job=self.job), ticket=ticket)

    async def list_logs_by_job(self, job: str) -> None:
        await self.list_logs(job=job)

    async def list_logs_page(self, page: int) -> None:
        await self.list_logs(page=page)

    async def view_log(self, id: str) -> None:
        ticket = self.display.claim()
        try:
            entry = await self.api.fetch_log(id)
        except RequestFailed as e:
            self._request_failed(e)
            self.display.mount(LOG_DETAIL, render_failure("viewLog"), ticket=ticket)
            return
        self.display.mount(LOG_DETAIL, render_log_detail(entry), ticket=ticket)
