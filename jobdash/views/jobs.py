from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

from jobdash.api.client import JobsApi
from jobdash.cache import CollectionCache
from jobdash.errors import RequestFailed
from jobdash.models import Job, MutationResult
from jobdash.poller import LiveFollowPoller
from jobdash.telemetry.audit import SessionAudit
from jobdash.views.display import Display, OutputSurface
from jobdash.views.render import (
    FAILURE_TEXT,
    FORM_FIELDS,
    JOB_LIST,
    JOB_RUN,
    render_failure,
    render_job_form,
    render_job_list,
    render_run_shell,
)


@dataclass
class JobForm:
    """Input state of the create-job form: field values, per-field errors, status line."""

    values: Dict[str, str] = field(default_factory=lambda: {k: "" for k in FORM_FIELDS})
    errors: Dict[str, str] = field(default_factory=dict)
    status: str = ""
    status_ok: Optional[bool] = None

    def reset(self) -> None:
        self.values = {k: "" for k in FORM_FIELDS}

    def clear_errors(self) -> None:
        self.errors = {}

    def apply(self, result: MutationResult) -> None:
        # Previous error text never survives a new response.
        self.clear_errors()
        if result.success:
            self.reset()
        else:
            for fe in result.validation_error:
                self.errors[fe.target] = fe.error
        self.status = result.msg
        self.status_ok = result.success

    def html(self) -> str:
        return render_job_form(self.values, self.errors, self.status, self.status_ok)


class JobsView:
    """Job list and job run screens, plus the create/delete actions of the list."""

    def __init__(
        self,
        *,
        api: JobsApi,
        cache: CollectionCache[Job],
        display: Display,
        poller: LiveFollowPoller,
        viewport_lines: int = 40,
        audit: SessionAudit | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.display = display
        self.poller = poller
        self.viewport_lines = viewport_lines
        self.form = JobForm()
        self.surface: Optional[OutputSurface] = None
        self._audit = audit
        self._reader: Optional[asyncio.Task] = None

    def _request_failed(self, e: RequestFailed) -> None:
        if self._audit:
            self._audit.write("request.failed", {"method": e.method, "path": e.path, "reason": e.reason})

    def _render_list(self) -> str:
        return render_job_list(self.cache.current().items, self.form.html())

    async def list_jobs(self) -> None:
        ticket = self.display.claim()
        try:
            jobs = await self.api.fetch_jobs()
        except RequestFailed as e:
            self._request_failed(e)
            self.display.mount(JOB_LIST, render_failure("Jobs"), ticket=ticket)
            return
        if not self.display.is_current(ticket):
            # A newer navigation owns the display; leave the cache to it.
            self.display.discard(JOB_LIST, ticket)
            return
        self.cache.replace(jobs)
        self.display.mount(JOB_LIST, self._render_list(), ticket=ticket)

    async def submit_job(self, cmd: str, *, id: str = "") -> Optional[MutationResult]:
        self.form.values = {"id": id, "cmd": cmd}
        try:
            result = await self.api.create_job(cmd, id=id)
        except RequestFailed as e:
            self._request_failed(e)
            self.form.status = FAILURE_TEXT
            self.form.status_ok = False
            self.display.update(JOB_LIST, self._render_list())
            return None
        self.form.apply(result)
        if self._audit:
            event = "job.created" if result.success else "job.create_rejected"
            self._audit.write(event, {"cmd": cmd, "msg": result.msg, "fields": [fe.target for fe in result.validation_error]})
        self.display.update(JOB_LIST, self._render_list())
        return result

    async def delete_job(self, id: str) -> Optional[MutationResult]:
        try:
            result = await self.api.delete_job(id)
        except RequestFailed as e:
            self._request_failed(e)
            self.display.alert(FAILURE_TEXT)
            return None
        if not result.success:
            if self._audit:
                self._audit.write("job.delete_rejected", {"job_id": id, "msg": result.msg})
            self.display.alert(result.msg)
            return result
        snap = self.cache.current()
        self.cache.replace([j for j in snap.items if j.id != id], snap.cursors)
        if self._audit:
            self._audit.write("job.deleted", {"job_id": id})
        self.display.update(JOB_LIST, self._render_list())
        return result

    async def run_job(self, id: str) -> None:
        ticket = self.display.claim()
        surface = OutputSurface(job_id=id, viewport_lines=self.viewport_lines)
        if not self.display.mount(JOB_RUN, render_run_shell(surface), ticket=ticket, on_unmount=self._leave_run):
            return
        self.surface = surface
        self._reader = asyncio.get_running_loop().create_task(self._read_output(surface))
        self.poller.start(id, surface)

    def _leave_run(self) -> None:
        self.poller.stop()
        reader, self._reader = self._reader, None
        if reader is not None and not reader.done():
            reader.cancel()
        self.surface = None

    async def _read_output(self, surface: OutputSurface) -> None:
        stream = self.api.stream_run(surface.job_id)
        try:
            async for chunk in stream:
                surface.append(chunk)
                self.display.update(JOB_RUN, render_run_shell(surface))
        except RequestFailed as e:
            self._request_failed(e)
            surface.error = FAILURE_TEXT
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        surface.closed = True
        self.display.update(JOB_RUN, render_run_shell(surface))
