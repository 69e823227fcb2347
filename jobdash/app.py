from __future__ import annotations

from dataclasses import dataclass

import httpx

from jobdash.api.client import ApiSession, JobResource, LogResource
from jobdash.cache import CollectionCache, job_cache, log_cache
from jobdash.models import Job, LogEntry
from jobdash.poller import LiveFollowPoller
from jobdash.router import Router
from jobdash.settings import Settings
from jobdash.telemetry.audit import AuditLogger, SessionAudit
from jobdash.views.display import Display
from jobdash.views.jobs import JobsView
from jobdash.views.logs import LogsView
from jobdash.views.render import render_breadcrumbs


@dataclass
class DashboardApp:
    """
    Application context: built once at startup and handed by reference to
    every component. There is no other shared state.
    """

    settings: Settings
    audit: SessionAudit
    display: Display
    router: Router
    jobs_api: JobResource
    logs_api: LogResource
    job_cache: CollectionCache[Job]
    log_cache: CollectionCache[LogEntry]
    poller: LiveFollowPoller
    jobs_view: JobsView
    logs_view: LogsView

    async def start(self) -> None:
        self.audit.write("app.started", {"base_url": self.settings.base_url, "default_route": self.settings.default_route})
        await self.router.navigate(self.settings.default_route)

    async def navigate(self, path: str, *, trigger: bool = True) -> bool:
        return await self.router.navigate(path, trigger=trigger)

    def page_html(self) -> str:
        crumbs = render_breadcrumbs(self.router.breadcrumb(self.router.current or ""))
        return crumbs + self.display.html

    def close(self) -> None:
        self.display.unmount()


def register_routes(router: Router, jobs_view: JobsView, logs_view: LogsView) -> None:
    router.add_route("listLogs", "listLogs", logs_view.list_logs)
    router.add_route("listLogs/job/:id", "listLogsByJob", logs_view.list_logs_by_job)
    router.add_route("listLogs/page/:page", "listLogsPage", logs_view.list_logs_page, converters={"page": int})
    router.add_route("viewLog/:id", "viewLog", logs_view.view_log)
    router.add_route("listJobs", "listJobs", jobs_view.list_jobs)
    router.add_route("runJob/:id", "runJob", jobs_view.run_job)


def create_app(settings: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> DashboardApp:
    """
    App factory. Tests pass a custom transport (MockTransport or ASGITransport
    over the mock backend) instead of talking to a live server.
    """
    s = settings or Settings()
    audit = SessionAudit(AuditLogger(s.audit_log_path))
    display = Display(audit=audit)
    router = Router(audit=audit)
    session = ApiSession(base_url=s.base_url, timeout_s=s.timeout_s, transport=transport)
    jobs_api = JobResource(session)
    logs_api = LogResource(session)
    jobs = job_cache()
    logs = log_cache()
    poller = LiveFollowPoller(interval_s=s.follow_interval_s, scroll_step=s.follow_scroll_step, audit=audit)
    jobs_view = JobsView(
        api=jobs_api,
        cache=jobs,
        display=display,
        poller=poller,
        viewport_lines=s.output_viewport_lines,
        audit=audit,
    )
    logs_view = LogsView(api=logs_api, cache=logs, display=display, audit=audit)
    register_routes(router, jobs_view, logs_view)
    return DashboardApp(
        settings=s,
        audit=audit,
        display=display,
        router=router,
        jobs_api=jobs_api,
        logs_api=logs_api,
        job_cache=jobs,
        log_cache=logs,
        poller=poller,
        jobs_view=jobs_view,
        logs_view=logs_view,
    )
