from __future__ import annotations

import html
from datetime import datetime
from typing import Dict, Iterable, Optional
from urllib.parse import quote

from jobdash.models import Job, LogEntry, PageCursors
from jobdash.views.display import OutputSurface

# Screen names double as the render target owner.
JOB_LIST = "jobList"
JOB_RUN = "jobRun"
LOG_LIST = "logList"
LOG_DETAIL = "logDetail"

FAILURE_TEXT = "request failed"

FORM_FIELDS = ("id", "cmd")


def _e(v: object) -> str:
    return html.escape("" if v is None else str(v))


def _seg(v: object) -> str:
    """One href path segment: percent-encoded so the router decodes it back intact."""
    return html.escape(quote("" if v is None else str(v), safe=""))


def _field_error(name: str, error: str) -> str:
    return f'<span class="false {_e(name)}">{_e(error)}</span>'


def _ts(v: Optional[datetime]) -> str:
    return v.strftime("%Y-%m-%d %H:%M:%S") if v else ""


def render_breadcrumbs(label: Optional[str]) -> str:
    if not label:
        return ""
    return f'<ul class="breadcrumb"><li><a href="#listLogs">Home</a></li><li class="active">{_e(label)}</li></ul>'


def render_failure(title: str, message: str = FAILURE_TEXT) -> str:
    return f"""<div class="screen failed">
  <h3>{_e(title)}</h3>
  <div class="alert false">{_e(message)}</div>
</div>"""


def render_job_form(values: Dict[str, str], errors: Dict[str, str], status: str = "", status_ok: Optional[bool] = None) -> str:
    status_cls = "success" if status_ok is None else f"success {str(status_ok).lower()}"
    # Errors for targets outside the form still land next to the form.
    extra = "".join(_field_error(k, v) for k, v in errors.items() if k not in FORM_FIELDS)
    return f"""<form class="jobForm">
  <input type="hidden" name="id" value="{_e(values.get("id", ""))}" />
  {_field_error("id", errors.get("id", ""))}
  <label>Command <input type="text" name="cmd" value="{_e(values.get("cmd", ""))}" /></label>
  {_field_error("cmd", errors.get("cmd", ""))}{extra}
  <button type="submit">Add job</button>
  <span class="{status_cls}">{_e(status)}</span>
</form>"""


def render_job_row(job: Job) -> str:
    return (
        f'<tr data-id="{_e(job.id)}">'
        f"<td>{_e(job.id)}</td>"
        f'<td class="mono">{_e(job.cmd)}</td>'
        f'<td><a href="#runJob/{_seg(job.id)}">run</a></td>'
        f'<td><a href="#listLogs/job/{_seg(job.id)}">logs</a></td>'
        f'<td><button class="delete" data-id="{_e(job.id)}">delete</button></td>'
        "</tr>"
    )


def render_job_list(jobs: Iterable[Job], form_html: str) -> str:
    rows = "\n".join(render_job_row(j) for j in jobs)
    return f"""<div class="screen {JOB_LIST}">
  <h3>Jobs</h3>
  <table id="jobsGrid">
{rows}
  </table>
  {form_html}
</div>"""


def render_run_shell(surface: OutputSurface) -> str:
    state = "finished" if surface.closed else "running"
    err = f'<div class="alert false">{_e(surface.error)}</div>' if surface.error else ""
    return f"""<div class="screen {JOB_RUN}" data-job="{_e(surface.job_id)}">
  <h3>Run job <span class="mono">{_e(surface.job_id)}</span> <span class="pill">{state}</span></h3>
  {err}
  <pre id="jobBody" class="mono" data-scroll="{surface.scroll_top}">{_e(surface.visible())}</pre>
</div>"""


def render_paging(cursors: PageCursors) -> str:
    if not cursors.paged:
        return ""
    prev = f'<a class="prev" href="#listLogs/page/{cursors.previous_page}">previous</a>' if cursors.previous_page else ""
    nxt = f'<a class="next" href="#listLogs/page/{cursors.next_page}">next</a>' if cursors.next_page else ""
    return f'<div class="pager">{prev} {nxt}</div>'


def render_log_row(entry: LogEntry) -> str:
    job = f'<a href="#listLogs/job/{_seg(entry.job)}">{_e(entry.job)}</a>' if entry.job else ""
    status = "" if entry.status is None or not entry.finished else _e(entry.status)
    return (
        f'<tr data-id="{_e(entry.id)}">'
        f'<td><a href="#viewLog/{_seg(entry.id)}">{_e(entry.id)}</a></td>'
        f"<td>{job}</td>"
        f"<td>{_e(entry.user)}</td>"
        f"<td>{_ts(entry.start)}</td>"
        f"<td>{_ts(entry.end)}</td>"
        f"<td>{status}</td>"
        "</tr>"
    )


def render_log_list(entries: Iterable[LogEntry], cursors: PageCursors, *, job: Optional[str] = None) -> str:
    rows = "\n".join(render_log_row(e) for e in entries)
    title = f"Logs for {_e(job)}" if job else "Logs"
    total = f'<span class="pill">{cursors.length} total</span>' if cursors.length is not None else ""
    return f"""<div class="screen {LOG_LIST}">
  <h3>{title} {total}</h3>
  <table id="logsGrid">
{rows}
  </table>
  {render_paging(cursors)}
</div>"""


def render_log_detail(entry: LogEntry) -> str:
    return f"""<div class="screen {LOG_DETAIL}" data-id="{_e(entry.id)}">
  <pre class="mono">{_e(entry.body or "")}</pre>
</div>"""
