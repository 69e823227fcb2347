from __future__ import annotations

import asyncio
import fnmatch
import itertools
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from fastapi import FastAPI, Query
from fastapi.responses import StreamingResponse

PAGE_SIZE = 50
ZERO_TIME = "0001-01-01T00:00:00Z"
SEPARATOR = "\n==========================\n\n"
KILLED_STATUS = -1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: Optional[datetime]) -> str:
    if dt is None:
        return ZERO_TIME
    return dt.isoformat().replace("+00:00", "Z")


def _excluded(name: str, patterns: Iterable[str]) -> bool:
    return any(p and fnmatch.fnmatch(name, p) for p in patterns)


@dataclass
class LogRecord:
    id: str
    name: str
    user: str
    start: datetime
    end: Optional[datetime] = None
    status: Optional[int] = None
    body: str = ""

    def summary(self) -> Dict[str, Any]:
        return {
            "Id": self.id,
            "Name": self.name,
            "User": self.user,
            "Start": _iso(self.start),
            "End": _iso(self.end),
            "Status": self.status,
        }


@dataclass
class BackendState:
    jobs: Dict[str, str] = field(default_factory=dict)
    outputs: Dict[str, List[str]] = field(default_factory=dict)
    logs: List[LogRecord] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    line_delay_s: float = 0.0
    _job_ids: Any = field(default_factory=lambda: itertools.count(1))
    _log_ids: Any = field(default_factory=lambda: itertools.count(1))

    def visible_jobs(self) -> List[Dict[str, str]]:
        return [{"id": jid, "cmd": cmd} for jid, cmd in self.jobs.items() if not _excluded(jid, self.exclude)]

    def next_job_id(self) -> str:
        while True:
            jid = f"job{next(self._job_ids)}"
            if jid not in self.jobs:
                return jid

    def new_log(self, name: str, user: str = "Anonymous") -> LogRecord:
        rec = LogRecord(id=str(next(self._log_ids)), name=name, user=user, start=_utc_now())
        self.logs.append(rec)
        return rec

    def find_log(self, id: str) -> Optional[LogRecord]:
        for rec in self.logs:
            if rec.id == id:
                return rec
        return None


def create_app(
    jobs: Optional[Dict[str, str]] = None,
    *,
    outputs: Optional[Dict[str, List[str]]] = None,
    exclude: Optional[str] = None,
    line_delay_s: float = 0.0,
) -> FastAPI:
    """
    In-memory stand-in for the job/log backend the dashboard talks to.

    - /jobs, /addJob, /deleteJob manage the job table
    - /run/{id} streams a job's canned output and records a log entry;
      runs are serialized one at a time
    - /logs pages through log summaries (newest first) or returns one body by id
    """
    excl = exclude if exclude is not None else os.getenv("MOCK_API_EXCLUDE", "")
    state = BackendState(
        jobs=dict(jobs if jobs is not None else {"deploy": "deploy", "backup": "backup"}),
        outputs=dict(outputs or {}),
        exclude=[p.strip() for p in excl.split(",") if p.strip()],
        line_delay_s=line_delay_s,
    )
    run_lock = asyncio.Lock()

    app = FastAPI(title="jobdash mock backend", version="0.1.0")
    app.state.backend = state

    @app.get("/jobs")
    def list_jobs() -> List[Dict[str, str]]:
        return state.visible_jobs()

    @app.get("/addJob")
    def add_job(id: str = Query(""), cmd: str = Query("")) -> Dict[str, Any]:
        cmd = cmd.strip()
        errors: List[Dict[str, str]] = []
        if not cmd:
            errors.append({"target": "cmd", "error": "required"})
        elif any(c == cmd and jid != id for jid, c in state.jobs.items()):
            errors.append({"target": "cmd", "error": "already exists"})
        if id and id not in state.jobs:
            return {"success": False, "msg": f"Job {id} not found"}
        if errors:
            return {"success": False, "msg": "Job not saved", "validationError": errors}
        jid = id or state.next_job_id()
        state.jobs[jid] = cmd
        return {"success": True, "msg": "Job saved", "id": jid}

    @app.get("/deleteJob")
    def delete_job(id: str = Query("")) -> Dict[str, Any]:
        if id not in state.jobs:
            return {"success": False, "msg": f"Job {id} not found"}
        del state.jobs[id]
        return {"success": True, "msg": "Job deleted"}

    @app.get("/logs")
    def logs(
        id: Optional[str] = Query(None),
        job: Optional[str] = Query(None),
        page: Optional[int] = Query(None),
    ) -> Dict[str, Any]:
        if id:
            rec = state.find_log(id)
            # Unknown ids read as an empty body.
            return {"body": rec.body if rec else ""}
        entries = [r for r in reversed(state.logs) if not job or r.name == job]
        window = entries[:PAGE_SIZE]
        if page is not None:
            start = max(0, (int(page) - 1) * PAGE_SIZE)
            window = entries[start : start + PAGE_SIZE]
        return {"Entries": [r.summary() for r in window], "Length": len(entries)}

    @app.get("/run/{job_id}")
    async def run(job_id: str) -> StreamingResponse:
        async def _stream() -> AsyncIterator[str]:
            async with run_lock:
                rec = state.new_log(job_id)
                try:
                    first = f"Started at {rec.start.strftime('%a %b %d %H:%M:%S %Y')} by {rec.user}"
                    rec.body = first + SEPARATOR
                    yield rec.body
                    if job_id not in state.jobs or _excluded(job_id, state.exclude):
                        msg = "Command not found\n"
                        rec.body += msg
                        rec.status = 127
                        yield msg
                        return
                    lines = state.outputs.get(job_id) or [f"running {state.jobs[job_id]}", "done"]
                    for ln in lines:
                        if state.line_delay_s:
                            await asyncio.sleep(state.line_delay_s)
                        chunk = ln + "\n"
                        rec.body += chunk
                        yield chunk
                    rec.status = 0
                finally:
                    # A client that hangs up mid-run leaves a killed run, not a running one.
                    if rec.status is None:
                        rec.status = KILLED_STATUS
                    rec.end = _utc_now()

        return StreamingResponse(_stream(), media_type="text/plain")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


app = create_app()
