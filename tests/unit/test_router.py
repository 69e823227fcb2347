from __future__ import annotations

import asyncio
from typing import Any, List, Tuple

import pytest

from jobdash.router import Router, compile_pattern, normalize_path


def _recording_router() -> Tuple[Router, List[Tuple[str, Tuple[Any, ...]]]]:
    calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def h(name: str):
        async def _handler(*args: Any) -> None:
            calls.append((name, args))

        return _handler

    r = Router()
    r.add_route("listLogs", "listLogs", h("listLogs"))
    r.add_route("listLogs/job/:id", "listLogsByJob", h("listLogsByJob"))
    r.add_route("listLogs/page/:page", "listLogsPage", h("listLogsPage"), converters={"page": int})
    r.add_route("viewLog/:id", "viewLog", h("viewLog"))
    r.add_route("listJobs", "listJobs", h("listJobs"))
    r.add_route("runJob/:id", "runJob", h("runJob"))
    return r, calls


@pytest.mark.parametrize(
    "path,expected",
    [
        ("listLogs", ("listLogs", ())),
        ("listLogs/job/deploy", ("listLogsByJob", ("deploy",))),
        ("listLogs/page/2", ("listLogsPage", (2,))),
        ("viewLog/17", ("viewLog", ("17",))),
        ("listJobs", ("listJobs", ())),
        ("runJob/abc123", ("runJob", ("abc123",))),
    ],
)
def test_each_route_invokes_exactly_one_handler_with_typed_args(path: str, expected: tuple) -> None:
    r, calls = _recording_router()
    assert asyncio.run(r.navigate(path)) is True
    assert calls == [expected]
    assert r.current == path
    assert r.current_route is not None and r.current_route.name == expected[0]


def test_page_argument_is_an_int() -> None:
    r, calls = _recording_router()
    asyncio.run(r.navigate("#listLogs/page/12"))
    (_, args), = calls
    assert args == (12,)
    assert isinstance(args[0], int)


def test_unmatched_path_is_a_noop() -> None:
    r, calls = _recording_router()
    assert asyncio.run(r.navigate("nope/where")) is False
    # Non-numeric page does not satisfy the int segment.
    assert asyncio.run(r.navigate("listLogs/page/abc")) is False
    # Segments never span slashes and the whole path must match.
    assert asyncio.run(r.navigate("viewLog/1/2")) is False
    assert asyncio.run(r.navigate("listJobsX")) is False
    assert calls == []
    assert r.current_route is None


def test_navigate_without_trigger_only_records_location() -> None:
    r, calls = _recording_router()
    assert asyncio.run(r.navigate("listJobs", trigger=False)) is False
    assert calls == []
    assert r.current == "listJobs"


def test_first_matching_pattern_wins() -> None:
    calls: List[str] = []
    r = Router()
    r.add_route("viewLog/:id", "first", lambda id: calls.append(f"first:{id}"))
    r.add_route("viewLog/:name", "second", lambda name: calls.append(f"second:{name}"))
    asyncio.run(r.navigate("viewLog/x"))
    assert calls == ["first:x"]


def test_sync_handlers_are_supported() -> None:
    seen: List[str] = []
    r = Router()
    r.add_route("runJob/:id", "runJob", seen.append)
    asyncio.run(r.navigate("/runJob/a%20b/"))
    assert seen == ["a b"]


def test_back_and_forward_redispatch_history() -> None:
    r, calls = _recording_router()

    async def scenario() -> None:
        await r.navigate("listLogs")
        await r.navigate("viewLog/3")
        assert await r.back() is True
        assert r.current == "listLogs"
        assert await r.forward() is True
        assert r.current == "viewLog/3"
        assert await r.forward() is False

    asyncio.run(scenario())
    assert [c[0] for c in calls] == ["listLogs", "viewLog", "listLogs", "viewLog"]


def test_breadcrumb_labels() -> None:
    r, _ = _recording_router()
    assert r.breadcrumb("listLogs") == "Logs"
    assert r.breadcrumb("viewLog/9") == "viewLog"
    assert r.breadcrumb("runJob/x") == "Run job"
    assert r.breadcrumb("listJobs") is None
    assert r.breadcrumb("listLogs/page/2") is None


def test_compile_pattern_rejects_duplicate_segments() -> None:
    with pytest.raises(ValueError):
        compile_pattern("a/:id/:id")


def test_normalize_path_strips_hash_and_slashes() -> None:
    assert normalize_path("#/listJobs/") == "listJobs"
    assert normalize_path("") == ""
