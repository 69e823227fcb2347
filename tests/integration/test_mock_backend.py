from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from mock_api.app import KILLED_STATUS, PAGE_SIZE, create_app


def test_job_table_add_and_delete() -> None:
    client = TestClient(create_app({"deploy": "deploy"}))

    assert client.get("/jobs").json() == [{"id": "deploy", "cmd": "deploy"}]

    r = client.get("/addJob", params={"id": "", "cmd": ""}).json()
    assert r["success"] is False
    assert r["validationError"] == [{"target": "cmd", "error": "required"}]

    r = client.get("/addJob", params={"cmd": "deploy"}).json()
    assert r["validationError"] == [{"target": "cmd", "error": "already exists"}]

    r = client.get("/addJob", params={"cmd": "cleanup"}).json()
    assert r["success"] is True
    new_id = r["id"]
    assert {"id": new_id, "cmd": "cleanup"} in client.get("/jobs").json()

    assert client.get("/deleteJob", params={"id": new_id}).json()["success"] is True
    r = client.get("/deleteJob", params={"id": new_id}).json()
    assert r == {"success": False, "msg": f"Job {new_id} not found"}


def test_update_of_unknown_job_is_rejected() -> None:
    client = TestClient(create_app({}))
    r = client.get("/addJob", params={"id": "ghost", "cmd": "x"}).json()
    assert r["success"] is False
    assert "not found" in r["msg"]


def test_excluded_jobs_are_hidden_and_not_runnable() -> None:
    client = TestClient(create_app({"deploy": "deploy", "build.pyc": "build.pyc"}, exclude="*.pyc,a.out"))
    assert [j["id"] for j in client.get("/jobs").json()] == ["deploy"]

    text = client.get("/run/build.pyc").text
    assert "Command not found" in text
    (entry,) = client.get("/logs").json()["Entries"]
    assert entry["Status"] == 127


def test_run_records_a_log_with_body() -> None:
    client = TestClient(create_app({"deploy": "deploy"}, outputs={"deploy": ["one", "two"]}))
    text = client.get("/run/deploy").text
    assert text.startswith("Started at ")
    assert text.endswith("one\ntwo\n")

    listing = client.get("/logs").json()
    assert listing["Length"] == 1
    (entry,) = listing["Entries"]
    assert entry["Name"] == "deploy"
    assert entry["Status"] == 0
    assert entry["End"] != "0001-01-01T00:00:00Z"
    assert "Body" not in entry

    assert client.get("/logs", params={"id": entry["Id"]}).json() == {"body": text}
    assert client.get("/logs", params={"id": "999"}).json() == {"body": ""}


def test_logs_are_paged_newest_first_and_filterable() -> None:
    app = create_app({"deploy": "deploy"})
    state = app.state.backend
    for i in range(PAGE_SIZE + 5):
        state.new_log("deploy" if i % 2 else "backup")
    client = TestClient(app)

    first = client.get("/logs").json()
    assert first["Length"] == PAGE_SIZE + 5
    assert len(first["Entries"]) == PAGE_SIZE
    assert first["Entries"][0]["Id"] == str(PAGE_SIZE + 5)

    second = client.get("/logs", params={"page": 2}).json()
    assert [e["Id"] for e in second["Entries"]] == ["5", "4", "3", "2", "1"]

    beyond = client.get("/logs", params={"page": 9}).json()
    assert beyond["Entries"] == []

    backups = client.get("/logs", params={"job": "backup"}).json()
    assert backups["Length"] == 28
    assert {e["Name"] for e in backups["Entries"]} == {"backup"}


def test_run_dropped_by_the_client_is_finished_as_killed() -> None:
    app = create_app({"deploy": "deploy"}, outputs={"deploy": ["one", "two", "three"]}, line_delay_s=0.05)
    state = app.state.backend
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/run/deploy",
        "raw_path": b"/run/deploy",
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }

    async def scenario() -> None:
        hung_up = asyncio.Event()

        async def receive() -> dict:
            await hung_up.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict) -> None:
            if message["type"] == "http.response.body" and message.get("body"):
                hung_up.set()

        await app(scope, receive, send)

    asyncio.run(scenario())
    (rec,) = state.logs
    assert rec.status == KILLED_STATUS
    assert rec.end is not None
    assert "three" not in rec.body
    (entry,) = TestClient(app).get("/logs").json()["Entries"]
    assert entry["End"] != "0001-01-01T00:00:00Z"
    assert entry["Status"] == KILLED_STATUS
