# ruff: noqa: INP001
"""End-to-end behavior of the task read/write API and live channel."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tasksync.core.auth_mode import AuthMode
from tasksync.core.config import Settings
from tasksync.main import create_app


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    return Settings(
        _env_file=None,
        auth_mode=AuthMode.DISABLED,
        data_file=tmp_path / "data" / "tasks.json",
        **overrides,
    )


def _read_file(tmp_path: Path) -> dict[str, object]:
    return json.loads((tmp_path / "data" / "tasks.json").read_text(encoding="utf-8"))


def test_startup_bootstraps_store_and_read_is_not_cached(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        resp = client.get("/api/tasks")

    assert resp.status_code == 200
    assert resp.json() == {"version": 1, "tasks": []}
    assert resp.headers["cache-control"] == "no-store"
    assert _read_file(tmp_path) == {"version": 1, "tasks": []}


def test_save_clamps_percent(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        resp = client.post(
            "/api/save",
            json={"tasks": [{"id": "1", "title": "x", "mode": "manual", "percent": 150}]},
        )
        board = client.get("/api/tasks").json()

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "version": 2}
    assert board["version"] == 2
    assert board["tasks"][0]["percent"] == 100
    assert _read_file(tmp_path)["tasks"][0]["percent"] == 100  # type: ignore[index]


def test_save_swaps_inverted_time_window(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        client.post(
            "/api/save",
            json={
                "tasks": [
                    {"id": "2", "mode": "time", "start": "2024-01-10", "end": "2024-01-01"},
                ],
            },
        )
        (task,) = client.get("/api/tasks").json()["tasks"]

    assert task["start"].startswith("2024-01-01")
    assert task["end"].startswith("2024-01-10")
    assert task["percent"] == 0


def test_empty_list_clears_board_and_notifies_live_clients(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        client.post("/api/save", json={"tasks": [{"id": "1"}, {"id": "2"}]})
        with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
            assert first.receive_json()["type"] == "init"
            init = second.receive_json()
            assert init["version"] == 2
            assert len(init["tasks"]) == 2

            resp = client.post("/api/save", json={"tasks": []})

            assert resp.json() == {"ok": True, "version": 3}
            for websocket in (first, second):
                assert websocket.receive_json() == {"type": "set", "version": 3, "tasks": []}

    assert _read_file(tmp_path) == {"version": 3, "tasks": []}


@pytest.mark.parametrize(
    "body",
    [
        {"tasks": "not-a-list"},
        {"tasks": {"id": "1"}},
        {"tasks": None},
        {},
        ["not", "an", "object"],
    ],
)
def test_non_list_tasks_rejected_without_state_change(tmp_path: Path, body: object) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            resp = client.post("/api/save", json=body)
            # The next frame must be the set from the follow-up write, not one from the rejected call.
            client.post("/api/save", json={"tasks": [{"id": "after"}]})
            event = websocket.receive_json()

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid tasks payload"
    assert isinstance(resp.json()["request_id"], str)
    assert event["type"] == "set"
    assert event["version"] == 2


def test_invalid_json_body_is_a_client_error(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        resp = client.post(
            "/api/save",
            content=b"{tasks: nope",
            headers={"content-type": "application/json"},
        )
        version = client.get("/api/tasks").json()["version"]

    assert resp.status_code == 400
    assert version == 1


def test_oversized_body_is_rejected(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path, max_body_bytes=64))) as client:
        resp = client.post("/api/save", json={"tasks": [{"id": "x", "desc": "d" * 200}]})
        version = client.get("/api/tasks").json()["version"]

    assert resp.status_code == 413
    assert version == 1


def test_storage_failure_returns_500_and_keeps_previous_version(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path)), raise_server_exceptions=False) as client:
        data_file = tmp_path / "data" / "tasks.json"
        data_file.unlink()
        data_file.mkdir()

        resp = client.post("/api/save", json={"tasks": [{"id": "1"}]})
        board = client.get("/api/tasks").json()

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Task storage unavailable"
    assert board == {"version": 1, "tasks": []}


def test_duplicate_ids_and_invalid_elements(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        client.post(
            "/api/save",
            json={"tasks": [{"id": "a", "title": "1"}, {"title": "x"}, 5, {"id": "a", "title": "2"}]},
        )
        tasks = client.get("/api/tasks").json()["tasks"]

    assert [(task["id"], task["title"]) for task in tasks] == [("a", "1"), ("a", "2")]


def test_state_survives_restart(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    with TestClient(create_app(settings)) as client:
        client.post("/api/save", json={"tasks": [{"id": "keep", "c1": "#123"}]})

    with TestClient(create_app(settings)) as client:
        board = client.get("/api/tasks").json()

    assert board["version"] == 2
    assert board["tasks"][0]["id"] == "keep"
    assert board["tasks"][0]["c1"] == "#123"


def test_auth_status_reports_open_access_when_disabled(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        resp = client.get("/api/auth/status")
        login = client.get("/login")

    assert resp.json() == {"authenticated": True, "username": None}
    assert login.status_code == 404


def test_health_routes_report_ok(tmp_path: Path) -> None:
    with TestClient(create_app(_settings(tmp_path))) as client:
        for path in ("/health", "/healthz", "/readyz"):
            resp = client.get(path)
            assert resp.status_code == 200
            assert resp.json() == {"ok": True}


def test_body_limit_comes_from_each_app_settings(tmp_path: Path) -> None:
    payload = {"tasks": [{"id": "x", "desc": "d" * 200}]}
    strict = create_app(_settings(tmp_path / "strict", max_body_bytes=64))
    relaxed = create_app(_settings(tmp_path / "relaxed", max_body_bytes=4096))

    with TestClient(strict) as strict_client, TestClient(relaxed) as relaxed_client:
        rejected = strict_client.post("/api/save", json=payload)
        accepted = relaxed_client.post("/api/save", json=payload)

    assert rejected.status_code == 413
    assert accepted.status_code == 200
    assert accepted.json()["version"] == 2
