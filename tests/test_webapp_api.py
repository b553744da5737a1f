"""Tests for the refresh trigger HTTP interface."""

from __future__ import annotations

import importlib
from typing import Dict, List

from fastapi.testclient import TestClient

from core import RefreshResponse, RefreshRun

webapp_module = importlib.import_module("webapp.app")
runtime_module = importlib.import_module("webapp.runtime")


class FakeService:
    def __init__(self) -> None:
        self.triggered: List[str] = []
        self.runs: Dict[str, RefreshRun] = {}

    def trigger(self) -> RefreshResponse:
        request_id = f"refresh_20251020_120000_{len(self.triggered):08d}"
        self.triggered.append(request_id)
        self.runs[request_id] = RefreshRun(request_id=request_id, state="completed", successful=5)
        return RefreshResponse(
            success=True,
            message="Content refresh started",
            request_id=request_id,
            started_at="2025-10-20T12:00:00+00:00",
        )

    def get_run(self, request_id: str):
        return self.runs.get(request_id)

    async def freshness(self):
        return [{"source": "gnews_comprehensive", "content_type": "news", "status": "critical"}]


def _client(monkeypatch, service=None, tokens=("service-key", "worker-token")) -> TestClient:
    monkeypatch.setattr(runtime_module, "get_auth_tokens", lambda: list(tokens))
    monkeypatch.setattr(runtime_module, "get_service", lambda: service or FakeService())
    return TestClient(webapp_module.app)


def test_health() -> None:
    client = TestClient(webapp_module.app)
    body = client.get("/health").json()
    assert body["ok"] is True


def test_trigger_with_service_key_starts_run(monkeypatch) -> None:
    service = FakeService()
    client = _client(monkeypatch, service)

    resp = client.post("/refresh_content", headers={"Authorization": "Bearer service-key"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Content refresh started"
    assert body["request_id"] == service.triggered[0]
    assert body["started_at"] == "2025-10-20T12:00:00+00:00"
    assert "error" not in body


def test_trigger_accepts_worker_token(monkeypatch) -> None:
    service = FakeService()
    client = _client(monkeypatch, service)

    resp = client.post("/refresh_content", headers={"Authorization": "bearer worker-token"})

    assert resp.json()["success"] is True
    assert len(service.triggered) == 1


def test_bad_or_missing_token_is_rejected_with_200(monkeypatch) -> None:
    service = FakeService()
    client = _client(monkeypatch, service)

    for headers in ({"Authorization": "Bearer wrong"}, {"Authorization": "service-key"}, {}):
        resp = client.post("/refresh_content", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Unauthorized"

    assert service.triggered == []


def test_no_configured_tokens_rejects_everything(monkeypatch) -> None:
    client = _client(monkeypatch, tokens=())

    resp = client.post("/refresh_content", headers={"Authorization": "Bearer anything"})

    assert resp.json()["success"] is False


def test_trigger_failure_is_reported_in_body(monkeypatch) -> None:
    class BrokenService(FakeService):
        def trigger(self) -> RefreshResponse:
            raise RuntimeError("pipeline not configured")

    client = _client(monkeypatch, BrokenService())

    resp = client.post("/refresh_content", headers={"Authorization": "Bearer service-key"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert "pipeline not configured" in body["error"]


def test_run_status_lookup(monkeypatch) -> None:
    service = FakeService()
    client = _client(monkeypatch, service)
    auth = {"Authorization": "Bearer service-key"}
    request_id = client.post("/refresh_content", headers=auth).json()["request_id"]

    found = client.get(f"/refresh_content/{request_id}", headers=auth)
    missing = client.get("/refresh_content/refresh_unknown", headers=auth)
    unauthorized = client.get(f"/refresh_content/{request_id}")

    assert found.status_code == 200
    assert found.json()["state"] == "completed"
    assert found.json()["successful"] == 5
    assert missing.status_code == 404
    assert unauthorized.status_code == 401


def test_freshness_requires_token_and_lists_sources(monkeypatch) -> None:
    client = _client(monkeypatch)

    assert client.get("/freshness").status_code == 401

    resp = client.get("/freshness", headers={"Authorization": "Bearer worker-token"})
    assert resp.status_code == 200
    assert resp.json() == [{"source": "gnews_comprehensive", "content_type": "news", "status": "critical"}]
