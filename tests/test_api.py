"""HTTP contract tests for the memory service."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app.main import app, get_store


PREFIXES = ["", "/api"]


def _start(http, prefix: str = "/api", session_id: str = "sess_test") -> dict:
    response = http.post(f"{prefix}/session/start", json={"sessionId": session_id})
    assert response.status_code == 200
    return response.json()


def test_health(http):
    response = http.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["time"]


@pytest.mark.parametrize("prefix", PREFIXES)
class TestSessionStart:
    def test_start_shape(self, http, prefix):
        data = _start(http, prefix)
        assert data["sessionId"] == "sess_test"
        assert data["memoryId"].startswith("mem_")
        assert data["memoryVersion"] == 1
        assert data["items"] == []

    def test_start_idempotent(self, http, prefix):
        assert _start(http, prefix)["memoryId"] == _start(http, prefix)["memoryId"]

    def test_owner_hint_accepted(self, http, prefix):
        response = http.post(f"{prefix}/session/start", json={"sessionId": "s2", "ownerHint": "pete"})
        assert response.status_code == 200

    @pytest.mark.parametrize("body", [{}, {"sessionId": ""}, {"ownerHint": "x"}])
    def test_missing_session_id(self, http, prefix, body):
        response = http.post(f"{prefix}/session/start", json=body)
        assert response.status_code == 400
        assert "sessionId" in response.json()["error"]

    def test_malformed_body(self, http, prefix):
        response = http.post(
            f"{prefix}/session/start",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400


@pytest.mark.parametrize("prefix", PREFIXES)
class TestMemory:
    def test_upsert_then_get(self, http, prefix):
        memory_id = _start(http, prefix)["memoryId"]
        response = http.post(
            f"{prefix}/memory/upsert",
            json={
                "memoryId": memory_id,
                "baseVersion": 1,
                "patch": [{"type": "preference", "key": "tone", "value": "short"}],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["memoryVersion"] == 2
        assert data["updatedAt"]
        item = data["items"][0]
        assert (item["type"], item["key"], item["value"], item["confidence"]) == (
            "preference",
            "tone",
            "short",
            "medium",
        )
        assert item["lastUpdated"]

        fetched = http.get(f"{prefix}/memory", params={"memoryId": memory_id}).json()
        assert fetched == data

    def test_get_missing_id(self, http, prefix):
        response = http.get(f"{prefix}/memory")
        assert response.status_code == 400

    def test_get_unknown_id(self, http, prefix):
        response = http.get(f"{prefix}/memory", params={"memoryId": "mem_nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "memory not found"}

    @pytest.mark.parametrize(
        "patch",
        [
            [],
            [{"type": "preference", "key": "tone"}],
            "tone=short",
            None,
            [{"type": "preference", "key": "tone", "value": {}}],
            [{"type": "preference", "key": "tone", "value": []}],
            [{"type": "preference", "key": "tone", "value": True}],
            [{"type": "preference", "key": "tone", "value": 5}],
            [{"type": "preference", "key": "tone", "value": {"nested": [1]}}],
        ],
    )
    def test_upsert_invalid_patch(self, http, prefix, patch):
        memory_id = _start(http, prefix)["memoryId"]
        response = http.post(f"{prefix}/memory/upsert", json={"memoryId": memory_id, "patch": patch})
        assert response.status_code == 400
        fetched = http.get(f"{prefix}/memory", params={"memoryId": memory_id}).json()
        assert fetched["memoryVersion"] == 1

    def test_upsert_unknown_id(self, http, prefix):
        response = http.post(
            f"{prefix}/memory/upsert",
            json={"memoryId": "mem_nope", "patch": [{"type": "a", "key": "b", "value": "c"}]},
        )
        assert response.status_code == 404

    def test_reset_by_memory_id(self, http, prefix):
        memory_id = _start(http, prefix)["memoryId"]
        http.post(
            f"{prefix}/memory/upsert",
            json={"memoryId": memory_id, "patch": [{"type": "a", "key": "b", "value": "c"}]},
        )
        response = http.post(f"{prefix}/memory/reset", json={"memoryId": memory_id})
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        fetched = http.get(f"{prefix}/memory", params={"memoryId": memory_id}).json()
        assert fetched["items"] == []
        assert fetched["memoryVersion"] == 3

    def test_reset_by_session(self, http, prefix):
        memory_id = _start(http, prefix)["memoryId"]
        http.post(
            f"{prefix}/memory/upsert",
            json={"memoryId": memory_id, "patch": [{"type": "a", "key": "b", "value": "c"}]},
        )
        response = http.post(f"{prefix}/memory/reset", json={"sessionId": "sess_test"})
        assert response.status_code == 200
        assert http.get(f"{prefix}/memory", params={"memoryId": memory_id}).json()["items"] == []

    def test_reset_errors(self, http, prefix):
        assert http.post(f"{prefix}/memory/reset", json={}).status_code == 400
        assert http.post(f"{prefix}/memory/reset", json={"memoryId": "mem_nope"}).status_code == 404
        assert http.post(f"{prefix}/memory/reset", json={"sessionId": "nobody"}).status_code == 404


def test_bare_and_api_routes_share_state(http):
    memory_id = _start(http, "")["memoryId"]
    assert _start(http, "/api")["memoryId"] == memory_id


class _BrokenStore:
    def get(self, memory_id):
        raise RuntimeError("disk on fire")


def test_unexpected_error_is_logged_json_500(caplog):
    app.dependency_overrides[get_store] = lambda: _BrokenStore()
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            with caplog.at_level(logging.ERROR, logger="anna"):
                response = test_client.get("/api/memory", params={"memoryId": "mem_1"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "disk on fire"}
    assert any("disk on fire" in rec.getMessage() for rec in caplog.records)
    assert any(rec.exc_info for rec in caplog.records)
