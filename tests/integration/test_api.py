"""Integration tests for FastAPI endpoints (contract tests)."""

import json

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import GOOD_FEATURES, FakeImageGenerator, FakeTextGenerator, make_release
from releaseforge.main import app, get_service

LONG_NOTES = "- Added a brand new plugin system with hot reload\n" * 4


@pytest.fixture
def text_gen():
    return FakeTextGenerator()


@pytest.fixture
async def client(make_service, write_store, text_gen):
    write_store([make_release(fullNotes=LONG_NOTES)])
    service = make_service(text_gen, FakeImageGenerator())
    app.dependency_overrides[get_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.mark.asyncio
class TestHealthEndpoint:
    async def test_health_returns_ok(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"] == "1.0.0"


@pytest.mark.asyncio
class TestToolsEndpoint:
    async def test_list_tools(self, client):
        resp = await client.get("/v1/tools")
        assert resp.status_code == 200
        ids = [t["id"] for t in resp.json()]
        assert "claude-code" in ids
        assert "kiro" in ids

    async def test_tool_has_styling(self, client):
        for t in (await client.get("/v1/tools")).json():
            assert t["display_name"]
            assert t["primary_color"].startswith("#")
            assert t["style"]


@pytest.mark.asyncio
class TestGenerateEndpoint:
    async def test_missing_tool_returns_422(self, client):
        resp = await client.post("/v1/generate", json={})
        assert resp.status_code == 422

    async def test_unknown_tool_returns_422(self, client):
        resp = await client.post("/v1/generate", json={"tool": "nope"})
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "UNKNOWN_TOOL"

    async def test_missing_release_returns_404(self, client):
        resp = await client.post("/v1/generate", json={"tool": "X", "version": "9.9.9"})
        assert resp.status_code == 404
        assert resp.json()["detail"]["error_code"] == "RELEASE_NOT_FOUND"

    async def test_generate_success(self, client, text_gen):
        text_gen.responses.append(json.dumps(GOOD_FEATURES))
        resp = await client.post("/v1/generate", json={"tool": "X"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["state"] == "DELIVERED"
        assert data["source_origin"] == "fullNotes"
        assert [a["format"] for a in data["artifacts"]] == ["1:1", "16:9"]
        assert data["feature_set"]["release_info"] == "v2.3.0 • January 5, 2026"

    async def test_pipeline_failure_is_200(self, client, text_gen):
        text_gen.responses.extend([json.dumps({"features": []})] * 3)
        resp = await client.post("/v1/generate", json={"tool": "X"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["failure_report"].startswith("failure-X-2.3.0-")


@pytest.mark.asyncio
class TestValidateEndpoint:
    async def test_requires_tool_or_all(self, client):
        resp = await client.post("/v1/validate", json={})
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "MISSING_ARGUMENT"

    async def test_release_without_features_is_skipped(self, client):
        resp = await client.post("/v1/validate", json={"tool": "X"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 0
        assert data["exit_code"] == 0
        assert data["releases"][0]["skipped_reason"] == "no features file"


@pytest.mark.asyncio
class TestRemediateEndpoint:
    async def test_unknown_tool_reports_error(self, client):
        resp = await client.post("/v1/remediate", json={"tool": "nope", "version": "1.0.0"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "error"
        assert "apiCallsUsed" in data


@pytest.mark.asyncio
class TestResponseHeaders:
    async def test_generate_sets_job_headers(self, client, text_gen):
        text_gen.responses.append(json.dumps(GOOD_FEATURES))
        resp = await client.post("/v1/generate", json={"tool": "X"})
        assert resp.headers["X-ReleaseForge-Job"] == resp.json()["job_id"]
        assert "X-Request-Id" in resp.headers
        assert int(resp.headers["X-Pipeline-Duration-Ms"]) >= 0
