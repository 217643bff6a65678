"""
API tests through FastAPI's TestClient.

Each test gets its own SQLite file and a seeded user; outbound scanner
traffic goes to an in-process fake target. Persisted records are read back
through a second storage connection.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeTarget, html
from securetest.api import app, get_http_transport
from securetest.storage import Storage


async def _seed_user(db_path):
    storage = Storage(db_path)
    await storage.connect()
    try:
        return await storage.create_user("tester")
    finally:
        await storage.close()


async def _load_history(db_path, user_id):
    storage = Storage(db_path)
    await storage.connect()
    try:
        return (await storage.get_scans_by_user(user_id),
                await storage.get_activity_logs_by_user(user_id))
    finally:
        await storage.close()


@pytest.fixture
def target():
    return FakeTarget()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "api.db"
    monkeypatch.setenv("SECURETEST_DB_PATH", str(path))
    return path


@pytest.fixture
def user(db_path):
    return asyncio.run(_seed_user(db_path))


@pytest.fixture
def history(db_path, user):
    """Callable returning (scans, activity logs) for the seeded user, newest first."""
    return lambda: asyncio.run(_load_history(db_path, user["id"]))


@pytest.fixture
def api(user, target):
    app.dependency_overrides[get_http_transport] = lambda: target.transport
    with TestClient(app) as client:
        client.headers["Authorization"] = f"Bearer {user['api_token']}"
        yield client
    app.dependency_overrides.clear()


class TestAuth:

    def test_missing_token(self, api):
        resp = api.post("/api/tools/xss-scan", json={"url": "http://t.test/?q=1"},
                        headers={"Authorization": ""})
        assert resp.status_code == 401

    def test_unknown_token(self, api):
        resp = api.post("/api/tools/sql-injection", json={"url": "http://t.test/?id=1"},
                        headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized"

    def test_health_is_public(self, api):
        resp = api.get("/api/health", headers={"Authorization": ""})
        assert resp.json()["status"] == "ok"


class TestXSSEndpoint:

    def test_scan_is_recorded(self, api, target, history):
        target.handler = lambda request: html(request.url.params.get("q", ""))
        resp = api.post("/api/tools/xss-scan",
                        json={"url": "http://t.test/?q=1", "scanType": "reflected", "scanDepth": "shallow"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["results"]["securityScore"] == "F"
        assert body["results"]["vulnerabilities"][0]["type"] == "Reflected"

        scans, logs = history()
        assert scans[0]["id"] == body["scanId"]
        assert scans[0]["scan_type"] == "vulnerability"
        assert scans[0]["status"] == "completed"
        assert scans[0]["findings"] == body["results"]
        assert logs[0]["action"] == "XSS_SCAN"
        assert logs[0]["details"] == "XSS vulnerability scan performed for http://t.test/?q=1"

    def test_missing_url(self, api, history):
        resp = api.post("/api/tools/xss-scan", json={})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "URL is required"
        assert history() == ([], [])

    def test_invalid_scan_type_rejected(self, api):
        resp = api.post("/api/tools/xss-scan", json={"url": "http://t.test/", "scanType": "blind"})
        assert resp.status_code == 422

    def test_invalid_url_is_a_completed_scan(self, api, target, history):
        resp = api.post("/api/tools/xss-scan", json={"url": "not a url"})
        assert resp.status_code == 200
        assert resp.json()["results"]["error"] == "Invalid URL"
        assert target.requests == []
        scans, _logs = history()
        assert scans[0]["status"] == "completed"


class TestSQLInjectionEndpoint:

    def test_no_parameters(self, api):
        resp = api.post("/api/tools/sql-injection", json={"url": "http://t.test/items"})
        assert resp.status_code == 200
        results = resp.json()["results"]
        assert results["error"] == "No parameters found to test for SQL injection"
        assert results["testedParams"] == []

    def test_error_based_finding(self, api, target, history):
        target.handler = lambda request: html("Warning: mysql_fetch_array() expects parameter 1")
        resp = api.post("/api/tools/sql-injection",
                        json={"url": "http://t.test/item", "paramNames": "id", "testLevel": "intermediate"})
        results = resp.json()["results"]
        assert len(results["vulnerabilities"]) == 7
        assert results["vulnerabilities"][0]["pattern"] == "mysql_fetch"

        _scans, logs = history()
        assert logs[0]["action"] == "SQL_INJECTION_SCAN"
        assert logs[0]["details"] == "SQL injection scan performed for http://t.test/item"


class TestReconEndpoints:

    def test_vuln_scan(self, api, target, history):
        target.handler = lambda request: html("ok")
        resp = api.post("/api/tools/vuln-scan", json={"url": "http://t.test/"})
        assert resp.status_code == 200
        titles = [v["title"] for v in resp.json()["results"]["vulnerabilities"]]
        assert "Not Using HTTPS" in titles
        _scans, logs = history()
        assert logs[0]["action"] == "VULNERABILITY_SCAN"

    def test_web_automation(self, api, target, history):
        target.handler = lambda request: html('<form><input name="q"></form>')
        resp = api.post("/api/tools/web-automation", json={"url": "http://t.test/", "selectors": ["input"]})
        results = resp.json()["results"]
        assert results["elements"] == [{"selector": "input", "count": 1, "found": True}]
        scans, _logs = history()
        assert scans[0]["scan_type"] == "web-automation"

    def test_tech_scan(self, api, history):
        api.post("/api/tools/tech-scan", json={"url": "http://t.test/"})
        scans, logs = history()
        assert [s["target"] for s in scans] == ["http://t.test/"]
        assert scans[0]["scan_type"] == "reconnaissance"
        assert logs[0]["details"] == "Technology scan performed for http://t.test/"

    def test_missing_domain(self, api):
        assert api.post("/api/tools/dns-lookup", json={}).json()["detail"] == "Domain is required"

    def test_missing_target(self, api):
        assert api.post("/api/tools/port-scan", json={"target": "  "}).status_code == 400

    def test_port_out_of_range_rejected(self, api, history):
        resp = api.post("/api/tools/port-scan", json={"target": "127.0.0.1", "ports": [80, 70000]})
        assert resp.status_code == 422
        assert history() == ([], [])

    def test_port_scan_recorded(self, api, history, monkeypatch):
        async def fake_port_scan(target, ports, timeout=1.0):
            return {"openPorts": [p for p in ports if p == 22], "error": None}
        monkeypatch.setattr("securetest.recon.port_scan", fake_port_scan)

        resp = api.post("/api/tools/port-scan", json={"target": "10.0.0.5", "ports": [22, 65535]})
        assert resp.status_code == 200
        assert resp.json()["results"] == {"openPorts": [22], "error": None}
        _scans, logs = history()
        assert logs[0]["details"] == "Port scan performed for 10.0.0.5"
