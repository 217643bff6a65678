"""Recon tool tests: page analysis over a mock transport, sockets on loopback."""

import asyncio
import socket
from datetime import datetime
from unittest.mock import AsyncMock, patch

import dns.resolver
import httpx
import pytest

from conftest import html
from securetest import recon


def _client(fake_target):
    return httpx.AsyncClient(transport=fake_target.transport)


class TestTechScan:

    @pytest.mark.asyncio
    async def test_fingerprints(self, fake_target):
        fake_target.handler = lambda request: httpx.Response(200, text="""
            <html><head>
            <meta name="generator" content="WordPress 6.4">
            <link rel="stylesheet" href="/css/bootstrap.min.css">
            <link rel="stylesheet" href="https://cdn.test/fontawesome/all.css">
            </head><body>
            <script src="/js/jquery-3.7.min.js"></script>
            <script src="/js/jquery.ui.js"></script>
            <script src="/js/react.production.js"></script>
            </body></html>""", headers={"X-Powered-By": "PHP"})
        async with _client(fake_target) as client:
            results = await recon.tech_scan(client, "http://t.test/")
        assert results["error"] is None
        assert results["technologies"] == ["jQuery", "React", "WordPress 6.4", "Bootstrap CSS", "Font Awesome"]
        assert results["headers"]["x-powered-by"] == "PHP"

    @pytest.mark.asyncio
    async def test_error_status_reported(self, fake_target):
        fake_target.handler = lambda request: httpx.Response(503, text="down")
        async with _client(fake_target) as client:
            results = await recon.tech_scan(client, "http://t.test/")
        assert results["error"]
        assert results["technologies"] == []


class TestHeaderScan:

    @pytest.mark.asyncio
    async def test_plain_http_without_headers(self, fake_target):
        fake_target.handler = lambda request: html("ok", headers={"Server": "nginx/1.18"})
        async with _client(fake_target) as client:
            results = await recon.header_scan(client, "http://t.test/")
        titles = [v["title"] for v in results["vulnerabilities"]]
        assert "Missing Strict-Transport-Security Header" not in titles
        assert "Missing Content-Security-Policy Header" in titles
        assert "Server Information Disclosure" in titles
        assert titles[-1] == "Not Using HTTPS"
        assert results["sslInfo"] is None
        assert results["securityHeaders"]["X-Frame-Options"] is None

    @pytest.mark.asyncio
    async def test_hardened_https(self, fake_target):
        headers = {
            "Content-Security-Policy": "default-src 'self'",
            "X-XSS-Protection": "1; mode=block",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Strict-Transport-Security": "max-age=63072000",
        }
        fake_target.handler = lambda request: html("ok", headers=headers)
        async with _client(fake_target) as client:
            results = await recon.header_scan(client, "https://t.test/")
        assert results["vulnerabilities"] == []
        assert results["sslInfo"] == {"secure": True, "protocol": "TLS"}
        assert results["securityHeaders"]["X-Frame-Options"] == "DENY"


class TestWebAutomation:

    @pytest.mark.asyncio
    async def test_selectors_and_forms(self, fake_target):
        fake_target.handler = lambda request: html("""
            <a class="nav">1</a><a class="nav">2</a>
            <form id="login" action="/login" method="POST">
              <input name="user" required>
              <input type="password" name="pass" id="pw">
              <select name="lang" multiple></select>
            </form>
            <form><textarea name="msg"></textarea><select name="one"></select></form>
        """)
        async with _client(fake_target) as client:
            results = await recon.web_automation(client, "http://t.test/", ["a.nav", "#missing", "div["])

        assert results["elements"][0] == {"selector": "a.nav", "count": 2, "found": True}
        assert results["elements"][1] == {"selector": "#missing", "count": 0, "found": False}
        assert results["elements"][2]["error"] == "Invalid selector"

        login, anonymous = results["forms"]
        assert login["id"] == "login" and login["method"] == "POST"
        assert login["inputs"][0] == {"name": "user", "type": "text", "id": "", "required": True}
        assert [i["type"] for i in login["inputs"]] == ["text", "password", "select-multiple"]
        assert anonymous["id"] == "form-1"
        assert anonymous["method"] == "GET"
        assert [i["type"] for i in anonymous["inputs"]] == ["textarea", "select-one"]


class TestPortScan:

    @pytest.mark.asyncio
    async def test_open_and_closed(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        open_port = server.sockets[0].getsockname()[1]

        with socket.socket() as s:
            s.bind(("127.0.0.1", 0))
            closed_port = s.getsockname()[1]

        try:
            results = await recon.port_scan("127.0.0.1", [closed_port, open_port], timeout=1.0)
        finally:
            server.close()
            await server.wait_closed()
        assert results == {"openPorts": [open_port], "error": None}

    @pytest.mark.asyncio
    async def test_out_of_range_port_skipped(self):
        """An impossible port number is treated like a closed one; the scan continues."""
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        open_port = server.sockets[0].getsockname()[1]
        try:
            results = await recon.port_scan("127.0.0.1", [70000, open_port], timeout=1.0)
        finally:
            server.close()
            await server.wait_closed()
        assert results == {"openPorts": [open_port], "error": None}


class TestDNSAndWhois:

    @pytest.mark.asyncio
    async def test_dns_failure_keeps_partial_results(self):
        with patch.object(recon.dns.asyncresolver, "resolve",
                          AsyncMock(side_effect=dns.resolver.NoAnswer())):
            results = await recon.dns_lookup("localhost")
        assert results["addressInfo"]["address"] in ("127.0.0.1", "::1")
        assert results["mxRecords"] is None
        assert results["error"]

    @pytest.mark.asyncio
    async def test_whois_dates_serialized(self):
        record = {"domain_name": "EXAMPLE.COM", "creation_date": [datetime(1995, 8, 14, 4, 0)]}
        with patch.object(recon.whois, "whois", return_value=record):
            results = await recon.whois_lookup("example.com")
        assert results["error"] is None
        assert results["whoisResults"]["creation_date"] == ["1995-08-14T04:00:00"]

    @pytest.mark.asyncio
    async def test_whois_failure(self):
        with patch.object(recon.whois, "whois", side_effect=ConnectionResetError("reset")):
            results = await recon.whois_lookup("example.com")
        assert results == {"whoisResults": None, "error": "reset"}
