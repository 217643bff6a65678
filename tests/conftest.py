"""
Shared fixtures: an in-process fake target served through httpx.MockTransport,
so scanners run end to end without touching the network.
"""
import httpx
import pytest


class FakeTarget:
    """Fake web application; records every request it receives."""

    def __init__(self, handler=None):
        self.handler = handler or (lambda request: httpx.Response(200, text="<html></html>"))
        self.requests = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def param_values(self, name):
        return [r.url.params.get(name) for r in self.requests]


def html(body: str, status_code: int = 200, headers=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        text=f"<html><body>{body}</body></html>",
        headers={"Content-Type": "text/html", **(headers or {})},
    )


@pytest.fixture
def fake_target():
    return FakeTarget()
