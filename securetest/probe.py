"""
SecureTest - Probe Dispatcher
Issues scanner requests one at a time and keeps an attempt log.
Request failures are recorded and swallowed; they never abort a scan.
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from securetest.config import ScannerConfig


@dataclass
class ProbeAttempt:
    """One outbound probe request and its outcome."""

    id: int
    timestamp: float
    url: str
    parameter: str
    payload: Optional[str]
    stage: str  # baseline, probe, confirm, control, fragment
    outcome: str  # response, error
    status_code: int
    elapsed_ms: int
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "url": self.url,
            "parameter": self.parameter,
            "payload": self.payload,
            "stage": self.stage,
            "outcome": self.outcome,
            "status_code": self.status_code,
            "elapsed_ms": self.elapsed_ms,
            "error": self.error,
        }


def build_client(
    config: Optional[ScannerConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """httpx client carrying the scanner identity and timeouts."""
    config = config or ScannerConfig()
    return httpx.AsyncClient(
        headers={"User-Agent": config.user_agent},
        timeout=config.probe_timeout,
        follow_redirects=config.follow_redirects,
        verify=config.verify_tls,
        transport=transport,
    )


class ProbeClient:
    """Sequential GET dispatcher with a fixed scanner identity.

    Use as an async context manager; one instance per scan.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ScannerConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.attempts: List[ProbeAttempt] = []
        self._seq = 0

    async def __aenter__(self) -> "ProbeClient":
        self._client = build_client(self.config, self._transport)
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def requests_sent(self) -> int:
        return len(self.attempts)

    @property
    def errors_count(self) -> int:
        return sum(1 for a in self.attempts if a.outcome == "error")

    async def fetch(
        self,
        url: str,
        *,
        parameter: str = "",
        payload: Optional[str] = None,
        stage: str = "probe",
        auth: Optional[Tuple[str, str]] = None,
    ) -> Optional[httpx.Response]:
        """GET ``url``; returns the response, or None if the request failed.

        A 4xx/5xx status counts as a failed request: error pages are never
        handed to the detectors.
        """
        if self._client is None:
            raise RuntimeError("ProbeClient used outside of its context")

        started = time.perf_counter()
        try:
            resp = await self._client.get(url, auth=auth)
            resp.raise_for_status()
            # Read the body now so decoding problems count as probe failures
            resp.text
        except httpx.HTTPStatusError as e:
            self._record(url, parameter, payload, stage, "error", e.response.status_code, started,
                         error=f"HTTP {e.response.status_code}")
            return None
        except Exception as e:
            self._record(url, parameter, payload, stage, "error", 0, started, error=str(e)[:200])
            return None

        self._record(url, parameter, payload, stage, "response", resp.status_code, started)
        return resp

    def _record(self, url: str, parameter: str, payload: Optional[str], stage: str,
                outcome: str, status_code: int, started: float, error: str = ""):
        self._seq += 1
        self.attempts.append(ProbeAttempt(
            id=self._seq,
            timestamp=time.time(),
            url=url,
            parameter=parameter,
            payload=payload,
            stage=stage,
            outcome=outcome,
            status_code=int(status_code or 0),
            elapsed_ms=int(max(0.0, time.perf_counter() - started) * 1000),
            error=error,
        ))
