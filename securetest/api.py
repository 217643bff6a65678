"""
SecureTest - FastAPI Backend
REST API for the dashboard: vulnerability scanners and recon tools.
Every tool run is stored as a completed scan plus an activity-log entry.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Literal, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, conint

from securetest import recon
from securetest.auth import get_storage, require_user
from securetest.config import AppConfig, ensure_dirs, get_config
from securetest.probe import build_client
from securetest.records import (
    SCAN_TYPE_RECON,
    SCAN_TYPE_VULNERABILITY,
    SCAN_TYPE_WEB_AUTOMATION,
    record_scan,
)
from securetest.scanner import SQLInjectionScanner, XSSScanner
from securetest.storage import Storage


VERSION = "1.0.0"

config: AppConfig = get_config()


# ── Lifespan ────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    cfg = get_config()
    ensure_dirs()
    storage = Storage(cfg.storage.db_path)
    await storage.connect()
    app.state.config = cfg
    app.state.storage = storage
    print(f"[API] Backend running on {cfg.api.host}:{cfg.api.port}")
    yield
    await storage.close()


# ── FastAPI App ─────────────────────────────────────────────────

app = FastAPI(
    title="SecureTest API",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport for scanners; None means the real network."""
    return None


# ── Pydantic Models ────────────────────────────────────────────

class XSSScanRequest(BaseModel):
    url: Optional[str] = None
    customPayloads: Optional[str] = None
    scanType: Literal["reflected", "stored", "dom", "comprehensive"] = "comprehensive"
    scanDepth: Literal["shallow", "normal", "deep"] = "normal"

class SQLInjectionRequest(BaseModel):
    url: Optional[str] = None
    paramNames: Optional[str] = None
    testLevel: Literal["basic", "intermediate", "advanced"] = "basic"
    includeAuth: bool = False
    authUsername: Optional[str] = None
    authPassword: Optional[str] = None

class DomainRequest(BaseModel):
    domain: Optional[str] = None

class PortScanRequest(BaseModel):
    target: Optional[str] = None
    ports: Optional[List[conint(ge=0, le=65535)]] = None

class UrlRequest(BaseModel):
    url: Optional[str] = None

class WebAutomationRequest(BaseModel):
    url: Optional[str] = None
    selectors: Optional[List[str]] = None


def _require(value: Optional[str], what: str) -> str:
    if not value or not value.strip():
        raise HTTPException(status_code=400, detail=f"{what} is required")
    return value.strip()


# ── Vulnerability Scanners ─────────────────────────────────────

@app.post("/api/tools/xss-scan")
async def xss_scan(
    req: XSSScanRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    """Reflected, DOM-based and stored XSS checks against one URL."""
    url = _require(req.url, "URL")
    scanner = XSSScanner(cfg.scanner, transport=transport)
    result = await scanner.run(
        url,
        scan_type=req.scanType,
        scan_depth=req.scanDepth,
        custom_payloads=req.customPayloads,
    )
    results = result.to_dict()
    scan_id = await record_scan(
        storage, user["id"], url, SCAN_TYPE_VULNERABILITY, results,
        action="XSS_SCAN",
        details=f"XSS vulnerability scan performed for {url}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/sql-injection")
async def sql_injection_scan(
    req: SQLInjectionRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    """Error-based and auth-bypass SQL injection checks against URL parameters."""
    url = _require(req.url, "URL")
    scanner = SQLInjectionScanner(cfg.scanner, transport=transport)
    result = await scanner.run(
        url,
        param_names=req.paramNames,
        test_level=req.testLevel,
        include_auth=req.includeAuth,
        auth_username=req.authUsername,
        auth_password=req.authPassword,
    )
    results = result.to_dict()
    scan_id = await record_scan(
        storage, user["id"], url, SCAN_TYPE_VULNERABILITY, results,
        action="SQL_INJECTION_SCAN",
        details=f"SQL injection scan performed for {url}",
    )
    return {"scanId": scan_id, "results": results}


# ── Recon Tools ─────────────────────────────────────────────────

@app.post("/api/tools/dns-lookup")
async def dns_lookup(
    req: DomainRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    domain = _require(req.domain, "Domain")
    results = await recon.dns_lookup(domain)
    scan_id = await record_scan(
        storage, user["id"], domain, SCAN_TYPE_RECON, results,
        action="DNS_LOOKUP",
        details=f"DNS lookup performed for {domain}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/whois")
async def whois_lookup(
    req: DomainRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    domain = _require(req.domain, "Domain")
    results = await recon.whois_lookup(domain)
    scan_id = await record_scan(
        storage, user["id"], domain, SCAN_TYPE_RECON, results,
        action="WHOIS_LOOKUP",
        details=f"WHOIS lookup performed for {domain}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/port-scan")
async def port_scan(
    req: PortScanRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
):
    """Sequential TCP connect scan; defaults to a short list of common ports."""
    target = _require(req.target, "Target")
    ports = req.ports or cfg.scanner.default_ports
    results = await recon.port_scan(target, ports, timeout=cfg.scanner.port_timeout)
    scan_id = await record_scan(
        storage, user["id"], target, SCAN_TYPE_RECON, results,
        action="PORT_SCAN",
        details=f"Port scan performed for {target}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/tech-scan")
async def tech_scan(
    req: UrlRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    url = _require(req.url, "URL")
    async with build_client(cfg.scanner, transport) as client:
        results = await recon.tech_scan(client, url)
    scan_id = await record_scan(
        storage, user["id"], url, SCAN_TYPE_RECON, results,
        action="TECH_SCAN",
        details=f"Technology scan performed for {url}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/vuln-scan")
async def header_scan(
    req: UrlRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    """Security header and transport review of a single page."""
    url = _require(req.url, "URL")
    async with build_client(cfg.scanner, transport) as client:
        results = await recon.header_scan(client, url)
    scan_id = await record_scan(
        storage, user["id"], url, SCAN_TYPE_VULNERABILITY, results,
        action="VULNERABILITY_SCAN",
        details=f"Vulnerability scan performed for {url}",
    )
    return {"scanId": scan_id, "results": results}


@app.post("/api/tools/web-automation")
async def web_automation(
    req: WebAutomationRequest,
    user: Dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
    cfg: AppConfig = Depends(get_app_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    url = _require(req.url, "URL")
    async with build_client(cfg.scanner, transport) as client:
        results = await recon.web_automation(client, url, req.selectors)
    scan_id = await record_scan(
        storage, user["id"], url, SCAN_TYPE_WEB_AUTOMATION, results,
        action="WEB_AUTOMATION",
        details=f"Web automation scan performed for {url}",
    )
    return {"scanId": scan_id, "results": results}


# ── Health ──────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "version": VERSION}
