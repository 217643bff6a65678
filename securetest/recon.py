"""
SecureTest - Recon Tools
Single-shot reconnaissance helpers behind the dashboard's tool endpoints:
DNS, WHOIS, TCP port probing, technology fingerprinting, security-header
review and form/selector introspection. Each returns a JSON-ready dict with
an ``error`` key instead of raising.
"""

import asyncio
import socket
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import dns.asyncresolver
import dns.exception
import httpx
import whois
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError


# -- Fingerprints ---------------------------------------------------------------

SCRIPT_FINGERPRINTS = [
    ("jquery", "jQuery"),
    ("react", "React"),
    ("angular", "Angular"),
    ("vue", "Vue.js"),
    ("bootstrap", "Bootstrap"),
]

STYLESHEET_FINGERPRINTS = [
    ("bootstrap", "Bootstrap CSS"),
    ("fontawesome", "Font Awesome"),
    ("material", "Material Design"),
]

SECURITY_HEADERS = [
    "Content-Security-Policy",
    "X-XSS-Protection",
    "X-Content-Type-Options",
    "X-Frame-Options",
    "Strict-Transport-Security",
    "Referrer-Policy",
    "Permissions-Policy",
]

# (header, severity, title, description); HSTS only applies to https targets
MISSING_HEADER_CHECKS = [
    ("Content-Security-Policy", "medium", "Missing Content-Security-Policy Header",
     "The Content-Security-Policy header is not set. This could allow various attacks including XSS."),
    ("X-XSS-Protection", "low", "Missing X-XSS-Protection Header",
     "The X-XSS-Protection header is not set. This could make the site more vulnerable to XSS attacks."),
    ("X-Content-Type-Options", "low", "Missing X-Content-Type-Options Header",
     "The X-Content-Type-Options header is not set. This could allow MIME type sniffing."),
    ("X-Frame-Options", "medium", "Missing X-Frame-Options Header",
     "The X-Frame-Options header is not set. This could allow clickjacking attacks."),
    ("Strict-Transport-Security", "medium", "Missing Strict-Transport-Security Header",
     "The Strict-Transport-Security header is not set. This could allow downgrade attacks."),
]


def _unique(items: List[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return value


async def _get_page(client: httpx.AsyncClient, url: str) -> httpx.Response:
    resp = await client.get(url)
    resp.raise_for_status()
    return resp


# -- DNS / WHOIS ----------------------------------------------------------------

async def dns_lookup(domain: str) -> Dict:
    """Address, MX, NS and TXT records; stops at the first failing lookup."""
    results: Dict[str, Any] = {
        "addressInfo": None,
        "mxRecords": None,
        "nsRecords": None,
        "txtRecords": None,
        "error": None,
    }
    try:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(domain, None, type=socket.SOCK_STREAM)
        family, _type, _proto, _canon, sockaddr = infos[0]
        results["addressInfo"] = {
            "address": sockaddr[0],
            "family": 6 if family == socket.AF_INET6 else 4,
        }

        mx = await dns.asyncresolver.resolve(domain, "MX")
        results["mxRecords"] = [
            {"exchange": r.exchange.to_text(omit_final_dot=True), "priority": r.preference}
            for r in mx
        ]

        ns = await dns.asyncresolver.resolve(domain, "NS")
        results["nsRecords"] = [r.target.to_text(omit_final_dot=True) for r in ns]

        txt = await dns.asyncresolver.resolve(domain, "TXT")
        results["txtRecords"] = [
            [s.decode("utf-8", errors="replace") for s in r.strings] for r in txt
        ]
    except (OSError, dns.exception.DNSException) as e:
        results["error"] = str(e) or e.__class__.__name__
    return results


async def whois_lookup(domain: str) -> Dict:
    """WHOIS record for a domain (blocking client run in a worker thread)."""
    try:
        entry = await asyncio.to_thread(whois.whois, domain)
    except Exception as e:
        return {"whoisResults": None, "error": str(e) or e.__class__.__name__}
    return {"whoisResults": _json_safe(dict(entry)), "error": None}


# -- Port probing ---------------------------------------------------------------

async def port_scan(target: str, ports: List[int], timeout: float = 1.0) -> Dict:
    """Sequential TCP connect probe; closed, filtered and erroring ports are skipped."""
    results: Dict[str, Any] = {"openPorts": [], "error": None}
    for port in ports:
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(target, port), timeout=timeout
            )
        except (OSError, OverflowError, asyncio.TimeoutError):
            continue
        results["openPorts"].append(port)
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
    return results


# -- Page analysis --------------------------------------------------------------

async def tech_scan(client: httpx.AsyncClient, url: str) -> Dict:
    """Fingerprint client-side libraries and generator meta tags."""
    results: Dict[str, Any] = {"technologies": [], "headers": {}, "error": None}
    try:
        resp = await _get_page(client, url)
    except httpx.HTTPError as e:
        results["error"] = str(e)
        return results

    results["headers"] = dict(resp.headers)
    soup = BeautifulSoup(resp.text, "html.parser")
    techs: List[str] = []

    for script in soup.find_all("script"):
        src = script.get("src") or ""
        for needle, name in SCRIPT_FINGERPRINTS:
            if needle in src:
                techs.append(name)

    for meta in soup.find_all("meta"):
        content = meta.get("content") or ""
        if meta.get("name") == "generator" and content:
            techs.append(content)

    for link in soup.find_all("link"):
        href = link.get("href") or ""
        for needle, name in STYLESHEET_FINGERPRINTS:
            if needle in href:
                techs.append(name)

    results["technologies"] = _unique(techs)
    return results


async def header_scan(client: httpx.AsyncClient, url: str) -> Dict:
    """Missing security headers, server banner disclosure and plain-HTTP use."""
    results: Dict[str, Any] = {
        "vulnerabilities": [],
        "securityHeaders": {},
        "sslInfo": None,
        "error": None,
    }
    try:
        resp = await _get_page(client, url)
    except httpx.HTTPError as e:
        results["error"] = str(e)
        return results

    headers = {name: resp.headers.get(name) or None for name in SECURITY_HEADERS}
    results["securityHeaders"] = headers
    is_https = url.startswith("https://")

    for name, severity, title, description in MISSING_HEADER_CHECKS:
        if name == "Strict-Transport-Security" and not is_https:
            continue
        if not headers[name]:
            results["vulnerabilities"].append({
                "severity": severity,
                "title": title,
                "description": description,
            })

    server = resp.headers.get("server")
    if server:
        results["vulnerabilities"].append({
            "severity": "low",
            "title": "Server Information Disclosure",
            "description": f"The server is disclosing its software information: {server}",
        })

    if is_https:
        results["sslInfo"] = {"secure": True, "protocol": "TLS"}
    else:
        results["vulnerabilities"].append({
            "severity": "high",
            "title": "Not Using HTTPS",
            "description": "The site is not using HTTPS, which means all data is being transmitted in clear text.",
        })
    return results


def _input_type(element) -> str:
    if element.name == "input":
        return (element.get("type") or "text").lower()
    if element.name == "select":
        return "select-multiple" if element.has_attr("multiple") else "select-one"
    return element.name


async def web_automation(client: httpx.AsyncClient, url: str,
                         selectors: Optional[List[str]] = None) -> Dict:
    """Count matches for CSS selectors and describe every form on the page."""
    results: Dict[str, Any] = {"elements": [], "forms": [], "error": None}
    try:
        resp = await _get_page(client, url)
    except httpx.HTTPError as e:
        results["error"] = str(e)
        return results

    soup = BeautifulSoup(resp.text, "html.parser")

    for selector in selectors or []:
        try:
            count = len(soup.select(selector))
        except SelectorSyntaxError:
            results["elements"].append({
                "selector": selector,
                "count": 0,
                "found": False,
                "error": "Invalid selector",
            })
            continue
        results["elements"].append({"selector": selector, "count": count, "found": count > 0})

    for idx, form in enumerate(soup.find_all("form")):
        inputs = []
        for element in form.find_all(["input", "select", "textarea"]):
            inputs.append({
                "name": element.get("name") or "",
                "type": _input_type(element),
                "id": element.get("id") or "",
                "required": element.has_attr("required"),
            })
        results["forms"].append({
            "id": form.get("id") or f"form-{idx}",
            "action": form.get("action") or "",
            "method": form.get("method") or "GET",
            "inputs": inputs,
        })
    return results
