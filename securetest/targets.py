"""
SecureTest - Target Parameterizer
Validates scan targets, derives injection points and builds mutated URLs.
"""

from typing import List, Optional
from urllib.parse import parse_qsl, quote_plus, urlencode, urlparse, urlunparse


PAGE_CONTENT_POINT = "page-content"
NO_SQLI_PARAMS_ERROR = "No parameters found to test for SQL injection"


class InvalidTargetError(ValueError):
    """Raised when a scan target is not an absolute http(s) URL."""

    def __init__(self, url: str):
        super().__init__("Invalid URL")
        self.url = url


def parse_target(url: str):
    """Parse an absolute http/https URL or raise InvalidTargetError."""
    try:
        parsed = urlparse((url or "").strip())
        # Accessing .port validates the netloc
        parsed.port
    except ValueError:
        raise InvalidTargetError(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidTargetError(url)
    return parsed


def query_keys(url: str) -> List[str]:
    """Query-string keys in first-seen order, without duplicates."""
    parsed = parse_target(url)
    keys: List[str] = []
    for key, _value in parse_qsl(parsed.query, keep_blank_values=True):
        if key not in keys:
            keys.append(key)
    return keys


def xss_injection_points(url: str) -> List[str]:
    """Parameters to probe for reflected XSS (may be empty)."""
    return query_keys(url)


def sqli_injection_points(url: str, param_names: Optional[str] = None) -> List[str]:
    """Query keys plus caller-supplied, comma-separated parameter names."""
    points = query_keys(url)
    for name in (param_names or "").split(","):
        name = name.strip()
        if name and name not in points:
            points.append(name)
    return points


def with_param(url: str, name: str, value: str) -> str:
    """Clone ``url`` with parameter ``name`` set to ``value``.

    Existing occurrences collapse into one, kept at the first position;
    an absent parameter is appended.
    """
    parsed = urlparse(url)
    pairs = parse_qsl(parsed.query, keep_blank_values=True)
    out = []
    replaced = False
    for key, current in pairs:
        if key != name:
            out.append((key, current))
        elif not replaced:
            out.append((key, value))
            replaced = True
    if not replaced:
        out.append((name, value))
    query = urlencode(out, quote_via=quote_plus)
    return urlunparse(parsed._replace(query=query))


def with_fragment(url: str, fragment: str) -> str:
    """Clone ``url`` with its fragment replaced."""
    parsed = urlparse(url)
    return urlunparse(parsed._replace(fragment=fragment))
