"""
SecureTest - Signal Detectors
Heuristics that inspect a captured probe response for evidence of a
vulnerability. Detectors never send requests themselves: anything that needs
a follow-up request (confirmation, control) gets it from the scanner via the
ProbeContext.
"""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from securetest.models import Finding
from securetest.payloads import (
    DOM_SINK_PATTERNS,
    DOM_SOURCE_MARKERS,
    FRAGMENT_GUIDANCE,
    FRAGMENT_MARKERS,
    SQL_ERROR_PATTERNS,
    SUCCESS_MARKERS,
    VULN_DOM_XSS,
    VULN_REFLECTED_XSS,
    VULN_SQL_INJECTION,
    VULN_STORED_XSS,
)


@dataclass
class ProbeContext:
    """What was sent to produce the response under inspection."""

    parameter: str = ""
    payload: Optional[str] = None
    # String actually sent, when it differs from the catalog payload
    sent: Optional[str] = None
    url: str = ""
    control: Optional[httpx.Response] = None

    @property
    def sent_value(self) -> Optional[str]:
        return self.sent if self.sent is not None else self.payload


def response_text(response: Optional[httpx.Response]) -> str:
    if response is None:
        return ""
    return response.text or ""


def parse_html(text: str) -> BeautifulSoup:
    return BeautifulSoup(text or "", "html.parser")


class Detector(ABC):
    """Every detector implements detect()."""

    name: str = "Unnamed Detector"

    @abstractmethod
    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        """Return the findings evidenced by *response* (possibly none)."""
        ...


# ── SQL injection ───────────────────────────────────────────────

class SQLErrorDetector(Detector):
    """Database error strings leaking into the response body."""

    name = "SQL error"

    def __init__(self, patterns: Tuple[str, ...] = SQL_ERROR_PATTERNS):
        self.patterns = patterns

    def match(self, text: str) -> Optional[str]:
        for pattern in self.patterns:
            if pattern in text:
                return pattern
        return None

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        pattern = self.match(response_text(response))
        if pattern is None:
            return []
        param = context.parameter
        return [Finding(
            vuln_type=VULN_SQL_INJECTION,
            location=param,
            severity="high",
            context=f"SQL error detected in response after injecting payload into parameter '{param}'",
            payload=context.payload,
            parameter=param,
            url=context.url,
            pattern=pattern,
        )]


class AuthBypassDetector(Detector):
    """Success markers that appear for the payload but not for a control value."""

    name = "Auth bypass"

    def __init__(self, markers: Tuple[str, ...] = SUCCESS_MARKERS):
        self.markers = markers

    def has_success_marker(self, text: str) -> bool:
        return any(marker in text for marker in self.markers)

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        if not self.has_success_marker(response_text(response)):
            return []
        if context.control is None:
            return []
        if self.has_success_marker(response_text(context.control)):
            return []
        param = context.parameter
        return [Finding(
            vuln_type=VULN_SQL_INJECTION,
            location=param,
            severity="high",
            context=(
                "Possible SQL injection success detected. The payload may have bypassed "
                "authentication or authorization."
            ),
            payload=context.payload,
            parameter=param,
            url=context.url,
        )]


# ── XSS ─────────────────────────────────────────────────────────

class ReflectionDetector(Detector):
    """Verbatim payload echo, confirmed with a randomized token."""

    name = "Reflection"
    token_marker = "XSS"

    @staticmethod
    def reflects(text: str, value: Optional[str]) -> bool:
        return bool(value) and value in text

    def tokenize(self, payload: str) -> Tuple[str, str]:
        """Swap the first "XSS" in ``payload`` for a fresh 16-hex token."""
        token = secrets.token_hex(8)
        return payload.replace(self.token_marker, token, 1), token

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        if not self.reflects(response_text(response), context.sent_value):
            return []
        return [Finding(
            vuln_type=VULN_REFLECTED_XSS,
            location=f"URL parameter '{context.parameter}'",
            severity="high",
            context="The parameter value is reflected without proper encoding or filtering",
            payload=context.payload,
        )]


class DOMSinkDetector(Detector):
    """Inline scripts that feed a user-controllable source into a DOM sink."""

    name = "DOM sink"

    def __init__(self,
                 sinks: Tuple[str, ...] = DOM_SINK_PATTERNS,
                 sources: Tuple[str, ...] = DOM_SOURCE_MARKERS):
        self.sinks = sinks
        self.sources = sources

    def scan_script(self, script_text: str) -> List[str]:
        """Sinks in one script, reported only if the script also reads a source."""
        if not any(source in script_text for source in self.sources):
            return []
        return [sink for sink in self.sinks if sink in script_text]

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        findings: List[Finding] = []
        soup = parse_html(response_text(response))
        for script in soup.find_all("script"):
            for sink in self.scan_script(script.get_text() or ""):
                findings.append(Finding(
                    vuln_type=VULN_DOM_XSS,
                    location=f"JavaScript ({sink})",
                    severity="medium",
                    context=f"Potential DOM XSS sink '{sink}' found with user-controllable input source",
                    payload=None,
                ))
        return findings


class FragmentDetector(Detector):
    """Server response text hinting that client code reads the URL fragment.

    The fragment itself never reaches the server, so this only ever matches
    static script text in the page.
    """

    name = "URL fragment"

    def __init__(self, markers: Tuple[str, ...] = FRAGMENT_MARKERS):
        self.markers = markers

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        text = response_text(response)
        if not any(marker in text for marker in self.markers):
            return []
        return [Finding(
            vuln_type=VULN_DOM_XSS,
            location="URL fragment (#)",
            severity="medium",
            context="The application appears to process URL fragments with JavaScript",
            payload=context.payload,
            description=FRAGMENT_GUIDANCE["description"],
            remediation=FRAGMENT_GUIDANCE["remediation"],
        )]


class StoredInputDetector(Detector):
    """Forms with free-text inputs: structural hint only, nothing is submitted."""

    name = "Stored input surface"
    selector = 'input[type="text"], textarea'

    def detect(self, response: httpx.Response, context: ProbeContext) -> List[Finding]:
        findings: List[Finding] = []
        soup = parse_html(response_text(response))
        for form in soup.find_all("form"):
            if not form.select(self.selector):
                continue
            action = form.get("action") or ""
            findings.append(Finding(
                vuln_type=VULN_STORED_XSS,
                location=f"Form with action '{action or 'unspecified'}'",
                severity="medium",
                context=(
                    "Form with text inputs detected - could be vulnerable to stored XSS if "
                    "user input isn't properly sanitized before storage and display"
                ),
                payload=None,
            ))
        return findings
