"""
SecureTest - Scan models
Findings, the deduplicating finding set and the per-tool result shapes.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from securetest.payloads import GUIDANCE, VULN_SQL_INJECTION, XSS_RECOMMENDATIONS


SEVERITY_ORDER = {"high": 3, "medium": 2, "low": 1}


@dataclass
class Finding:
    """A single detected vulnerability."""

    vuln_type: str  # Reflected, DOM-based, Potentially Stored, SQL Injection
    location: str
    severity: str  # high, medium, low
    context: str
    payload: Optional[str] = None
    description: str = ""
    remediation: str = ""
    # SQL injection extras
    parameter: str = ""
    url: str = ""
    pattern: str = ""

    def __post_init__(self):
        guidance = GUIDANCE.get(self.vuln_type, {})
        if not self.description:
            self.description = guidance.get("description", "")
        if not self.remediation:
            self.remediation = guidance.get("remediation", "")

    def key(self) -> Tuple[str, Optional[str]]:
        return self.location, self.payload

    def to_dict(self) -> dict:
        data = {
            "type": self.vuln_type,
            "location": self.location,
            "severity": self.severity,
            "context": self.context,
            "payload": self.payload,
            "description": self.description,
            "remediation": self.remediation,
        }
        if self.vuln_type == VULN_SQL_INJECTION:
            data["parameter"] = self.parameter
            data["details"] = self.context
            data["url"] = self.url
            if self.pattern:
                data["pattern"] = self.pattern
        return data


class FindingSet:
    """Ordered findings, unique on (location, payload)."""

    def __init__(self):
        self._items: List[Finding] = []
        self._keys: Set[Tuple[str, Optional[str]]] = set()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __contains__(self, key) -> bool:
        return key in self._keys

    def add(self, finding: Finding) -> bool:
        """Add a finding; returns False if its pair is already present."""
        key = finding.key()
        if key in self._keys:
            return False
        self._keys.add(key)
        self._items.append(finding)
        return True

    def security_score(self) -> str:
        return grade(self._items)

    def to_list(self) -> List[dict]:
        return [f.to_dict() for f in self._items]


def grade(findings: Iterable[Finding]) -> str:
    """Coarse letter grade from severity counts.

    A with no findings, F with any high, D with more than two medium,
    C with one or two medium, B otherwise.
    """
    counts: Dict[str, int] = {"high": 0, "medium": 0, "low": 0}
    total = 0
    for finding in findings:
        total += 1
        if finding.severity in counts:
            counts[finding.severity] += 1
    if total == 0:
        return "A"
    if counts["high"] > 0:
        return "F"
    if counts["medium"] > 2:
        return "D"
    if counts["medium"] > 0:
        return "C"
    return "B"


@dataclass
class XSSScanResult:
    """Aggregate output of one XSS scan."""

    findings: FindingSet = field(default_factory=FindingSet)
    injection_points: List[str] = field(default_factory=list)
    security_score: Optional[str] = None
    recommendations: List[str] = field(default_factory=lambda: list(XSS_RECOMMENDATIONS))
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "vulnerabilities": self.findings.to_list(),
            "injectionPoints": list(self.injection_points),
            "securityScore": self.security_score,
            "recommendations": list(self.recommendations),
            "error": self.error,
        }


@dataclass
class SQLiScanResult:
    """Aggregate output of one SQL-injection scan."""

    findings: FindingSet = field(default_factory=FindingSet)
    tested_urls: List[str] = field(default_factory=list)
    tested_params: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "vulnerabilities": self.findings.to_list(),
            "testedUrls": list(self.tested_urls),
            "testedParams": list(self.tested_params),
            "error": self.error,
        }
