"""Sensitive data exposed in page markup, inline scripts or URLs."""
import re
from urllib.parse import parse_qsl, urlsplit

from qastell.adapters.snapshot import Snapshot
from qastell.rules.base import Category, Finding, Rule, Severity, document_finding, element_finding

SENSITIVE_PATTERNS = [
    (r"['\"]?(?:api[_-]?key|apikey)['\"]?\s*[:=]\s*['\"]([a-zA-Z0-9]{20,})['\"]", "API Key"),
    (r"sk-[a-zA-Z0-9]{48}", "OpenAI API Key"),
    (r"AIza[0-9A-Za-z\-_]{35}", "Google API Key"),
    (r"AKIA[0-9A-Z]{16}", "AWS Access Key ID"),
    (r"['\"]?aws[_-]?secret['\"]?\s*[:=]\s*['\"]([a-zA-Z0-9/+=]{40})['\"]", "AWS Secret Key"),
    (r"gh[pousr]_[A-Za-z0-9]{36}", "GitHub Token"),
    (r"xox[baprs]-[A-Za-z0-9-]{10,}", "Slack Token"),
    (r"['\"]?(?:password|passwd|pwd)['\"]?\s*[:=]\s*['\"]([^'\"]{3,})['\"]", "Hardcoded Password"),
    (r"['\"]?(?:access_token|auth_token|bearer)['\"]?\s*[:=]\s*['\"]([a-zA-Z0-9._-]{20,})['\"]", "Access Token"),
    (r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*", "JWT Token"),
    (r"-----BEGIN (?:RSA |EC |DSA )?PRIVATE KEY-----", "Private Key"),
    (r"(?:mongodb|postgres|mysql|redis)://[^\s<>\"']+", "Database Connection String"),
]

SENSITIVE_QUERY_PARAMS = frozenset({
    "password", "passwd", "pwd", "pass", "token", "access_token", "auth_token", "api_key",
    "apikey", "secret", "client_secret", "session", "sessionid", "jsessionid", "phpsessid",
})

_COMPILED = [(re.compile(pattern), label) for pattern, label in SENSITIVE_PATTERNS]


def _mask(value: str) -> str:
    return f"{value[:6]}***" if len(value) > 6 else "***"


def check_sensitive_markup(snapshot: Snapshot) -> list[Finding]:
    findings = []
    seen: set[tuple[str, str]] = set()
    for pattern, label in _COMPILED:
        for match in pattern.finditer(snapshot.html):
            key = (label, match.group(0))
            if key in seen:
                continue
            seen.add(key)
            findings.append(document_finding(
                f"{label} exposed in page source", _mask(match.group(0))
            ))
    return findings


def _url_issues(url: str) -> list[str]:
    parts = urlsplit(url)
    issues = []
    if parts.password:
        issues.append("credentials in URL userinfo")
    for name, _ in parse_qsl(parts.query, keep_blank_values=True):
        if name.lower() in SENSITIVE_QUERY_PARAMS:
            issues.append(f"'{name}' query parameter")
    return issues


def check_sensitive_urls(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for issue in _url_issues(snapshot.url):
        findings.append(document_finding(f"Page URL carries {issue}"))
    for link in snapshot.find("a", "form", "iframe", "img", "script"):
        target = link.attr("href") or link.attr("action") or link.attr("src") or ""
        if not target.lower().startswith(("http://", "https://", "/", "?")):
            continue
        for issue in _url_issues(target):
            findings.append(element_finding(link, f"Link carries {issue}"))
    return findings


RULES: list[Rule] = [
    Rule(
        id="sensitive-data-exposure",
        name="Sensitive Data Exposure",
        category=Category.SENSITIVE_DATA,
        severity=Severity.CRITICAL,
        description="Secrets, keys or tokens embedded in the delivered page",
        evaluate=check_sensitive_markup,
        recommendation="Remove secrets from client-side code and rotate any exposed credentials",
    ),
    Rule(
        id="sensitive-data-in-url",
        name="Sensitive Data in URL",
        category=Category.SENSITIVE_DATA,
        severity=Severity.HIGH,
        description="Credentials and tokens in URLs leak through logs, history and Referer",
        evaluate=check_sensitive_urls,
        recommendation="Send credentials in request bodies or headers, never in URLs",
    ),
]
