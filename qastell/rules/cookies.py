"""Cookie flag rules."""
from qastell.adapters.snapshot import CookieInfo, Snapshot
from qastell.rules.base import Category, ElementRef, Finding, Rule, Severity

SENSITIVE_COOKIE_PATTERNS = (
    "session", "sess", "sid", "token", "auth", "jwt", "csrf", "xsrf", "user", "login", "remember",
)


def is_sensitive_cookie(name: str) -> bool:
    lowered = name.lower()
    return any(p in lowered for p in SENSITIVE_COOKIE_PATTERNS)


def _cookie_finding(cookie: CookieInfo, message: str) -> Finding:
    flags = []
    if cookie.flags_known:
        flags.append("Secure" if cookie.secure else "no Secure")
        flags.append(f"SameSite={cookie.same_site}" if cookie.same_site else "no SameSite")
    flags.append("HttpOnly" if cookie.http_only else "no HttpOnly")
    return Finding(
        message=message,
        element=ElementRef(f"cookie:{cookie.name}", f"{cookie.name}; {'; '.join(flags)}"),
    )


def check_secure_flag(snapshot: Snapshot) -> list[Finding]:
    if not snapshot.is_https:
        return []
    return [
        _cookie_finding(cookie, f"Cookie '{cookie.name}' is set without the Secure flag on an HTTPS site")
        for cookie in snapshot.cookies
        if cookie.flags_known and not cookie.secure
    ]


def check_httponly_flag(snapshot: Snapshot) -> list[Finding]:
    return [
        _cookie_finding(
            cookie,
            f"Sensitive cookie '{cookie.name}' is readable from JavaScript (missing HttpOnly)",
        )
        for cookie in snapshot.cookies
        if not cookie.http_only and is_sensitive_cookie(cookie.name)
    ]


def check_samesite(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for cookie in snapshot.cookies:
        if not cookie.flags_known:
            continue
        same_site = (cookie.same_site or "").lower()
        if not same_site:
            findings.append(_cookie_finding(cookie, f"Cookie '{cookie.name}' has no SameSite attribute"))
        elif same_site == "none" and not cookie.secure:
            findings.append(_cookie_finding(
                cookie, f"Cookie '{cookie.name}' uses SameSite=None without the Secure flag"
            ))
    return findings


RULES: list[Rule] = [
    Rule(
        id="cookie-without-secure",
        name="Cookie Without Secure Flag",
        category=Category.COOKIES,
        severity=Severity.MEDIUM,
        description="Cookies on HTTPS sites should only be sent over encrypted connections",
        evaluate=check_secure_flag,
        recommendation="Set the Secure attribute on every cookie served over HTTPS",
    ),
    Rule(
        id="insecure-cookie-httponly",
        name="Sensitive Cookie Without HttpOnly",
        category=Category.COOKIES,
        severity=Severity.HIGH,
        description="Session and token cookies should not be readable by scripts",
        evaluate=check_httponly_flag,
        recommendation="Set HttpOnly on session, auth and token cookies",
    ),
    Rule(
        id="cookie-without-samesite",
        name="Cookie Without SameSite",
        category=Category.COOKIES,
        severity=Severity.LOW,
        description="SameSite limits cross-site request forgery",
        evaluate=check_samesite,
        recommendation="Set SameSite=Lax or SameSite=Strict; SameSite=None requires Secure",
    ),
]
