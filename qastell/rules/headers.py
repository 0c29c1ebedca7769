"""Response-header rules: security headers, CSP, CORS, clickjacking, Permissions-Policy."""
import re

from qastell.adapters.snapshot import Snapshot
from qastell.rules.base import (
    Category,
    Finding,
    Rule,
    Severity,
    document_finding,
    header_finding,
)

VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)+")


def parse_csp(policy: str) -> dict[str, list[str]]:
    """Split a CSP header value into ``{directive: [sources]}``."""
    directives: dict[str, list[str]] = {}
    for part in policy.split(";"):
        tokens = part.strip().split()
        if not tokens:
            continue
        name = tokens[0].lower()
        # First occurrence wins, later duplicates are ignored by browsers
        directives.setdefault(name, [t.lower() for t in tokens[1:]])
    return directives


def csp_policies(snapshot: Snapshot) -> list[tuple[str, str]]:
    """All enforced policies: the response header plus any <meta http-equiv> CSP."""
    policies = []
    header = snapshot.header("content-security-policy")
    if header:
        policies.append(("header", header))
    for meta in snapshot.find("meta"):
        if (meta.attr("http-equiv") or "").lower() == "content-security-policy":
            content = meta.attr("content") or ""
            if content:
                policies.append((meta.selector, content))
    return policies


def _script_sources(directives: dict[str, list[str]]) -> list[str] | None:
    if "script-src" in directives:
        return directives["script-src"]
    return directives.get("default-src")


# Security headers


def _missing_header(name: str, message: str):
    def check(snapshot: Snapshot) -> list[Finding]:
        if snapshot.header(name):
            return []
        return [header_finding(name, message)]

    return check


def check_x_frame_options(snapshot: Snapshot) -> list[Finding]:
    xfo = snapshot.header("x-frame-options").strip().lower()
    if not xfo:
        return [header_finding(
            "X-Frame-Options",
            "The response does not include X-Frame-Options header, allowing the page to be framed",
        )]
    if xfo not in ("deny", "sameorigin"):
        return [header_finding(
            "X-Frame-Options",
            f"X-Frame-Options is set to '{xfo}' which may allow framing",
            xfo,
        )]
    return []


def check_hsts(snapshot: Snapshot) -> list[Finding]:
    if not snapshot.is_https:
        return []
    hsts = snapshot.header("strict-transport-security")
    if not hsts:
        return [header_finding(
            "Strict-Transport-Security",
            "HTTPS response does not set Strict-Transport-Security",
        )]
    match = re.search(r"max-age\s*=\s*\"?(\d+)", hsts, re.IGNORECASE)
    if not match or int(match.group(1)) < 15552000:
        return [header_finding(
            "Strict-Transport-Security",
            "Strict-Transport-Security max-age is shorter than 180 days",
            hsts,
        )]
    return []


def check_x_content_type_options(snapshot: Snapshot) -> list[Finding]:
    value = snapshot.header("x-content-type-options").strip().lower()
    if value == "nosniff":
        return []
    if not value:
        return [header_finding(
            "X-Content-Type-Options",
            "X-Content-Type-Options header is missing; browsers may MIME-sniff responses",
        )]
    return [header_finding(
        "X-Content-Type-Options",
        f"X-Content-Type-Options has unexpected value '{value}'",
        value,
    )]


def check_server_version(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for name in ("server", "x-powered-by", "x-aspnet-version"):
        value = snapshot.header(name)
        if value and VERSION_PATTERN.search(value):
            findings.append(header_finding(name, f"{name} header discloses a version: {value}", value))
    return findings


# Content Security Policy


def check_missing_csp(snapshot: Snapshot) -> list[Finding]:
    if csp_policies(snapshot):
        return []
    return [header_finding("Content-Security-Policy", "No Content-Security-Policy header present")]


def _csp_source_check(keyword: str, message: str):
    def check(snapshot: Snapshot) -> list[Finding]:
        findings = []
        for origin, policy in csp_policies(snapshot):
            sources = _script_sources(parse_csp(policy))
            if sources and keyword in sources:
                # 'unsafe-inline' is ignored by browsers when a nonce or hash is present
                if keyword == "'unsafe-inline'" and any(
                    s.startswith(("'nonce-", "'sha256-", "'sha384-", "'sha512-")) for s in sources
                ):
                    continue
                findings.append(header_finding("Content-Security-Policy", message, f"{origin}: {policy}"))
        return findings

    return check


def check_csp_wildcard(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for origin, policy in csp_policies(snapshot):
        for directive, sources in parse_csp(policy).items():
            if directive.endswith("-src") and any(s in ("*", "data:", "http:", "https:") for s in sources):
                broad = [s for s in sources if s in ("*", "data:", "http:", "https:")]
                findings.append(header_finding(
                    "Content-Security-Policy",
                    f"CSP directive {directive} allows overly broad sources: {' '.join(broad)}",
                    f"{origin}: {policy}",
                ))
    return findings


def check_csp_object_src(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for origin, policy in csp_policies(snapshot):
        directives = parse_csp(policy)
        sources = directives.get("object-src", directives.get("default-src"))
        if sources is None or sources != ["'none'"]:
            findings.append(header_finding(
                "Content-Security-Policy",
                "CSP does not restrict object-src to 'none' (allows plugins)",
                f"{origin}: {policy}",
            ))
    return findings


# CORS


def check_cors_wildcard(snapshot: Snapshot) -> list[Finding]:
    acao = snapshot.header("access-control-allow-origin").strip()
    if acao == "*":
        return [header_finding(
            "Access-Control-Allow-Origin",
            "CORS allows any origin (*) which may expose sensitive data",
            acao,
        )]
    if acao.lower() == "null":
        return [header_finding(
            "Access-Control-Allow-Origin",
            "CORS allows the 'null' origin, which sandboxed documents can forge",
            acao,
        )]
    return []


def check_cors_credentials(snapshot: Snapshot) -> list[Finding]:
    acao = snapshot.header("access-control-allow-origin").strip()
    acac = snapshot.header("access-control-allow-credentials").strip().lower()
    if acac == "true" and acao in ("*", "null"):
        return [header_finding(
            "Access-Control-Allow-Credentials",
            f"CORS allows credentials together with origin '{acao}'",
            acac,
        )]
    return []


# Clickjacking


def check_clickjacking(snapshot: Snapshot) -> list[Finding]:
    xfo = snapshot.header("x-frame-options").strip().lower()
    if xfo in ("deny", "sameorigin"):
        return []
    header = snapshot.header("content-security-policy")
    if header and "frame-ancestors" in parse_csp(header):
        return []
    return [document_finding(
        "Page can be framed by any origin: neither X-Frame-Options nor CSP frame-ancestors is set",
    )]


# Permissions-Policy


def check_permissions_policy(snapshot: Snapshot) -> list[Finding]:
    if snapshot.header("permissions-policy") or snapshot.header("feature-policy"):
        return []
    return [header_finding(
        "Permissions-Policy",
        "Permissions-Policy header is missing; powerful browser features are not restricted",
    )]


RULES: list[Rule] = [
    Rule(
        id="missing-x-frame-options",
        name="Missing X-Frame-Options",
        category=Category.HEADERS,
        severity=Severity.MEDIUM,
        description="X-Frame-Options should be DENY or SAMEORIGIN",
        evaluate=check_x_frame_options,
        recommendation="Add 'X-Frame-Options: DENY' or 'X-Frame-Options: SAMEORIGIN' header",
        requires_headers=True,
    ),
    Rule(
        id="missing-referrer-policy",
        name="Missing Referrer-Policy",
        category=Category.HEADERS,
        severity=Severity.LOW,
        description="Referrer-Policy controls how much of the URL leaks to other sites",
        evaluate=_missing_header(
            "referrer-policy",
            "Referrer-Policy header is missing; full URLs may leak to third parties",
        ),
        recommendation="Set 'Referrer-Policy: strict-origin-when-cross-origin' or stricter",
        requires_headers=True,
    ),
    Rule(
        id="missing-hsts",
        name="Missing Strict-Transport-Security",
        category=Category.HEADERS,
        severity=Severity.HIGH,
        description="HTTPS pages should enforce HSTS with a long max-age",
        evaluate=check_hsts,
        recommendation="Set 'Strict-Transport-Security: max-age=31536000; includeSubDomains'",
        requires_headers=True,
    ),
    Rule(
        id="missing-x-content-type-options",
        name="Missing X-Content-Type-Options",
        category=Category.HEADERS,
        severity=Severity.LOW,
        description="X-Content-Type-Options: nosniff prevents MIME confusion attacks",
        evaluate=check_x_content_type_options,
        recommendation="Set 'X-Content-Type-Options: nosniff'",
        requires_headers=True,
    ),
    Rule(
        id="server-version-disclosure",
        name="Server Version Disclosure",
        category=Category.HEADERS,
        severity=Severity.INFO,
        description="Server banners with versions help attackers pick exploits",
        evaluate=check_server_version,
        recommendation="Remove version numbers from Server and X-Powered-By headers",
        requires_headers=True,
    ),
    Rule(
        id="missing-csp-header",
        name="Missing Content Security Policy",
        category=Category.CSP,
        severity=Severity.HIGH,
        description="A Content-Security-Policy limits the impact of XSS",
        evaluate=check_missing_csp,
        recommendation="Implement a strict CSP to prevent XSS and data injection",
        requires_headers=True,
    ),
    Rule(
        id="csp-unsafe-inline",
        name="CSP Allows unsafe-inline",
        category=Category.CSP,
        severity=Severity.HIGH,
        description="'unsafe-inline' in script sources defeats CSP's XSS protection",
        evaluate=_csp_source_check("'unsafe-inline'", "CSP script sources allow 'unsafe-inline'"),
        recommendation="Replace 'unsafe-inline' with nonces or hashes",
    ),
    Rule(
        id="csp-unsafe-eval",
        name="CSP Allows unsafe-eval",
        category=Category.CSP,
        severity=Severity.MEDIUM,
        description="'unsafe-eval' allows eval() and similar functions",
        evaluate=_csp_source_check("'unsafe-eval'", "CSP script sources allow 'unsafe-eval'"),
        recommendation="Remove 'unsafe-eval' and refactor code that relies on eval()",
    ),
    Rule(
        id="csp-wildcard-source",
        name="CSP Wildcard Source",
        category=Category.CSP,
        severity=Severity.MEDIUM,
        description="Wildcard, scheme-only or data: sources allow loading from any host",
        evaluate=check_csp_wildcard,
        recommendation="List explicit trusted hosts instead of wildcards",
    ),
    Rule(
        id="csp-missing-object-src",
        name="CSP Missing object-src 'none'",
        category=Category.CSP,
        severity=Severity.LOW,
        description="object-src should be 'none' to block plugin content",
        evaluate=check_csp_object_src,
        recommendation="Add \"object-src 'none'\" to the policy",
    ),
    Rule(
        id="cors-wildcard-origin",
        name="Permissive CORS Origin",
        category=Category.CORS,
        severity=Severity.MEDIUM,
        description="Access-Control-Allow-Origin should list trusted origins",
        evaluate=check_cors_wildcard,
        recommendation="Restrict CORS to specific trusted origins",
        requires_headers=True,
    ),
    Rule(
        id="cors-credentials-with-wildcard",
        name="CORS Credentials With Wildcard Origin",
        category=Category.CORS,
        severity=Severity.HIGH,
        description="Credentialed CORS must never be combined with '*' or 'null' origins",
        evaluate=check_cors_credentials,
        recommendation="Validate Origin against an allow-list before enabling credentials",
        requires_headers=True,
    ),
    Rule(
        id="clickjacking-unprotected",
        name="Clickjacking Protection Missing",
        category=Category.CLICKJACKING,
        severity=Severity.MEDIUM,
        description="Pages should refuse to be framed by untrusted origins",
        evaluate=check_clickjacking,
        recommendation="Add X-Frame-Options: DENY and/or Content-Security-Policy: frame-ancestors 'none'",
        requires_headers=True,
    ),
    Rule(
        id="missing-permissions-policy",
        name="Missing Permissions-Policy",
        category=Category.PERMISSIONS_POLICY,
        severity=Severity.LOW,
        description="Permissions-Policy restricts camera, microphone, geolocation and similar APIs",
        evaluate=check_permissions_policy,
        recommendation="Set a Permissions-Policy header disabling features the page does not use",
        requires_headers=True,
    ),
]
