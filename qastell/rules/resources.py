"""Rules about links and sub-resources: tabnabbing, SRI, third parties, mixed content."""
from urllib.parse import urljoin, urlsplit

from qastell.adapters.snapshot import Snapshot
from qastell.rules.base import Category, Finding, Rule, Severity, element_finding

RESOURCE_ATTRIBUTES = {
    "script": "src",
    "img": "src",
    "iframe": "src",
    "audio": "src",
    "video": "src",
    "source": "src",
    "embed": "src",
    "object": "data",
}


def site_of(host: str) -> str:
    """Approximate the registrable domain (last two labels)."""
    labels = [label for label in host.lower().split(".") if label]
    return ".".join(labels[-2:]) if len(labels) >= 2 else host.lower()


def is_third_party(snapshot: Snapshot, url: str) -> bool:
    absolute = urljoin(snapshot.url, url)
    parts = urlsplit(absolute)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return False
    return site_of(parts.hostname) != site_of(snapshot.host)


def check_javascript_links(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.find("a", "area", "iframe", "form"):
        attr = "action" if element.tag == "form" else "src" if element.tag == "iframe" else "href"
        value = (element.attr(attr) or "").strip().lower().replace("\t", "").replace("\n", "")
        if value.startswith("javascript:") and value not in ("javascript:void(0)", "javascript:void(0);", "javascript:;"):
            findings.append(element_finding(element, f"{element.tag} uses a javascript: URL in {attr}"))
    return findings


def check_noopener(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.find("a", "area", "form"):
        if (element.attr("target") or "").lower() != "_blank":
            continue
        rel = (element.attr("rel") or "").lower().split()
        if "noopener" in rel or "noreferrer" in rel:
            continue
        findings.append(element_finding(
            element,
            "Link opens a new window with target=_blank but without rel=\"noopener\"",
        ))
    return findings


def check_sri(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.find("script", "link"):
        if element.tag == "script":
            url = element.attr("src")
        else:
            rel = (element.attr("rel") or "").lower().split()
            url = element.attr("href") if ("stylesheet" in rel or "modulepreload" in rel) else None
        if not url or element.attr("integrity"):
            continue
        if is_third_party(snapshot, url):
            findings.append(element_finding(
                element, f"Cross-origin resource loaded without Subresource Integrity: {url}"
            ))
    return findings


def check_third_party_scripts(snapshot: Snapshot) -> list[Finding]:
    return [
        element_finding(
            script_el,
            f"Third-party script from {urlsplit(urljoin(snapshot.url, script_el.attr('src') or '')).hostname}",
        )
        for script_el in snapshot.find("script")
        if script_el.attr("src") and is_third_party(snapshot, script_el.attr("src") or "")
    ]


def check_third_party_iframes(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for frame in snapshot.find("iframe"):
        src = frame.attr("src") or ""
        if not src or not is_third_party(snapshot, src):
            continue
        if frame.has_attr("sandbox"):
            continue
        findings.append(element_finding(frame, f"Unsandboxed third-party iframe: {src}"))
    return findings


def check_mixed_content(snapshot: Snapshot) -> list[Finding]:
    if not snapshot.is_https:
        return []
    findings = []
    for element in snapshot.elements:
        attr = RESOURCE_ATTRIBUTES.get(element.tag)
        if element.tag == "link":
            attr = "href" if "stylesheet" in (element.attr("rel") or "").lower() else None
        if not attr:
            continue
        value = (element.attr(attr) or "").strip()
        if value.lower().startswith("http://"):
            findings.append(element_finding(element, f"HTTPS page loads {element.tag} over HTTP: {value}"))
    return findings


RULES: list[Rule] = [
    Rule(
        id="javascript-url-links",
        name="javascript: URLs",
        category=Category.LINKS,
        severity=Severity.MEDIUM,
        description="javascript: URLs execute code and bypass many XSS defences",
        evaluate=check_javascript_links,
        recommendation="Use event listeners registered from scripts instead of javascript: URLs",
    ),
    Rule(
        id="missing-noopener",
        name="Missing rel=noopener",
        category=Category.TABNABBING,
        severity=Severity.LOW,
        description="target=_blank without noopener gives the new page access to window.opener",
        evaluate=check_noopener,
        recommendation="Add rel=\"noopener noreferrer\" to links with target=_blank",
    ),
    Rule(
        id="missing-sri-attribute",
        name="Missing Subresource Integrity",
        category=Category.SRI,
        severity=Severity.MEDIUM,
        description="Cross-origin scripts and stylesheets should pin their content with integrity",
        evaluate=check_sri,
        recommendation="Add integrity and crossorigin attributes to CDN resources",
    ),
    Rule(
        id="third-party-scripts",
        name="Third-Party Scripts",
        category=Category.THIRD_PARTY,
        severity=Severity.INFO,
        description="Third-party scripts run with the page's full privileges",
        evaluate=check_third_party_scripts,
        recommendation="Review third-party scripts and self-host where possible",
    ),
    Rule(
        id="third-party-iframes",
        name="Unsandboxed Third-Party Iframes",
        category=Category.THIRD_PARTY,
        severity=Severity.LOW,
        description="Third-party frames should be sandboxed",
        evaluate=check_third_party_iframes,
        recommendation="Add a sandbox attribute with only the permissions the frame needs",
    ),
    Rule(
        id="mixed-content-resources",
        name="Mixed Content",
        category=Category.MIXED_CONTENT,
        severity=Severity.HIGH,
        description="HTTPS pages must not load sub-resources over HTTP",
        evaluate=check_mixed_content,
        recommendation="Serve every sub-resource over HTTPS",
    ),
]
