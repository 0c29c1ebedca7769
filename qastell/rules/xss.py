"""Client-side injection rules: inline handlers, DOM clobbering, mXSS, sinks, prototype pollution."""
import re
from urllib.parse import unquote, urljoin, urlsplit

from qastell.adapters.snapshot import Snapshot
from qastell.rules.base import (
    Category,
    ElementRef,
    Finding,
    Rule,
    Severity,
    document_finding,
    element_finding,
)

EVENT_HANDLER_ATTRIBUTE = re.compile(r"^on[a-z]{3,}$")

# Names that shadow document/window properties when used as id or name
CLOBBERABLE_NAMES = frozenset({
    "location", "cookie", "domain", "referrer", "forms", "images", "links", "body", "head",
    "documentelement", "defaultview", "getelementbyid", "getelementsbytagname", "queryselector",
    "queryselectorall", "createelement", "write", "writeln", "open", "close", "alert", "eval",
    "origin", "url", "documenturi", "baseuri", "parentnode", "attributes", "nodename",
    "innerhtml", "submit", "action", "method", "config", "settings", "__proto__", "prototype",
})

MXSS_MARKUP_IN_ATTRIBUTE = re.compile(
    r"<\s*/?\s*(?:script|img|svg|iframe|style|noscript|math|template|title|textarea|xmp|noembed)\b",
    re.IGNORECASE,
)

# Dangerous DOM sinks in inline scripts
SINK_PATTERNS = [
    (r"\.innerHTML\s*=", "innerHTML assignment"),
    (r"\.outerHTML\s*=", "outerHTML assignment"),
    (r"document\.write\s*\(", "document.write()"),
    (r"document\.writeln\s*\(", "document.writeln()"),
    (r"\beval\s*\(", "eval()"),
    (r"setTimeout\s*\(\s*[\"']", "setTimeout() with a string"),
    (r"setInterval\s*\(\s*[\"']", "setInterval() with a string"),
    (r"new\s+Function\s*\(", "Function constructor"),
    (r"\.insertAdjacentHTML\s*\(", "insertAdjacentHTML()"),
    (r"location\.(?:hash|search)[^;]*\.(?:innerHTML|outerHTML)", "URL-controlled HTML"),
]

PROTOTYPE_URL_PATTERNS = re.compile(
    r"__proto__|constructor\s*(?:\[|\.)\s*prototype|prototype\s*(?:\[|\.)", re.IGNORECASE
)
PROTOTYPE_SCRIPT_PATTERNS = [
    (r"\.__proto__\s*(?:\[|\.)[^=;]*=(?!=)", "__proto__ property write"),
    (r"\[\s*[\"']__proto__[\"']\s*\]", "__proto__ bracket access"),
    (r"Object\.prototype\s*(?:\[|\.)[^=;]*=(?!=)", "Object.prototype property write"),
]


def _context(text: str, start: int, end: int, size: int = 30) -> str:
    return text[max(0, start - size):end + size].strip()


def check_inline_handlers(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.elements:
        handlers = sorted(name for name in element.attributes if EVENT_HANDLER_ATTRIBUTE.match(name))
        if handlers:
            findings.append(element_finding(
                element, f"Inline event handler(s) {', '.join(handlers)} on <{element.tag}>"
            ))
    return findings


def check_dom_clobbering(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.elements:
        for attr in ("id", "name"):
            value = element.attr(attr)
            if value and value.lower() in CLOBBERABLE_NAMES:
                findings.append(element_finding(
                    element,
                    f"<{element.tag} {attr}=\"{value}\"> can clobber the built-in '{value}' property",
                ))
    return findings


def check_mutation_xss(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for element in snapshot.elements:
        for name, value in element.attributes.items():
            match = MXSS_MARKUP_IN_ATTRIBUTE.search(value)
            if match:
                findings.append(element_finding(
                    element,
                    f"Attribute '{name}' contains markup ('{match.group(0)}') that may re-parse into elements",
                ))
                break
    return findings


def check_dangerous_sinks(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for script in snapshot.scripts:
        if script.is_external or not script.content:
            continue
        for pattern, label in SINK_PATTERNS:
            match = re.search(pattern, script.content, re.IGNORECASE)
            if match:
                findings.append(Finding(
                    message=f"Inline script uses dangerous DOM sink: {label}",
                    element=ElementRef(script.selector, _context(script.content, match.start(), match.end())),
                ))
    return findings


def check_base_tag(snapshot: Snapshot) -> list[Finding]:
    findings = []
    page = urlsplit(snapshot.url)
    for base in snapshot.find("base"):
        href = base.attr("href")
        if not href:
            continue
        target = urlsplit(urljoin(snapshot.url, href))
        if (target.scheme, target.netloc) != (page.scheme, page.netloc):
            findings.append(element_finding(base, f"<base> redirects relative URLs to another origin: {href}"))
        elif "head" not in base.parent_tags:
            findings.append(element_finding(base, "<base> element outside <head> suggests injected markup"))
    return findings


def check_prototype_pollution(snapshot: Snapshot) -> list[Finding]:
    findings = []
    parts = urlsplit(snapshot.url)
    for label, component in (("query string", parts.query), ("fragment", parts.fragment)):
        decoded = unquote(component)
        if decoded and PROTOTYPE_URL_PATTERNS.search(decoded):
            findings.append(document_finding(
                f"URL {label} contains a prototype pollution payload", decoded[:200]
            ))
    for script in snapshot.scripts:
        if script.is_external or not script.content:
            continue
        for pattern, label in PROTOTYPE_SCRIPT_PATTERNS:
            match = re.search(pattern, script.content)
            if match:
                findings.append(Finding(
                    message=f"Inline script performs {label}",
                    element=ElementRef(script.selector, _context(script.content, match.start(), match.end())),
                ))
    return findings


RULES: list[Rule] = [
    Rule(
        id="inline-event-handlers",
        name="Inline Event Handlers",
        category=Category.INLINE_HANDLERS,
        severity=Severity.MEDIUM,
        description="onclick/onerror style attributes require 'unsafe-inline' and widen XSS impact",
        evaluate=check_inline_handlers,
        recommendation="Register handlers with addEventListener from external scripts",
    ),
    Rule(
        id="dom-clobbering-risk",
        name="DOM Clobbering",
        category=Category.DOM_CLOBBERING,
        severity=Severity.MEDIUM,
        description="id/name attributes that shadow built-in DOM properties",
        evaluate=check_dom_clobbering,
        recommendation="Rename ids and names that collide with document or window properties",
    ),
    Rule(
        id="mutation-xss-vectors",
        name="Mutation XSS Vectors",
        category=Category.MUTATION_XSS,
        severity=Severity.HIGH,
        description="Attribute values containing markup can mutate into live elements on re-parse",
        evaluate=check_mutation_xss,
        recommendation="Encode '<' in attribute values and sanitize with a DOM-based sanitizer",
    ),
    Rule(
        id="dangerous-dom-sinks",
        name="Dangerous DOM Sinks",
        category=Category.HTML_INJECTION,
        severity=Severity.MEDIUM,
        description="Inline scripts writing HTML or evaluating strings",
        evaluate=check_dangerous_sinks,
        recommendation="Use textContent, DOM APIs or Trusted Types instead of HTML string sinks",
    ),
    Rule(
        id="base-tag-injection",
        name="Base Tag Hijacking",
        category=Category.HTML_INJECTION,
        severity=Severity.HIGH,
        description="A <base> element pointing elsewhere rewrites every relative URL",
        evaluate=check_base_tag,
        recommendation="Remove unexpected <base> elements and set CSP base-uri 'self'",
    ),
    Rule(
        id="prototype-pollution-vectors",
        name="Prototype Pollution",
        category=Category.PROTOTYPE_POLLUTION,
        severity=Severity.HIGH,
        description="__proto__ payloads in the URL or prototype writes in inline scripts",
        evaluate=check_prototype_pollution,
        recommendation="Freeze Object.prototype and use Map or Object.create(null) for untrusted keys",
    ),
]
