"""Rule, finding and violation records."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from qastell.adapters.snapshot import ElementInfo, Snapshot


class Severity(Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def score(self) -> int:
        """Numeric score for severity."""
        scores = {
            "critical": 10,
            "high": 8,
            "medium": 5,
            "low": 3,
            "info": 1,
        }
        return scores.get(self.value, 0)

    @classmethod
    def ordered(cls) -> list["Severity"]:
        """Most severe first."""
        return sorted(cls, key=lambda s: s.score, reverse=True)


class Category(Enum):
    """Rule categories. Values are persisted by callers and never renamed."""

    HEADERS = "headers"
    CSP = "csp"
    COOKIES = "cookies"
    FORMS = "forms"
    CORS = "cors"
    CLICKJACKING = "clickjacking"
    LINKS = "links"
    TABNABBING = "tabnabbing"
    SRI = "sri"
    THIRD_PARTY = "third-party"
    INLINE_HANDLERS = "inline-handlers"
    DOM_CLOBBERING = "dom-clobbering"
    MUTATION_XSS = "mutation-xss"
    HTML_INJECTION = "html-injection"
    PROTOTYPE_POLLUTION = "prototype-pollution"
    SENSITIVE_DATA = "sensitive-data"
    PERMISSIONS_POLICY = "permissions-policy"
    MIXED_CONTENT = "mixed-content"


@dataclass(frozen=True)
class ElementRef:
    """Where a finding was observed."""

    selector: str
    context: str | None = None

    @classmethod
    def of(cls, element: ElementInfo) -> "ElementRef":
        return cls(selector=element.selector, context=element.start_tag)

    def to_dict(self) -> dict[str, Any]:
        return {"selector": self.selector, "context": self.context}


@dataclass(frozen=True)
class Finding:
    """One occurrence of a rule's condition, as returned by ``Rule.evaluate``."""

    message: str
    element: ElementRef = field(default_factory=lambda: ElementRef("document"))


@dataclass(frozen=True)
class Rule:
    """A named, categorized, pure check.

    ``evaluate`` must not mutate its snapshot or any shared state. Rules that
    read response headers set ``requires_headers`` so the engine can skip
    them when the host could not retrieve headers.
    """

    id: str
    name: str
    category: Category
    severity: Severity
    description: str
    evaluate: Callable[[Snapshot], list[Finding]] = field(compare=False, repr=False)
    recommendation: str = ""
    requires_headers: bool = False

    def run(self, snapshot: Snapshot) -> list[Finding]:
        if self.requires_headers and not snapshot.headers_available:
            return []
        return list(self.evaluate(snapshot))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class Violation:
    """A finding bound to its rule with the resolved severity."""

    rule_id: str
    rule: Rule
    message: str
    element: ElementRef
    severity: Severity

    @property
    def category(self) -> Category:
        return self.rule.category

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule.name,
            "category": self.rule.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "element": self.element.to_dict(),
        }


def element_finding(element: ElementInfo, message: str) -> Finding:
    return Finding(message=message, element=ElementRef.of(element))


def document_finding(message: str, context: str | None = None) -> Finding:
    return Finding(message=message, element=ElementRef("document", context))


def header_finding(header: str, message: str, value: str | None = None) -> Finding:
    context = f"{header}: {value}" if value is not None else None
    return Finding(message=message, element=ElementRef(f"header:{header.lower()}", context))
