"""Canonical result model that every reporter serializes from."""
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from qastell.decision import RuleFailure, ThresholdConfig, decide
from qastell.licensing import LicenseTier, LicenseUsage
from qastell.reporting.html_reporter import HtmlReporter, SummaryHtmlReporter
from qastell.reporting.json_reporter import JsonReporter
from qastell.reporting.sarif_reporter import SarifReporter
from qastell.rules.base import Category, Rule, Severity, Violation
from qastell.version import TOOL_NAME, VERSION


@dataclass(frozen=True)
class RuleResult:
    """Outcome of evaluating one rule against one snapshot."""

    rule: Rule
    violations: tuple[Violation, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rule": self.rule.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "error": self.error,
        }


@dataclass(frozen=True)
class Summary:
    """Aggregate counts. ``total == sum(by_severity) == sum(by_category)``."""

    total: int
    by_severity: Mapping[str, int]
    by_category: Mapping[str, int]
    rules_run: int
    rules_errored: int = 0

    @classmethod
    def from_results(cls, results: tuple[RuleResult, ...]) -> "Summary":
        by_severity = {severity.value: 0 for severity in Severity.ordered()}
        by_category = {category.value: 0 for category in Category}
        total = 0
        for result in results:
            for violation in result.violations:
                total += 1
                by_severity[violation.severity.value] += 1
                by_category[violation.category.value] += 1
        return cls(
            total=total,
            by_severity=MappingProxyType(by_severity),
            by_category=MappingProxyType(by_category),
            rules_run=len(results),
            rules_errored=sum(1 for r in results if r.error is not None),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "bySeverity": dict(self.by_severity),
            "byCategory": dict(self.by_category),
            "rulesRun": self.rules_run,
            "rulesErrored": self.rules_errored,
        }


@dataclass(frozen=True)
class RawResults:
    url: str
    duration: float  # milliseconds
    results: tuple[RuleResult, ...]
    framework: str
    timestamp: datetime

    @property
    def errors(self) -> list[RuleResult]:
        return [r for r in self.results if r.error is not None]


@dataclass(frozen=True)
class AuditResults:
    """Result of one ``audit()`` call; immutable once produced."""

    raw: RawResults
    violations: tuple[Violation, ...]
    summary: Summary
    tier: LicenseTier
    skipped: bool = False
    license: LicenseUsage | None = None
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    @classmethod
    def from_rule_results(
        cls,
        raw: RawResults,
        tier: LicenseTier,
        license: LicenseUsage | None = None,
        thresholds: ThresholdConfig | None = None,
        skipped: bool = False,
    ) -> "AuditResults":
        violations = tuple(v for result in raw.results for v in result.violations)
        return cls(
            raw=raw,
            violations=violations,
            summary=Summary.from_results(raw.results),
            tier=tier,
            skipped=skipped,
            license=license,
            thresholds=thresholds or ThresholdConfig(),
        )

    def passed(self) -> bool:
        return decide(self.violations, self.thresholds).passed

    def get_failures(self) -> list[RuleFailure]:
        return list(decide(self.violations, self.thresholds).failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. The generation timestamp lives only in metadata."""
        return {
            "metadata": {
                "tool": TOOL_NAME,
                "version": VERSION,
                "tier": self.tier.value,
                "generatedAt": self.raw.timestamp.isoformat(),
            },
            "url": self.raw.url,
            "framework": self.raw.framework,
            "duration": round(self.raw.duration, 2),
            "skipped": self.skipped,
            "passed": self.passed(),
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.raw.results],
            "failures": [f.to_dict() for f in self.get_failures()],
            "thresholds": self.thresholds.to_dict(),
        }

    def to_html(self) -> str:
        return HtmlReporter().generate(self)

    def to_summary_html(self, top_n: int | None = None) -> str:
        return SummaryHtmlReporter(top_n=top_n).generate(self)

    def to_json(self) -> str:
        return JsonReporter().generate(self)

    def to_sarif(self) -> str:
        return SarifReporter().generate(self)
