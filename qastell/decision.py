"""Decision engine: severity thresholds, per-rule thresholds and allow-lists.

Turns raw violations into a pass/fail verdict and the ordered list of failing
rules.
"""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from qastell.errors import ConfigurationError
from qastell.rules.base import Rule, Severity, Violation
from qastell.rules.registry import parse_severity

DEFAULT_THRESHOLDS: Mapping[Severity, int] = {severity: 0 for severity in Severity}


def _validate_limit(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"Threshold for {key!r} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"Threshold for {key!r} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class ThresholdConfig:
    """Per-call decision configuration, merged against zero-tolerance defaults."""

    thresholds: Mapping[Severity, int] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))
    rule_thresholds: Mapping[str, int] = field(default_factory=dict)
    allowed_violations: frozenset[str] = frozenset()

    @classmethod
    def build(
        cls,
        thresholds: Mapping[Severity | str, int] | None = None,
        rule_thresholds: Mapping[str, int] | None = None,
        allowed_violations: Iterable[str] | None = None,
    ) -> "ThresholdConfig":
        merged = dict(DEFAULT_THRESHOLDS)
        for key, value in (thresholds or {}).items():
            severity = parse_severity(key)
            merged[severity] = _validate_limit(severity.value, value)
        per_rule = {
            str(rule_id): _validate_limit(str(rule_id), value)
            for rule_id, value in (rule_thresholds or {}).items()
        }
        return cls(
            thresholds=merged,
            rule_thresholds=per_rule,
            allowed_violations=frozenset(allowed_violations or ()),
        )

    def limit_for(self, rule_id: str, severity: Severity) -> int:
        """Rule-level threshold takes precedence over the severity threshold."""
        if rule_id in self.rule_thresholds:
            return self.rule_thresholds[rule_id]
        return self.thresholds.get(severity, 0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "thresholds": {s.value: self.thresholds.get(s, 0) for s in Severity.ordered()},
            "ruleThresholds": dict(sorted(self.rule_thresholds.items())),
            "allowedViolations": sorted(self.allowed_violations),
        }


@dataclass(frozen=True)
class RuleFailure:
    """A rule whose violation count exceeded its limit."""

    rule: Rule
    violations: tuple[Violation, ...]
    limit: int

    @property
    def severity(self) -> Severity:
        if not self.violations:
            return self.rule.severity
        return max((v.severity for v in self.violations), key=lambda s: s.score)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ruleId": self.rule.id,
            "severity": self.severity.value,
            "count": len(self.violations),
            "limit": self.limit,
        }


@dataclass(frozen=True)
class Decision:
    passed: bool
    failures: tuple[RuleFailure, ...]


def decide(violations: Iterable[Violation], config: ThresholdConfig | None = None) -> Decision:
    """Apply the allow-list and thresholds to a set of violations.

    Args:
        violations: Every violation of one audit
        config: Decision configuration; zero tolerance when omitted

    Returns:
        Decision with failures ordered by descending severity, then rule id
    """
    config = config or ThresholdConfig()

    by_rule: dict[str, list[Violation]] = {}
    for violation in violations:
        by_rule.setdefault(violation.rule_id, []).append(violation)

    failures = []
    for rule_id, rule_violations in by_rule.items():
        if rule_id in config.allowed_violations:
            continue
        severity = max((v.severity for v in rule_violations), key=lambda s: s.score)
        limit = config.limit_for(rule_id, severity)
        if len(rule_violations) > limit:
            failures.append(
                RuleFailure(rule=rule_violations[0].rule, violations=tuple(rule_violations), limit=limit)
            )

    failures.sort(key=lambda f: (-f.severity.score, f.rule.id))
    return Decision(passed=not failures, failures=tuple(failures))
