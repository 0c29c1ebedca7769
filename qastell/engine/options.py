"""Per-call audit options."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from qastell.decision import ThresholdConfig
from qastell.errors import ConfigurationError
from qastell.rules.base import Category, Rule, Severity
from qastell.rules.registry import parse_category, parse_severity

# camelCase aliases accepted in option mappings
_ALIASES = {
    "skipRules": "skip_rules",
    "ruleThresholds": "rule_thresholds",
    "allowedViolations": "allowed_violations",
    "severityOverrides": "severity_overrides",
}


@dataclass(frozen=True)
class AuditOptions:
    include: tuple[Category, ...] | None = None
    exclude: tuple[Category, ...] = ()
    skip_rules: frozenset[str] = frozenset()
    rules: tuple[Rule, ...] | None = None
    thresholds: Mapping[Severity | str, int] = field(default_factory=dict)
    rule_thresholds: Mapping[str, int] = field(default_factory=dict)
    allowed_violations: frozenset[str] = frozenset()
    severity_overrides: Mapping[str, Severity] = field(default_factory=dict)

    @classmethod
    def from_value(
        cls,
        value: "AuditOptions | Mapping[str, Any] | Iterable[Rule] | None" = None,
        **kwargs: Any,
    ) -> "AuditOptions":
        """Normalize the accepted option shapes.

        ``value`` may be an AuditOptions, a mapping of option names (snake or
        camel case), or a bare iterable of rules (the legacy form, equivalent
        to ``{"rules": [...]}``). Keyword arguments win over ``value``.

        Raises:
            ConfigurationError: on unknown option names, categories or severities
        """
        if value is None:
            raw: dict[str, Any] = {}
        elif isinstance(value, AuditOptions):
            raw = {f.name: getattr(value, f.name) for f in fields(cls)}
        elif isinstance(value, Mapping):
            raw = {_ALIASES.get(k, k): v for k, v in value.items()}
        elif isinstance(value, Iterable) and not isinstance(value, str | bytes):
            raw = {"rules": list(value)}
        else:
            raise ConfigurationError(f"Unsupported audit options: {type(value).__name__}")

        raw.update({_ALIASES.get(k, k): v for k, v in kwargs.items()})

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(f"Unknown audit option(s): {', '.join(unknown)}")

        include = raw.get("include")
        rules = raw.get("rules")
        for rule in rules or ():
            if not isinstance(rule, Rule):
                raise ConfigurationError(f"Expected a Rule, got {type(rule).__name__}")

        return cls(
            include=tuple(parse_category(c) for c in include) if include is not None else None,
            exclude=tuple(parse_category(c) for c in raw.get("exclude") or ()),
            skip_rules=frozenset(raw.get("skip_rules") or ()),
            rules=tuple(rules) if rules is not None else None,
            thresholds=dict(raw.get("thresholds") or {}),
            rule_thresholds=dict(raw.get("rule_thresholds") or {}),
            allowed_violations=frozenset(raw.get("allowed_violations") or ()),
            severity_overrides={
                str(rule_id): parse_severity(severity)
                for rule_id, severity in (raw.get("severity_overrides") or {}).items()
            },
        )

    def threshold_config(self) -> ThresholdConfig:
        return ThresholdConfig.build(
            thresholds=self.thresholds,
            rule_thresholds=self.rule_thresholds,
            allowed_violations=self.allowed_violations,
        )
