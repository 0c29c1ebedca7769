"""
Tests for the threshold decision engine.
"""

import pytest

from qastell.decision import ThresholdConfig, decide
from qastell.errors import ConfigurationError
from qastell.rules.base import Category, ElementRef, Rule, Severity, Violation


def make_rule(rule_id: str, severity: Severity) -> Rule:
    return Rule(
        id=rule_id,
        name=rule_id.upper(),
        category=Category.HEADERS,
        severity=severity,
        description=f"Test rule {rule_id}",
        evaluate=lambda snapshot: [],
    )


def violations_of(rule: Rule, count: int) -> list[Violation]:
    return [
        Violation(
            rule_id=rule.id,
            rule=rule,
            message=f"{rule.id} #{i}",
            element=ElementRef("document"),
            severity=rule.severity,
        )
        for i in range(count)
    ]


RULE_A = make_rule("a", Severity.CRITICAL)
RULE_B = make_rule("b", Severity.MEDIUM)
RULE_C = make_rule("c", Severity.LOW)


class TestThresholdConfig:
    """Tests for ThresholdConfig construction."""

    def test_defaults_are_zero_tolerance(self) -> None:
        config = ThresholdConfig.build()

        assert all(config.thresholds[s] == 0 for s in Severity)
        assert config.limit_for("anything", Severity.INFO) == 0

    def test_partial_thresholds_merge_with_defaults(self) -> None:
        config = ThresholdConfig.build(thresholds={"low": 5, Severity.INFO: 99})

        assert config.thresholds[Severity.LOW] == 5
        assert config.thresholds[Severity.INFO] == 99
        assert config.thresholds[Severity.HIGH] == 0

    def test_rule_threshold_precedence(self) -> None:
        config = ThresholdConfig.build(thresholds={"critical": 0}, rule_thresholds={"a": 2})

        assert config.limit_for("a", Severity.CRITICAL) == 2
        assert config.limit_for("b", Severity.CRITICAL) == 0

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="negative"):
            ThresholdConfig.build(thresholds={"high": -1})

    def test_non_integer_threshold_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ThresholdConfig.build(rule_thresholds={"a": "2"})  # type: ignore[dict-item]

    def test_unknown_severity_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ThresholdConfig.build(thresholds={"severe": 1})

    def test_to_dict(self) -> None:
        config = ThresholdConfig.build(rule_thresholds={"b": 1, "a": 2}, allowed_violations=["z"])

        result = config.to_dict()

        assert list(result["thresholds"]) == ["critical", "high", "medium", "low", "info"]
        assert list(result["ruleThresholds"]) == ["a", "b"]
        assert result["allowedViolations"] == ["z"]


class TestDecide:
    """Tests for the pass/fail decision."""

    def test_no_violations_pass(self) -> None:
        decision = decide([])

        assert decision.passed
        assert decision.failures == ()

    def test_severity_thresholds_and_ordering(self) -> None:
        """Critical and medium fail, low is tolerated; critical is listed first."""
        violations = violations_of(RULE_C, 1) + violations_of(RULE_B, 1) + violations_of(RULE_A, 1)
        config = ThresholdConfig.build(thresholds={"critical": 0, "medium": 0, "low": 999})

        decision = decide(violations, config)

        assert not decision.passed
        assert [f.rule.id for f in decision.failures] == ["a", "b"]

    def test_rule_threshold_overrides_severity_default(self) -> None:
        config = ThresholdConfig.build(thresholds={"critical": 0}, rule_thresholds={"a": 2})

        assert decide(violations_of(RULE_A, 2), config).passed
        assert not decide(violations_of(RULE_A, 3), config).passed

    def test_allowed_violations_skip_rule(self) -> None:
        config = ThresholdConfig.build(allowed_violations=["a"])

        decision = decide(violations_of(RULE_A, 5) + violations_of(RULE_B, 1), config)

        assert [f.rule.id for f in decision.failures] == ["b"]

    def test_ties_ordered_by_rule_id(self) -> None:
        rule_z = make_rule("z", Severity.HIGH)
        rule_m = make_rule("m", Severity.HIGH)

        decision = decide(violations_of(rule_z, 1) + violations_of(rule_m, 1))

        assert [f.rule.id for f in decision.failures] == ["m", "z"]

    def test_failure_to_dict(self) -> None:
        failure = decide(violations_of(RULE_B, 3)).failures[0]

        assert failure.to_dict() == {"ruleId": "b", "severity": "medium", "count": 3, "limit": 0}
