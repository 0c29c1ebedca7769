"""
Tests for auditor configuration and audit option parsing.
"""

import pytest

from qastell.config import AuditorConfig
from qastell.engine.options import AuditOptions
from qastell.errors import ConfigurationError
from qastell.rules import Category, Severity, get_rule


class TestAuditorConfig:
    """Tests for environment-driven auditor settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "QASTELL_CAPTURE_TIMEOUT", "QASTELL_CAPTURE_RETRIES",
            "QASTELL_RULE_WORKERS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = AuditorConfig()

        assert config.capture_timeout == 30.0
        assert config.capture_retries == 3
        assert config.rule_workers == 1

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QASTELL_CAPTURE_TIMEOUT", "2.5")
        monkeypatch.setenv("QASTELL_RULE_WORKERS", "4")

        config = AuditorConfig()

        assert config.capture_timeout == 2.5
        assert config.rule_workers == 4

    def test_explicit_arguments_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QASTELL_CAPTURE_RETRIES", "7")

        assert AuditorConfig(capture_retries=1).capture_retries == 1

    def test_invalid_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QASTELL_CAPTURE_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="QASTELL_CAPTURE_TIMEOUT"):
            AuditorConfig()

        monkeypatch.setenv("QASTELL_CAPTURE_TIMEOUT", "-1")
        with pytest.raises(ConfigurationError, match="positive"):
            AuditorConfig()


class TestAuditOptions:
    """Tests for AuditOptions.from_value."""

    def test_none(self) -> None:
        options = AuditOptions.from_value(None)

        assert options.include is None
        assert options.rules is None

    def test_mapping_with_camel_case(self) -> None:
        options = AuditOptions.from_value({
            "include": ["cookies"],
            "skipRules": ["cookie-without-secure"],
            "ruleThresholds": {"missing-hsts": 3},
            "severityOverrides": {"missing-hsts": "low"},
        })

        assert options.include == (Category.COOKIES,)
        assert options.skip_rules == frozenset({"cookie-without-secure"})
        assert options.severity_overrides == {"missing-hsts": Severity.LOW}
        assert options.threshold_config().limit_for("missing-hsts", Severity.HIGH) == 3

    def test_bare_rule_list(self) -> None:
        rule = get_rule("missing-hsts")

        assert AuditOptions.from_value([rule]).rules == (rule,)

    def test_keywords_win(self) -> None:
        options = AuditOptions.from_value({"exclude": ["csp"]}, exclude=["cors"])

        assert options.exclude == (Category.CORS,)

    def test_invalid_values(self) -> None:
        with pytest.raises(ConfigurationError):
            AuditOptions.from_value({"include": ["bogus"]})
        with pytest.raises(ConfigurationError):
            AuditOptions.from_value({"severity_overrides": {"x": "severe"}})
        with pytest.raises(ConfigurationError):
            AuditOptions.from_value(["missing-hsts"])
        with pytest.raises(ConfigurationError):
            AuditOptions.from_value(42)  # type: ignore[arg-type]
