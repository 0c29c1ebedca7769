"""
Tests for the HTML, summary, JSON and SARIF reporters.
"""

import json
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import pytest

from qastell import (
    ConfigurationError,
    HtmlReporter,
    JsonReporter,
    LicenseError,
    LicenseTier,
    SarifReporter,
    SecurityAuditor,
    SummaryHtmlReporter,
    VERSION,
    init_license,
)
from qastell.results import AuditResults, RawResults, RuleResult
from qastell.rules.base import Category, ElementRef, Finding, Rule, Severity, Violation


def build_results(tier: LicenseTier = LicenseTier.FREE, skipped: bool = False) -> AuditResults:
    """Results with one violation per severity plus one errored rule."""
    rule_results = []
    for severity in Severity.ordered():
        rule = Rule(
            id=f"rule-{severity.value}",
            name=f"{severity.value.title()} Rule",
            category=Category.HEADERS if severity.score >= 5 else Category.LINKS,
            severity=severity,
            description=f"Description of the {severity.value} rule",
            evaluate=lambda snapshot: [],
            recommendation="Fix it",
        )
        violation = Violation(
            rule_id=rule.id,
            rule=rule,
            message=f"<b>{severity.value}</b> issue",
            element=ElementRef("div#main", '<div id="main">'),
            severity=severity,
        )
        rule_results.append(RuleResult(rule=rule, violations=(violation,)))
    broken = Rule(
        id="rule-broken",
        name="Broken",
        category=Category.CSP,
        severity=Severity.LOW,
        description="Raises",
        evaluate=lambda snapshot: [Finding("never")],
    )
    rule_results.append(RuleResult(rule=broken, error="rule-broken: ValueError: boom"))
    rule_results.sort(key=lambda r: r.rule.id)

    raw = RawResults(
        url="https://shop.example.com/?q=<x>",
        duration=123.4,
        results=tuple(rule_results),
        framework="playwright",
        timestamp=datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
    )
    return AuditResults.from_rule_results(raw, tier=tier, skipped=skipped)


class TestHtmlReporter:
    """Tests for the full HTML report."""

    def test_metadata(self) -> None:
        html = HtmlReporter().generate(build_results())

        assert html.startswith("<!DOCTYPE html>")
        assert f"v{VERSION}" in html
        assert "Free" in html
        assert "playwright" in html
        assert "2026-03-01 12:00:00 UTC" in html
        assert "123 ms" in html

    def test_content_is_escaped(self) -> None:
        html = HtmlReporter().generate(build_results())

        assert "<b>critical</b>" not in html
        assert "&lt;b&gt;critical&lt;/b&gt; issue" in html
        assert "?q=&lt;x&gt;" in html

    def test_grouped_by_category_then_severity(self) -> None:
        html = HtmlReporter().generate(build_results())

        assert html.index("<h3>headers</h3>") < html.index("<h3>links</h3>")
        assert html.index("rule-critical") < html.index("rule-high") < html.index("rule-medium")

    def test_errors_listed(self) -> None:
        html = HtmlReporter().generate(build_results())

        assert "Evaluation Errors" in html
        assert "ValueError: boom" in html

    def test_skipped_notice(self) -> None:
        html = HtmlReporter().generate(build_results(skipped=True))

        assert "Audit skipped" in html

    def test_deterministic(self) -> None:
        results = build_results()

        assert results.to_html() == results.to_html()


class TestSummaryHtmlReporter:
    """Tests for the compact summary."""

    def test_summary_is_compact(self) -> None:
        results = build_results()

        summary = results.to_summary_html()
        full = results.to_html()

        assert "<style" not in summary
        assert len(summary) * 2 < len(full)

    def test_top_n(self) -> None:
        summary = SummaryHtmlReporter(top_n=2).generate(build_results())

        assert "rule-critical" in summary
        assert "rule-high" in summary
        assert "rule-medium" not in summary
        assert f"v{VERSION}" in summary

    def test_top_n_zero_lists_no_violations(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QASTELL_SUMMARY_TOP_N", "3")

        summary = SummaryHtmlReporter(top_n=0).generate(build_results())

        assert "<ol>" not in summary
        assert "rule-critical" not in summary

    def test_negative_top_n_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            SummaryHtmlReporter(top_n=-1)

    @pytest.mark.asyncio
    async def test_summary_shorter_for_real_audit(self, playwright_page: Any) -> None:
        results = await SecurityAuditor(playwright_page).audit()

        assert results.violations
        assert len(results.to_summary_html()) * 2 < len(results.to_html())


class TestJsonReporter:
    """Tests for the JSON report."""

    def test_requires_enterprise(self) -> None:
        with pytest.raises(LicenseError):
            build_results(LicenseTier.FREE).to_json()

    def test_structure(self) -> None:
        results = build_results(LicenseTier.ENTERPRISE)

        payload = json.loads(results.to_json())

        assert payload["metadata"]["version"] == VERSION
        assert payload["metadata"]["tier"] == "enterprise"
        assert payload["metadata"]["generatedAt"] == "2026-03-01T12:00:00+00:00"
        assert payload["summary"]["total"] == 5
        assert payload["summary"]["rulesErrored"] == 1
        assert payload["passed"] is False
        assert [f["ruleId"] for f in payload["failures"]][0] == "rule-critical"

    def test_timestamp_only_in_metadata(self) -> None:
        text = build_results(LicenseTier.ENTERPRISE).to_json()

        assert text.count("2026-03-01T12:00:00") == 1

    def test_deterministic(self) -> None:
        results = build_results(LicenseTier.CORPORATE)

        assert JsonReporter().generate(results) == JsonReporter().generate(results)

    def test_summary_invariant(self) -> None:
        payload = build_results(LicenseTier.ENTERPRISE).to_dict()
        summary = payload["summary"]

        assert summary["total"] == sum(summary["bySeverity"].values())
        assert summary["total"] == sum(summary["byCategory"].values())


class TestSarifReporter:
    """Tests for the SARIF report."""

    def test_requires_corporate(self) -> None:
        with pytest.raises(LicenseError) as exc_info:
            build_results(LicenseTier.ENTERPRISE).to_sarif()

        assert exc_info.value.required == "Corporate"

    def test_structure(self) -> None:
        sarif = json.loads(build_results(LicenseTier.CORPORATE).to_sarif())

        assert sarif["version"] == "2.1.0"
        run = sarif["runs"][0]
        assert run["tool"]["driver"]["name"] == "QAstell"
        assert run["tool"]["driver"]["version"] == VERSION
        assert len(run["tool"]["driver"]["rules"]) == 6
        assert len(run["results"]) == 5
        assert run["invocations"][0]["executionSuccessful"] is False

    def test_level_mapping(self) -> None:
        sarif = json.loads(build_results(LicenseTier.CORPORATE).to_sarif())

        levels = {r["ruleId"]: r["level"] for r in sarif["runs"][0]["results"]}
        assert levels == {
            "rule-critical": "error",
            "rule-high": "error",
            "rule-medium": "warning",
            "rule-low": "note",
            "rule-info": "note",
        }
        critical = next(r for r in sarif["runs"][0]["results"] if r["ruleId"] == "rule-critical")
        assert float(critical["properties"]["security-severity"]) >= 9.0

    def test_rule_index_points_at_driver_rule(self) -> None:
        sarif = json.loads(SarifReporter().generate(build_results(LicenseTier.CORPORATE)))
        run = sarif["runs"][0]

        for result in run["results"]:
            assert run["tool"]["driver"]["rules"][result["ruleIndex"]]["id"] == result["ruleId"]


class TestTierAtGenerationTime:
    """Premium formats check the tier recorded on the results."""

    @pytest.mark.asyncio
    async def test_corporate_audit_exports_everything(self, playwright_page: Any) -> None:
        init_license("QASTELL-CORP-ABCD1234")

        results = await SecurityAuditor(playwright_page).audit()

        assert json.loads(results.to_json())["url"] == "https://shop.example.com/"
        assert json.loads(results.to_sarif())["runs"][0]["results"]

    def test_replace_tier(self) -> None:
        results = replace(build_results(), tier=LicenseTier.ENTERPRISE)

        assert results.to_json()
        with pytest.raises(LicenseError):
            results.to_sarif()


class TestSummaryTopNEnvironment:
    """QASTELL_SUMMARY_TOP_N sets the default number of listed violations."""

    def test_env_top_n(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QASTELL_SUMMARY_TOP_N", "1")

        summary = build_results().to_summary_html()

        assert "rule-critical" in summary
        assert "rule-high" not in summary
