"""HTML reporters.

Both reporters are pure functions of an immutable ``AuditResults``; the only
timestamp rendered is the one captured at audit time, so repeated calls are
byte-identical.
"""
from html import escape
from typing import TYPE_CHECKING

from qastell.config import env_number
from qastell.errors import ConfigurationError
from qastell.licensing import get_tier_display_name, require_feature
from qastell.rules.base import Category, Severity, Violation
from qastell.version import TOOL_NAME, VERSION


if TYPE_CHECKING:
    from qastell.results.model import AuditResults


SEVERITY_COLORS = {
    "critical": "#dc3545",
    "high": "#fd7e14",
    "medium": "#ffc107",
    "low": "#28a745",
    "info": "#17a2b8",
}


def _badge(severity: Severity) -> str:
    color = SEVERITY_COLORS.get(severity.value, "#6c757d")
    return (
        f'<span class="severity" style="background-color: {color}">'
        f"{severity.value.capitalize()}</span>"
    )


def group_violations(
    violations: tuple[Violation, ...],
) -> list[tuple[Category, list[tuple[Severity, list[Violation]]]]]:
    """Group violations by category, then severity (most severe first)."""
    grouped: list[tuple[Category, list[tuple[Severity, list[Violation]]]]] = []
    for category in Category:
        in_category = [v for v in violations if v.category is category]
        if not in_category:
            continue
        by_severity = []
        for severity in Severity.ordered():
            matching = [v for v in in_category if v.severity is severity]
            if matching:
                by_severity.append((severity, matching))
        grouped.append((category, by_severity))
    return grouped


class HtmlReporter:
    """Full, self-contained HTML report."""

    feature = "html"

    def generate(self, results: "AuditResults") -> str:
        require_feature(results.tier, self.feature)
        raw = results.raw
        summary = results.summary

        html_parts: list[str] = []

        html_parts.append(f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{TOOL_NAME} Security Audit Report</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; }}
        h1, h2, h3 {{ color: #333; }}
        .summary-box {{ background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0; }}
        .severity {{ padding: 4px 8px; border-radius: 4px; color: white; font-weight: bold; }}
        .violation {{ border: 1px solid #ddd; padding: 15px; margin: 15px 0; border-radius: 8px; }}
        .violation h4 {{ margin-top: 0; }}
        .context {{ background: #f1f1f1; padding: 10px; border-radius: 4px; font-family: monospace; overflow-x: auto; }}
        .error {{ background: #fff3cd; padding: 15px; border-radius: 8px; margin: 15px 0; }}
        .skipped {{ background: #e2e3e5; padding: 15px; border-radius: 8px; margin: 15px 0; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }}
    </style>
</head>
<body>
""")

        # Title and metadata
        status = "PASSED" if results.passed() else "FAILED"
        html_parts.append(f"""
<h1>{TOOL_NAME} Security Audit Report</h1>
<div class="summary-box">
    <p><strong>Tool:</strong> {TOOL_NAME} v{VERSION}</p>
    <p><strong>License:</strong> {get_tier_display_name(results.tier)}</p>
    <p><strong>URL:</strong> {escape(raw.url) or 'Not captured'}</p>
    <p><strong>Framework:</strong> {escape(raw.framework)}</p>
    <p><strong>Duration:</strong> {raw.duration:.0f} ms</p>
    <p><strong>Generated:</strong> {raw.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}</p>
    <p><strong>Status:</strong> {status}</p>
</div>
""")

        if results.skipped:
            html_parts.append(
                '<div class="skipped"><strong>Audit skipped:</strong> '
                "the daily scan quota of this license is exhausted.</div>"
            )

        # Summary
        html_parts.append(f"""
<h2>Summary</h2>
<table>
    <tr><th>Metric</th><th>Value</th></tr>
    <tr><td>Total Violations</td><td>{summary.total}</td></tr>
    <tr><td>Rules Evaluated</td><td>{summary.rules_run}</td></tr>
    <tr><td>Rule Errors</td><td>{summary.rules_errored}</td></tr>
</table>
""")

        html_parts.append("<h3>Severity Breakdown</h3><ul>")
        for severity in Severity.ordered():
            count = summary.by_severity.get(severity.value, 0)
            html_parts.append(f"<li>{_badge(severity)}: {count}</li>")
        html_parts.append("</ul>")

        failures = results.get_failures()
        if failures:
            html_parts.append("<h3>Failing Rules</h3><table>")
            html_parts.append("<tr><th>Rule</th><th>Severity</th><th>Count</th><th>Limit</th></tr>")
            for failure in failures:
                html_parts.append(
                    f"<tr><td>{escape(failure.rule.id)}</td><td>{_badge(failure.severity)}</td>"
                    f"<td>{len(failure.violations)}</td><td>{failure.limit}</td></tr>"
                )
            html_parts.append("</table>")

        # Violations by category, then severity
        html_parts.append("<h2>Violations</h2>")
        if not results.violations:
            html_parts.append("<p>No violations found.</p>")
        for category, by_severity in group_violations(results.violations):
            html_parts.append(f"<h3>{escape(category.value)}</h3>")
            for severity, violations in by_severity:
                for violation in violations:
                    rule = violation.rule
                    html_parts.append(f"""
<div class="violation">
    <h4>{_badge(severity)} {escape(rule.name)} <code>{escape(rule.id)}</code></h4>
    <p>{escape(violation.message)}</p>
    <p><strong>Element:</strong> <code>{escape(violation.element.selector)}</code></p>
""")
                    if violation.element.context:
                        html_parts.append(
                            f'<div class="context">{escape(violation.element.context)}</div>'
                        )
                    html_parts.append(f"<p><strong>Description:</strong> {escape(rule.description)}</p>")
                    if rule.recommendation:
                        html_parts.append(
                            f"<p><strong>Recommendation:</strong> {escape(rule.recommendation)}</p>"
                        )
                    html_parts.append("</div>")

        errors = raw.errors
        if errors:
            html_parts.append("<h2>Evaluation Errors</h2>")
            for result in errors:
                html_parts.append(
                    f'<div class="error"><strong>{escape(result.rule.id)}:</strong> '
                    f"{escape(result.error or '')}</div>"
                )

        html_parts.append("</body></html>")

        return "".join(html_parts)


class SummaryHtmlReporter:
    """Compact HTML fragment: counts plus the top N violations, no styling."""

    feature = "summary_html"

    def __init__(self, top_n: int | None = None):
        if top_n is None:
            top_n = env_number("QASTELL_SUMMARY_TOP_N", "5", int)
        elif top_n < 0:
            raise ConfigurationError(f"top_n must not be negative, got {top_n}")
        self.top_n = top_n

    def generate(self, results: "AuditResults") -> str:
        require_feature(results.tier, self.feature)
        summary = results.summary
        status = "PASSED" if results.passed() else "FAILED"

        html_parts = [
            f"<h2>{TOOL_NAME} v{VERSION}: {status}</h2>",
            f"<p>{summary.total} violations on {escape(results.raw.url)}</p><ul>",
        ]
        for severity in Severity.ordered():
            count = summary.by_severity.get(severity.value, 0)
            if count:
                html_parts.append(f"<li>{severity.value}: {count}</li>")
        html_parts.append("</ul>")

        top = sorted(results.violations, key=lambda v: (-v.severity.score, v.rule_id))[: self.top_n]
        if top:
            html_parts.append("<ol>")
            for violation in top:
                html_parts.append(
                    f"<li>[{violation.severity.value}] {escape(violation.rule_id)}: "
                    f"{escape(violation.message)}</li>"
                )
            html_parts.append("</ol>")

        return "".join(html_parts)
