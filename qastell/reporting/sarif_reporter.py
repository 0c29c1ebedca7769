"""SARIF 2.1.0 report (corporate tier).

One driver rule per evaluated rule and one result per violation, so code
scanning dashboards can ingest audits next to static-analysis output.
"""
import json
from typing import TYPE_CHECKING, Any

from qastell.licensing import require_feature
from qastell.rules.base import Rule, Severity, Violation
from qastell.version import INFORMATION_URI, TOOL_NAME, VERSION


if TYPE_CHECKING:
    from qastell.results.model import AuditResults


SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"

SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}

# GitHub code scanning buckets: >= 9.0 critical, >= 7.0 high, >= 4.0 medium
SECURITY_SEVERITY = {
    Severity.CRITICAL: "9.5",
    Severity.HIGH: "8.0",
    Severity.MEDIUM: "5.5",
    Severity.LOW: "3.0",
    Severity.INFO: "1.0",
}


def _driver_rule(rule: Rule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "shortDescription": {"text": rule.name},
        "fullDescription": {"text": rule.description},
        "help": {"text": rule.recommendation or rule.description},
        "defaultConfiguration": {"level": SARIF_LEVELS[rule.severity]},
        "properties": {
            "category": rule.category.value,
            "security-severity": SECURITY_SEVERITY[rule.severity],
            "tags": ["security", rule.category.value],
        },
    }


def _result(violation: Violation, rule_index: int, url: str) -> dict[str, Any]:
    location: dict[str, Any] = {
        "physicalLocation": {"artifactLocation": {"uri": url}},
        "logicalLocations": [{"name": violation.element.selector, "kind": "element"}],
    }
    if violation.element.context:
        location["physicalLocation"]["region"] = {
            "snippet": {"text": violation.element.context}
        }
    return {
        "ruleId": violation.rule_id,
        "ruleIndex": rule_index,
        "level": SARIF_LEVELS[violation.severity],
        "message": {"text": violation.message},
        "locations": [location],
        "properties": {"security-severity": SECURITY_SEVERITY[violation.severity]},
    }


class SarifReporter:
    feature = "sarif"

    def build(self, results: "AuditResults") -> dict[str, Any]:
        rules = [r.rule for r in results.raw.results]
        index = {rule.id: i for i, rule in enumerate(rules)}
        url = results.raw.url

        return {
            "$schema": SARIF_SCHEMA,
            "version": SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": TOOL_NAME,
                            "version": VERSION,
                            "informationUri": INFORMATION_URI,
                            "rules": [_driver_rule(rule) for rule in rules],
                        }
                    },
                    "results": [
                        _result(v, index.get(v.rule_id, -1), url) for v in results.violations
                    ],
                    "invocations": [
                        {
                            "executionSuccessful": not results.raw.errors,
                            "endTimeUtc": results.raw.timestamp.isoformat(),
                        }
                    ],
                    "properties": {
                        "framework": results.raw.framework,
                        "tier": results.tier.value,
                        "skipped": results.skipped,
                    },
                }
            ],
        }

    def generate(self, results: "AuditResults") -> str:
        require_feature(results.tier, self.feature)
        return json.dumps(self.build(results), indent=2)
