"""Rule registry.

A catalogue of named, categorized, severity-tagged checks. Each rule is a pure
function from a Snapshot to zero or more findings.
"""
from qastell.rules.base import (
    Category,
    ElementRef,
    Finding,
    Rule,
    Severity,
    Violation,
)
from qastell.rules.registry import (
    ALL_RULES,
    RULES_BY_ID,
    get_rule,
    parse_category,
    parse_severity,
    rules_for_categories,
)

all_rules = ALL_RULES

__all__ = [
    "ALL_RULES",
    "Category",
    "ElementRef",
    "Finding",
    "RULES_BY_ID",
    "Rule",
    "Severity",
    "Violation",
    "all_rules",
    "get_rule",
    "parse_category",
    "parse_severity",
    "rules_for_categories",
]
