"""Result model shared by the audit engine and every reporter."""
from qastell.results.model import AuditResults, RawResults, RuleResult, Summary

__all__ = [
    "AuditResults",
    "RawResults",
    "RuleResult",
    "Summary",
]
