"""Audit engine: rule selection, evaluation and result folding."""
from qastell.engine.auditor import SecurityAuditor, evaluate_rule, select_rules
from qastell.engine.options import AuditOptions

__all__ = [
    "AuditOptions",
    "SecurityAuditor",
    "evaluate_rule",
    "select_rules",
]
