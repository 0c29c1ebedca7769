"""QAstell: security audits for pages driven by browser test frameworks.

Bind a ``SecurityAuditor`` to a Playwright or Puppeteer page, a WebDriver
session or a Cypress window, ``await auditor.audit()`` and report the
results as HTML, JSON or SARIF.
"""
from qastell.adapters import FrameworkName, detect_framework
from qastell.decision import ThresholdConfig, decide
from qastell.engine import AuditOptions, SecurityAuditor
from qastell.errors import (
    CaptureTimeoutError,
    ConfigurationError,
    FrameworkDetectionError,
    LicenseError,
    QastellError,
    RuleEvaluationError,
    SecurityAssertionError,
)
from qastell.licensing import (
    LicenseTier,
    get_license_usage,
    get_tier_display_name,
    init_license,
    reset_license,
)
from qastell.reporting import HtmlReporter, JsonReporter, SarifReporter, SummaryHtmlReporter
from qastell.results import AuditResults
from qastell.rules import Category, Rule, Severity, Violation, all_rules
from qastell.version import VERSION

__version__ = VERSION

__all__ = [
    "VERSION",
    "AuditOptions",
    "AuditResults",
    "CaptureTimeoutError",
    "Category",
    "ConfigurationError",
    "FrameworkDetectionError",
    "FrameworkName",
    "HtmlReporter",
    "JsonReporter",
    "LicenseError",
    "LicenseTier",
    "QastellError",
    "Rule",
    "RuleEvaluationError",
    "SarifReporter",
    "SecurityAssertionError",
    "SecurityAuditor",
    "Severity",
    "SummaryHtmlReporter",
    "ThresholdConfig",
    "Violation",
    "all_rules",
    "decide",
    "detect_framework",
    "get_license_usage",
    "get_tier_display_name",
    "init_license",
    "reset_license",
]
