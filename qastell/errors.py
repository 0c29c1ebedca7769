"""Exception hierarchy for the audit engine."""

from typing import Any


class QastellError(Exception):
    """Base class for every error raised by qastell."""


class ConfigurationError(QastellError):
    """Invalid auditor or audit options (duplicate rule ids, empty rule set, ...)."""


class FrameworkDetectionError(QastellError):
    """The host handle matched no adapter and no override was given."""

    def __init__(self, message: str, handle_type: str | None = None):
        super().__init__(message)
        self.handle_type = handle_type


class RuleEvaluationError(QastellError):
    """A rule could not evaluate its snapshot."""

    def __init__(self, rule_id: str, message: str):
        super().__init__(f"{rule_id}: {message}")
        self.rule_id = rule_id


class CaptureTimeoutError(QastellError):
    """Snapshot capture did not finish within the configured timeout."""

    def __init__(self, framework: str, timeout: float):
        super().__init__(f"Snapshot capture via {framework} timed out after {timeout:g}s")
        self.framework = framework
        self.timeout = timeout


class LicenseError(QastellError):
    """The active license tier does not include the requested feature."""

    def __init__(self, feature: str, tier: str, required: str):
        super().__init__(
            f"{feature} reports require the {required} tier or higher (current tier: {tier})"
        )
        self.feature = feature
        self.tier = tier
        self.required = required


class SecurityAssertionError(QastellError, AssertionError):
    """Raised by assert_no_violations when one or more rules exceed their threshold."""

    def __init__(self, message: str, failures: list[Any] | None = None):
        super().__init__(message)
        self.failures = failures or []
