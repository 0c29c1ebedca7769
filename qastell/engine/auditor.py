"""Security auditor bound to one host handle.

Each ``audit()`` captures one fresh snapshot, evaluates the selected rules
against it, consults the license gate once and folds the per-rule results
into an immutable ``AuditResults``.
"""
import logging
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from qastell.adapters import (
    FrameworkAdapter,
    FrameworkName,
    Snapshot,
    capture_snapshot,
    detect_framework,
    get_adapter,
)
from qastell.config import AuditorConfig
from qastell.decision import ThresholdConfig, decide
from qastell.engine.options import AuditOptions
from qastell.errors import ConfigurationError, RuleEvaluationError, SecurityAssertionError
from qastell.licensing import LicenseSession, get_license_session
from qastell.results import AuditResults, RawResults, RuleResult
from qastell.rules import ALL_RULES, Rule, Severity, Violation

logger = logging.getLogger(__name__)


def select_rules(
    options: AuditOptions,
    default_rules: tuple[Rule, ...] | None = None,
) -> list[Rule]:
    """Resolve the final rule set for one call.

    Explicit ``rules`` of the call form the base set, else the auditor's
    rules, else the registry. ``include``, ``exclude`` and ``skip_rules``
    then narrow the base set.

    Raises:
        ConfigurationError: on duplicate rule ids or an empty final set
    """
    if options.rules is not None:
        base = list(options.rules)
    elif default_rules is not None:
        base = list(default_rules)
    else:
        base = list(ALL_RULES)

    seen: set[str] = set()
    duplicates: set[str] = set()
    for rule in base:
        if rule.id in seen:
            duplicates.add(rule.id)
        seen.add(rule.id)
    if duplicates:
        raise ConfigurationError(f"Duplicate rule id(s): {', '.join(sorted(duplicates))}")

    selected = base
    if options.include is not None:
        selected = [rule for rule in selected if rule.category in options.include]
    if options.exclude:
        selected = [rule for rule in selected if rule.category not in options.exclude]
    if options.skip_rules:
        selected = [rule for rule in selected if rule.id not in options.skip_rules]

    if not selected:
        raise ConfigurationError("No rules left to evaluate after applying audit options")
    return selected


def evaluate_rule(
    rule: Rule,
    snapshot: Snapshot,
    severity_overrides: Mapping[str, Severity] | None = None,
) -> RuleResult:
    """Run one rule; an exception is recorded on the result instead of raised."""
    severity = (severity_overrides or {}).get(rule.id, rule.severity)
    try:
        findings = rule.run(snapshot)
    except Exception as e:  # noqa: BLE001
        error = RuleEvaluationError(rule.id, f"{type(e).__name__}: {e}")
        logger.warning("Rule evaluation failed: %s", error)
        return RuleResult(rule=rule, violations=(), error=str(error))

    violations = tuple(
        Violation(
            rule_id=rule.id,
            rule=rule,
            message=finding.message,
            element=finding.element,
            severity=severity,
        )
        for finding in findings
    )
    return RuleResult(rule=rule, violations=violations)


class SecurityAuditor:
    """Runs security audits against a browser page driven by a test framework.

    Args:
        handle: A Playwright/Puppeteer page, WebDriver session or Cypress window
        options: Mapping with ``framework``/``rules``, or a bare rule list
        framework: Explicit framework override, skips detection
        rules: Default rule set for every audit of this auditor
        license: License session to consult; the process-wide one by default
        config: Capture and evaluation settings
    """

    def __init__(
        self,
        handle: Any,
        options: Mapping[str, Any] | Iterable[Rule] | None = None,
        *,
        framework: FrameworkName | str | None = None,
        rules: Iterable[Rule] | None = None,
        license: LicenseSession | None = None,  # noqa: A002
        config: AuditorConfig | None = None,
    ):
        if options is None:
            options = {}
        elif not isinstance(options, Mapping):
            options = {"rules": list(options)}

        unknown = sorted(set(options) - {"framework", "rules"})
        if unknown:
            raise ConfigurationError(f"Unknown auditor option(s): {', '.join(unknown)}")

        self.handle = handle
        self._framework = framework if framework is not None else options.get("framework")
        default_rules = rules if rules is not None else options.get("rules")
        self._rules = tuple(default_rules) if default_rules is not None else None
        self._license = license
        self.config = config or AuditorConfig()

    @property
    def license(self) -> LicenseSession:
        return self._license or get_license_session()

    def get_framework(self) -> FrameworkName:
        """Framework this auditor is bound to (override or detected)."""
        if self._framework is not None:
            return get_adapter(self._framework, self.handle).name
        return detect_framework(self.handle)

    def _adapter(self) -> FrameworkAdapter:
        return get_adapter(self._framework, self.handle)

    def _evaluate(
        self, rules: list[Rule], snapshot: Snapshot, overrides: Mapping[str, Severity]
    ) -> list[RuleResult]:
        workers = min(self.config.rule_workers, len(rules))
        if workers <= 1:
            return [evaluate_rule(rule, snapshot, overrides) for rule in rules]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="qastell-rule") as pool:
            return list(pool.map(lambda rule: evaluate_rule(rule, snapshot, overrides), rules))

    async def audit(
        self,
        options: AuditOptions | Mapping[str, Any] | Iterable[Rule] | None = None,
        **kwargs: Any,
    ) -> AuditResults:
        """Capture the page and evaluate the selected rules.

        Raises:
            ConfigurationError: on invalid options, before any host work
            FrameworkDetectionError: if the handle matches no framework
            CaptureTimeoutError: if capture exceeds the configured timeout
        """
        audit_options = AuditOptions.from_value(options, **kwargs)
        rules = select_rules(audit_options, self._rules)
        thresholds = audit_options.threshold_config()
        adapter = self._adapter()
        session = self.license
        started = time.perf_counter()

        if session.is_exhausted():
            logger.warning("Daily scan quota exhausted; audit skipped without capture")
            return self._skipped(session, thresholds, "", adapter.name, started)

        logger.debug("Auditing with %s: %d rules", adapter.name.value, len(rules))
        snapshot = await capture_snapshot(
            adapter,
            self.handle,
            timeout=self.config.capture_timeout,
            attempts=self.config.capture_retries,
        )

        if not session.try_consume():
            logger.warning("Daily scan quota exhausted; audit of %s skipped", snapshot.url)
            return self._skipped(session, thresholds, snapshot.url, adapter.name, started)

        results = self._evaluate(rules, snapshot, audit_options.severity_overrides)
        results.sort(key=lambda r: r.rule.id)

        raw = RawResults(
            url=snapshot.url,
            duration=(time.perf_counter() - started) * 1000,
            results=tuple(results),
            framework=adapter.name.value,
            timestamp=datetime.now(UTC),
        )
        audit_results = AuditResults.from_rule_results(
            raw, tier=session.tier, license=session.usage(), thresholds=thresholds
        )
        logger.info(
            "Audit of %s finished: %d violations from %d rules in %.0f ms",
            raw.url,
            audit_results.summary.total,
            len(results),
            raw.duration,
        )
        return audit_results

    def _skipped(
        self,
        session: LicenseSession,
        thresholds: ThresholdConfig,
        url: str,
        framework: FrameworkName,
        started: float,
    ) -> AuditResults:
        raw = RawResults(
            url=url,
            duration=(time.perf_counter() - started) * 1000,
            results=(),
            framework=framework.value,
            timestamp=datetime.now(UTC),
        )
        return AuditResults.from_rule_results(
            raw, tier=session.tier, license=session.usage(), thresholds=thresholds, skipped=True
        )

    async def assert_no_violations(
        self,
        options: AuditOptions | Mapping[str, Any] | Iterable[Rule] | None = None,
        **kwargs: Any,
    ) -> AuditResults:
        """Audit, then raise if any rule exceeds its threshold.

        Raises:
            SecurityAssertionError: naming the failing-rule count and ids
        """
        results = await self.audit(options, **kwargs)
        decision = decide(results.violations, results.thresholds)
        if not decision.passed:
            ids = ", ".join(f.rule.id for f in decision.failures)
            raise SecurityAssertionError(
                f"{len(decision.failures)} security rule(s) failed: {ids}",
                failures=list(decision.failures),
            )
        return results
