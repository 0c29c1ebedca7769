"""Process-wide, immutable rule catalogue."""
from collections.abc import Iterable
from types import MappingProxyType
from typing import Mapping

from qastell.errors import ConfigurationError
from qastell.rules import cookies, forms, headers, resources, sensitive, xss
from qastell.rules.base import Category, Rule, Severity


def _build_catalogue(*groups: list[Rule]) -> tuple[Rule, ...]:
    rules = [rule for group in groups for rule in group]
    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            raise ConfigurationError(f"Duplicate rule id in registry: {rule.id}")
        seen.add(rule.id)
    return tuple(rules)


ALL_RULES: tuple[Rule, ...] = _build_catalogue(
    headers.RULES,
    cookies.RULES,
    forms.RULES,
    resources.RULES,
    xss.RULES,
    sensitive.RULES,
)

RULES_BY_ID: Mapping[str, Rule] = MappingProxyType({rule.id: rule for rule in ALL_RULES})


def get_rule(rule_id: str) -> Rule:
    try:
        return RULES_BY_ID[rule_id]
    except KeyError as e:
        raise ConfigurationError(f"Unknown rule id: {rule_id}") from e


def parse_category(value: Category | str) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError as e:
        known = ", ".join(c.value for c in Category)
        raise ConfigurationError(f"Unknown category {value!r}; expected one of {known}") from e


def parse_severity(value: Severity | str) -> Severity:
    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown severity {value!r}") from e


def rules_for_categories(categories: Iterable[Category | str]) -> list[Rule]:
    wanted = {parse_category(c) for c in categories}
    return [rule for rule in ALL_RULES if rule.category in wanted]
