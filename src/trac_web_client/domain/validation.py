from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from trac_web_client.domain.errors import TicketValidationError, ValidationIssue
from trac_web_client.domain.metadata import TicketMetadata


@dataclass(frozen=True)
class PropertyRule:
    """Optional property; when `allowed` is set the value must be one of them (any case)."""

    prop: str
    allowed: tuple[str, ...] = ()
    pattern: re.Pattern[str] | None = None

    @property
    def constrained(self) -> bool:
        return self.pattern is not None

    def accepts(self, value: str) -> bool:
        if self.pattern is None:
            return True
        return self.pattern.fullmatch(value) is not None


def _rule_for(prop: str, permitted: tuple[str, ...] | None) -> PropertyRule:
    values = tuple(v for v in (permitted or ()) if v)
    if not values:
        return PropertyRule(prop=prop)
    alternatives = "|".join(re.escape(v) for v in values)
    return PropertyRule(
        prop=prop,
        allowed=values,
        pattern=re.compile(f"(?:{alternatives})", re.IGNORECASE),
    )


def build_validation_rules(
    metadata: TicketMetadata, props: Iterable[str]
) -> dict[str, PropertyRule]:
    """Rules for `props` from whatever metadata is currently cached.

    Properties without a (non-empty) permitted-value set are passed through
    unconstrained; the tracker stays the final arbiter for them.
    """
    return {prop: _rule_for(prop, metadata.permitted_values(prop)) for prop in props}


def _coerce_scalar(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    return None


def validate_properties(
    values: Mapping[str, Any], rules: Mapping[str, PropertyRule]
) -> dict[str, str]:
    """Check `values` against `rules`; returns the accepted values as strings."""
    accepted: dict[str, str] = {}
    issues: list[ValidationIssue] = []

    for prop, raw in values.items():
        rule = rules.get(prop)
        if rule is None:
            issues.append(ValidationIssue(prop, "not a settable ticket property"))
            continue
        if raw is None:
            continue
        value = _coerce_scalar(raw)
        if value is None:
            issues.append(ValidationIssue(prop, f"expected a string, got {type(raw).__name__}"))
            continue
        if not rule.accepts(value):
            allowed = ", ".join(rule.allowed)
            issues.append(ValidationIssue(prop, f"{value!r} is not one of: {allowed}"))
            continue
        accepted[prop] = value

    if issues:
        raise TicketValidationError(issues)
    return accepted
