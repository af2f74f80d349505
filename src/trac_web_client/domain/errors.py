from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    prop: str
    message: str


class TicketValidationError(ValueError):
    """One or more ticket property values were rejected before submission."""

    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = list(issues)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = ["Ticket properties are invalid:"]
        for issue in self.issues:
            lines.append(f"- {issue.prop}: {issue.message}")
        return "\n".join(lines)


@dataclass(frozen=True)
class TicketFailure:
    """Why the last ticket operation returned no result."""

    code: str
    message: str
