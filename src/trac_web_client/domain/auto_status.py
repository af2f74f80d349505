"""Client-side status defaults mimicking Trac's stock workflow.

This is a heuristic: new/reopened -> assigned/accepted -> closed. The remote
workflow graph is never queried, so custom workflows may reject the result.
"""
from __future__ import annotations

from collections.abc import Mapping

CLOSED = "closed"
ACCEPTED = "accepted"
ASSIGNED = "assigned"


def infer_status(values: Mapping[str, str], current_user: str | None) -> str | None:
    """Status implied by `values`, or None when nothing should be added.

    An explicitly supplied status is never overridden.
    """
    if values.get("status"):
        return None
    if values.get("resolution"):
        return CLOSED
    owner = values.get("owner")
    if owner:
        return ACCEPTED if current_user and owner == current_user else ASSIGNED
    return None


def apply_auto_status(values: dict[str, str], current_user: str | None) -> dict[str, str]:
    """Return a copy of `values` with the inferred status filled in."""
    updated = dict(values)
    status = infer_status(values, current_user)
    if status is not None:
        updated["status"] = status
    return updated
