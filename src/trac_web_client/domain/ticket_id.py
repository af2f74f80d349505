from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_TITLE_TICKET_ID_RE = re.compile(r"^#(\d+)")


def coerce_ticket_id(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, int):
        return value if value > 0 else None

    if isinstance(value, str):
        text = value.strip()
        if text.startswith("#"):
            text = text[1:]
        if not text.isdigit():
            return None
        ticket_id = int(text)
        return ticket_id if ticket_id > 0 else None

    return None


def record_ticket_id(record: Mapping[str, Any]) -> int | None:
    """Ticket id of a scraped record, or None when absent/blank/zero."""
    return coerce_ticket_id(record.get("id"))


def ticket_id_from_title(title: str | None) -> int | None:
    """New-ticket responses are titled '#<id> (<summary>) - <project>'."""
    if not title:
        return None
    match = _TITLE_TICKET_ID_RE.match(title)
    if match is None:
        return None
    return coerce_ticket_id(match.group(1))
