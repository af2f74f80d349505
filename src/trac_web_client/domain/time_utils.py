from __future__ import annotations

import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

# Trac renders timeline links as e.g. 2008-12-30T15:45:24Z-0500: a "Z" followed by an offset.
_STRAY_ZULU_RE = re.compile(r"Z(?=[+-]\d\d:?\d\d$)")
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d\d)(\d\d)$")


def parse_trac_datetime(value: str | None) -> datetime | None:
    """Parse the ISO-8601 variants Trac emits into an aware datetime (UTC when no offset)."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    text = _STRAY_ZULU_RE.sub("", text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _COMPACT_OFFSET_RE.sub(r"\1:\2", text)
    # Ticket query results separate date and time with a space.
    text = text.replace(" ", "T", 1)

    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def parse_rfc822_datetime(value: str | None) -> datetime | None:
    """Parse an RSS pubDate."""
    if not value or not value.strip():
        return None
    try:
        dt = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt

