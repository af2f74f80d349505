from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from trac_web_client.domain.time_utils import parse_rfc822_datetime, parse_trac_datetime


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-03-01T10:15:00Z", datetime(2024, 3, 1, 10, 15, tzinfo=UTC)),
        ("2024-03-01T10:15:00+02:00", datetime(2024, 3, 1, 8, 15, tzinfo=UTC)),
        ("2024-03-01T10:15:00+0200", datetime(2024, 3, 1, 8, 15, tzinfo=UTC)),
        (
            "2008-12-30T15:45:24Z-0500",
            datetime(2008, 12, 30, 15, 45, 24, tzinfo=timezone(timedelta(hours=-5))),
        ),
        ("2024-03-01 10:15:00", datetime(2024, 3, 1, 10, 15, tzinfo=UTC)),
        ("2024-03-01 10:15:00.123456+00:00", datetime(2024, 3, 1, 10, 15, 0, 123456, tzinfo=UTC)),
    ],
)
def test_parse_trac_datetime(value: str, expected: datetime) -> None:
    parsed = parse_trac_datetime(value)
    assert parsed == expected
    assert parsed is not None and parsed.tzinfo is not None


@pytest.mark.parametrize("value", [None, "", "   ", "3 days ago", "2024-13-45"])
def test_parse_trac_datetime_rejects_garbage(value: str | None) -> None:
    assert parse_trac_datetime(value) is None


def test_parse_rfc822_datetime() -> None:
    assert parse_rfc822_datetime("Sat, 02 Mar 2024 08:00:00 +0100") == datetime(
        2024, 3, 2, 7, 0, tzinfo=UTC
    )
    assert parse_rfc822_datetime("not a date") is None
    assert parse_rfc822_datetime(None) is None
