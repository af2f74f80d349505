from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from test.support import trac_pages
from trac_web_client.adapters.trac.pages import (
    AttachmentFragmentParser,
    AttachmentListParser,
    TicketHistoryParser,
    TicketQueryCsvParser,
    extract_title,
    find_error_message,
    html_to_text,
    is_logged_in_as,
    parse_prop_changes,
)


def _three_attachments() -> str:
    return trac_pages.attachment_index_page(
        1,
        [
            trac_pages.attachment_fragment(
                1,
                "xl0A1UDD4i",
                size=27,
                author="hiro",
                timestamp="2008-12-30T15:45:24Z-0500",
                description="first upload",
            ),
            trac_pages.attachment_fragment(
                1,
                "crash log.txt",
                size=1024,
                author="alice",
                timestamp="2024-03-01T10:15:00Z",
            ),
            trac_pages.attachment_fragment(
                1,
                "screenshot.png",
                size=24576,
                author="bob",
                timestamp="2024-03-02T08:00:00+01:00",
                description="The <em>error</em> dialog",
            ),
        ],
    )


def test_extract_title_collapses_whitespace() -> None:
    assert extract_title("<html><head><title>\n  #12 (Crash)\n - Proj </title>") == "#12 (Crash) - Proj"
    assert extract_title("<html></html>") is None


def test_find_error_message_reads_error_pages_and_warnings() -> None:
    assert find_error_message(trac_pages.error_page("No permission to create tickets")) == (
        "No permission to create tickets"
    )
    assert find_error_message(trac_pages.warning_page("Tickets must contain a summary.")) == (
        "Warning: Tickets must contain a summary."
    )
    assert find_error_message(trac_pages.ticket_page(1)) is None


def test_is_logged_in_as_matches_only_the_given_user() -> None:
    page = trac_pages.login_page("alice")
    assert is_logged_in_as(page, "alice")
    assert not is_logged_in_as(page, "ali")
    assert not is_logged_in_as(trac_pages.anonymous_page(), "alice")


def test_attachment_index_splits_into_one_fragment_per_attachment() -> None:
    fragments = AttachmentListParser().parse(_three_attachments())

    assert len(fragments) == 3
    assert "xl0A1UDD4i" in fragments[0]
    assert "crash log.txt" in fragments[1]
    assert "screenshot.png" in fragments[2]


def test_attachment_index_without_listing_is_empty() -> None:
    assert AttachmentListParser().parse(trac_pages.attachment_index_page(1, [])) == []


def test_three_attachment_fragments_parse_into_three_attachments() -> None:
    parser = AttachmentFragmentParser(1)
    attachments = [parser.parse(f) for f in AttachmentListParser().parse(_three_attachments())]

    first, second, third = attachments

    assert first.ticket == 1
    assert first.filename == "xl0A1UDD4i"
    assert first.size == 27
    assert first.author == "hiro"
    assert first.description == "first upload"
    assert first.url == "/raw-attachment/ticket/1/xl0A1UDD4i"
    assert first.date == datetime(2008, 12, 30, 15, 45, 24, tzinfo=timezone(timedelta(hours=-5)))

    assert second.filename == "crash log.txt"
    assert second.size == 1024
    assert second.author == "alice"
    assert second.description is None
    assert second.url == "/raw-attachment/ticket/1/crash%20log.txt"
    assert second.date == datetime(2024, 3, 1, 10, 15, tzinfo=UTC)

    assert third.filename == "screenshot.png"
    assert third.description == "The error dialog"
    assert third.date == datetime(2024, 3, 2, 7, 0, tzinfo=UTC)


def test_attachment_date_falls_back_to_timeline_link() -> None:
    fragment = """
      <a href="/p/attachment/ticket/3/a.txt" title="View attachment">a.txt</a>
      (<span title="5 bytes">5 bytes</span>) - added by <span class="trac-author">carol</span>
      <a class="timeline" href="/p/timeline?from=2024-05-06T07%3A08%3A09Z&amp;precision=second"
         title="See timeline at 2024-05-06T07:08:09Z">1 week</a> ago.
    </dt>"""
    attachment = AttachmentFragmentParser(3).parse(fragment)

    assert attachment.author == "carol"
    assert attachment.date == datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC)


def test_parse_prop_changes_handles_changed_set_and_deleted() -> None:
    html = (
        "<ul>"
        "<li><strong>status</strong> changed from <em>new</em> to <em>closed</em></li>"
        "<li><strong>resolution</strong> set to <em>fixed</em></li>"
        "<li><strong>milestone</strong> deleted</li>"
        "<li><strong>attachment</strong> added</li>"
        "</ul><p>Done.</p>"
    )
    changes = parse_prop_changes(html)

    assert set(changes) == {"status", "resolution", "milestone"}
    assert changes["status"].old_value == "new"
    assert changes["status"].new_value == "closed"
    assert changes["resolution"].old_value is None
    assert changes["resolution"].new_value == "fixed"
    assert changes["milestone"].new_value is None


def test_parse_prop_changes_ignores_lists_inside_the_comment() -> None:
    assert parse_prop_changes("<p>Steps:</p><ul><li><strong>x</strong> set to <em>y</em></li></ul>") == {}


def test_html_to_text_keeps_paragraph_breaks() -> None:
    assert html_to_text("<p>First &amp; foremost</p><p>Second<br/>line</p>") == (
        "First & foremost\nSecond\nline"
    )


def test_history_parser_reads_rss_items() -> None:
    feed = trac_pages.ticket_rss(
        1,
        [
            trac_pages.rss_item(
                author="alice",
                date="Fri, 01 Mar 2024 10:15:00 GMT",
                category="newticket",
                description="<p>It crashes.</p>",
                title="Ticket created",
            ),
            trac_pages.rss_item(
                author="bob",
                date="Sat, 02 Mar 2024 08:00:00 +0100",
                category="ticket",
                description=(
                    "<ul><li><strong>owner</strong> set to <em>bob</em></li></ul>"
                    "<p>Taking this one.</p>"
                ),
            ),
            trac_pages.rss_item(
                author="bob",
                date="Sat, 02 Mar 2024 09:00:00 +0100",
                category="ticket",
                description="<ul><li><strong>status</strong> changed from <em>new</em> to <em>accepted</em></li></ul>",
            ),
        ],
    )

    entries = TicketHistoryParser().parse(feed)

    assert [e.author for e in entries] == ["alice", "bob", "bob"]
    assert entries[0].category == "newticket"
    assert entries[0].content == "It crashes."
    assert entries[0].date == datetime(2024, 3, 1, 10, 15, tzinfo=UTC)
    assert entries[1].content == "Taking this one."
    assert entries[1].prop_changes["owner"].new_value == "bob"
    assert entries[2].content == ""
    assert entries[2].prop_changes["status"].new_value == "accepted"


def test_query_csv_parser_handles_bom_aliases_and_blank_rows() -> None:
    content = trac_pages.query_csv(
        [trac_pages.ticket_record(4, summary="Comma, quoted"), trac_pages.ticket_record(5)]
    )
    content += "\r\n"

    records = TicketQueryCsvParser().parse(content)

    assert [r["id"] for r in records] == ["4", "5"]
    assert records[0]["summary"] == "Comma, quoted"
    assert records[0]["time"] == "2024-03-01T10:15:00+00:00"
    assert records[0]["changetime"] == "2024-03-02T08:00:00+00:00"
    assert "created" not in records[0]


@pytest.mark.parametrize("content", ["", "\ufeff"])
def test_query_csv_parser_empty_export(content: str) -> None:
    assert TicketQueryCsvParser().parse(content) == []
