"""Page parsers for the Trac HTML/RSS/CSV views.

Each page type has its own parser so the scraping strategy can change without
touching the ticket logic.
"""
from __future__ import annotations

import csv
import io
import re
import xml.etree.ElementTree as ET
from html import unescape
from html.parser import HTMLParser
from typing import Final
from urllib.parse import quote, unquote

from trac_web_client.domain.models import Attachment, HistoryEntry, PropChange
from trac_web_client.domain.time_utils import parse_rfc822_datetime, parse_trac_datetime

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_ERROR_PAGE_RE = re.compile(
    r'<div\s+(?:id="content"\s+class="error"|class="error"\s+id="content")\s*>'
    r'(?:\s*<h1>.*?</h1>)?\s*<p\s+class="message">(.*?)</p>',
    re.IGNORECASE | re.DOTALL,
)
_WARNING_RE = re.compile(
    r'<div\s+(?:id="warning"\s+class="system-message"|class="system-message"\s+id="warning")'
    r"[^>]*>(.*?)</div>",
    re.IGNORECASE | re.DOTALL,
)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

_ATTACHMENTS_BLOCK_RE = re.compile(r'<dl\s+class="attachments"\s*>(.+?)</dl>', re.IGNORECASE | re.DOTALL)
_DT_RE = re.compile(r"<dt\b[^>]*>", re.IGNORECASE)
_FILENAME_RE = re.compile(r'<a\s[^>]*?title="View attachment"[^>]*>(.+?)</a>', re.IGNORECASE)
_SIZE_RE = re.compile(r'<span\s+title="(\d+) bytes"', re.IGNORECASE)
_AUTHOR_RE = re.compile(
    r"added by\s*<(?:em|span)[^>]*>(.+?)</(?:em|span)>", re.IGNORECASE | re.DOTALL
)
_DATE_TITLE_RE = re.compile(r'<a\s[^>]*?title="([^"]+) in Timeline"', re.IGNORECASE)
_DATE_HREF_RE = re.compile(r'<a\s[^>]*?href="[^"]*timeline\?from=([^&"]+)', re.IGNORECASE)
_DESCRIPTION_RE = re.compile(r"<dd>\s*(\S.*?)\s*</dd>\s*$", re.IGNORECASE | re.DOTALL)

_CHANGE_ITEM_RE = re.compile(r"<li>(.*?)</li>", re.IGNORECASE | re.DOTALL)
_CHANGE_LIST_RE = re.compile(r"^\s*<ul>.*?</ul>", re.IGNORECASE | re.DOTALL)
_CHANGED_RE = re.compile(
    r"^\s*<strong>(.+?)</strong>\s+changed from\s+<em>(.*?)</em>\s+to\s+<em>(.*?)</em>",
    re.IGNORECASE | re.DOTALL,
)
_SET_RE = re.compile(
    r"^\s*<strong>(.+?)</strong>\s+set to\s+<em>(.*?)</em>", re.IGNORECASE | re.DOTALL
)
_DELETED_RE = re.compile(r"^\s*<strong>(.+?)</strong>\s+deleted", re.IGNORECASE | re.DOTALL)

_DC_CREATOR: Final[str] = "{http://purl.org/dc/elements/1.1/}creator"

# Query CSV column labels that differ from the ticket property names.
_CSV_HEADER_ALIASES: Final[dict[str, str]] = {
    "ticket": "id",
    "created": "time",
    "modified": "changetime",
}


def _text(fragment: str) -> str:
    return _WS_RE.sub(" ", unescape(_TAG_RE.sub("", fragment))).strip()


def extract_title(html: str) -> str | None:
    match = _TITLE_RE.search(html)
    if match is None:
        return None
    return _text(match.group(1))


def find_error_message(html: str) -> str | None:
    """Message of a Trac error page or form warning, if the page is one."""
    for pattern in (_ERROR_PAGE_RE, _WARNING_RE):
        match = pattern.search(html)
        if match is not None:
            return _text(match.group(1)) or "Trac reported an error"
    return None


def is_logged_in_as(html: str, user: str) -> bool:
    pattern = re.compile(
        r"logged in as\s*(?:<[^>]+>\s*)*" + re.escape(user) + r"\b", re.IGNORECASE
    )
    return pattern.search(html) is not None


class AttachmentListParser:
    """Splits the attachment index page into one HTML fragment per attachment."""

    def parse(self, content: str) -> list[str]:
        match = _ATTACHMENTS_BLOCK_RE.search(content)
        if match is None:
            return []
        block = match.group(1)
        starts = [m.end() for m in _DT_RE.finditer(block)]
        ends = [m.start() for m in _DT_RE.finditer(block)][1:] + [len(block)]
        return [block[start:end] for start, end in zip(starts, ends, strict=True)]


class AttachmentFragmentParser:
    """Parses one `<dt>...</dt><dd>...</dd>` attachment fragment."""

    def __init__(self, ticket_id: int) -> None:
        self._ticket_id = ticket_id

    def parse(self, content: str) -> Attachment:
        filename = _first_group(_FILENAME_RE, content)
        size = _first_group(_SIZE_RE, content)
        author = _first_group(_AUTHOR_RE, content)
        description = _first_group(_DESCRIPTION_RE, content)

        date_raw = _first_group(_DATE_TITLE_RE, content)
        date = parse_trac_datetime(date_raw)
        if date is None:
            href_date = _first_group(_DATE_HREF_RE, content)
            date = parse_trac_datetime(unquote(unescape(href_date)) if href_date else None)

        name = _text(filename) if filename is not None else None
        url = f"/raw-attachment/ticket/{self._ticket_id}/{quote(name)}" if name else None

        return Attachment(
            ticket=self._ticket_id,
            filename=name,
            description=_text(description) if description is not None else None,
            url=url,
            author=_text(author) if author is not None else None,
            date=date,
            size=int(size) if size is not None else None,
        )


def _first_group(pattern: re.Pattern[str], content: str) -> str | None:
    match = pattern.search(content)
    return match.group(1) if match is not None else None


class _HTMLToText(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in {"p", "div", "br", "li", "tr"}:
            self._parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in {"p", "div", "li", "tr"}:
            self._parts.append("\n")

    def handle_data(self, data: str) -> None:
        self._parts.append(data)

    def get_text(self) -> str:
        text = "".join(self._parts)
        text = "\n".join(line.strip() for line in text.splitlines())
        text = "\n".join(line for line in text.splitlines() if line)
        return text.strip()


def html_to_text(html: str) -> str:
    parser = _HTMLToText()
    parser.feed(html)
    parser.close()
    return parser.get_text()


def parse_prop_changes(description_html: str) -> dict[str, PropChange]:
    changes: dict[str, PropChange] = {}
    list_match = _CHANGE_LIST_RE.match(description_html)
    if list_match is None:
        return changes
    for item in _CHANGE_ITEM_RE.findall(list_match.group(0)):
        change = _parse_change_item(item)
        if change is not None:
            changes[change.property] = change
    return changes


def _parse_change_item(item: str) -> PropChange | None:
    if (match := _CHANGED_RE.match(item)) is not None:
        return PropChange(
            property=_text(match.group(1)),
            old_value=_text(match.group(2)),
            new_value=_text(match.group(3)),
        )
    if (match := _SET_RE.match(item)) is not None:
        return PropChange(property=_text(match.group(1)), new_value=_text(match.group(2)))
    if (match := _DELETED_RE.match(item)) is not None:
        return PropChange(property=_text(match.group(1)))
    return None


class TicketHistoryParser:
    """Parses the ticket RSS feed (`/ticket/<id>?format=rss`) into history entries."""

    def parse(self, content: str) -> list[HistoryEntry]:
        root = ET.fromstring(content)
        entries: list[HistoryEntry] = []
        for item in root.iter("item"):
            description = item.findtext("description") or ""
            body = _CHANGE_LIST_RE.sub("", description, count=1)
            entries.append(
                HistoryEntry(
                    author=_stripped(item.findtext(_DC_CREATOR) or item.findtext("author")),
                    date=parse_rfc822_datetime(item.findtext("pubDate")),
                    category=_stripped(item.findtext("category")),
                    content=html_to_text(body),
                    prop_changes=parse_prop_changes(description),
                )
            )
        return entries


def _stripped(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class TicketQueryCsvParser:
    """Parses the CSV export of a ticket query into plain records."""

    def parse(self, content: str) -> list[dict[str, str]]:
        reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
        rows = list(reader)
        if not rows:
            return []
        header = [_CSV_HEADER_ALIASES.get(h.strip().lower(), h.strip().lower()) for h in rows[0]]
        records: list[dict[str, str]] = []
        for row in rows[1:]:
            if not any(cell.strip() for cell in row):
                continue
            records.append(dict(zip(header, row, strict=False)))
        return records
