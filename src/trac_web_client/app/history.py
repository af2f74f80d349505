from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

import structlog

from trac_web_client.adapters.trac.errors import TracClientError
from trac_web_client.adapters.trac.pages import TicketHistoryParser
from trac_web_client.app.failures import failure_from_exception
from trac_web_client.domain.error_messages import ErrorCodes
from trac_web_client.domain.errors import TicketFailure
from trac_web_client.domain.models import HistoryEntry

if TYPE_CHECKING:
    from trac_web_client.adapters.trac.connection import TracConnection

log = structlog.get_logger(__name__)


class TicketHistory:
    """Change log of one ticket, read from its RSS feed."""

    def __init__(self, connection: TracConnection) -> None:
        self.connection = connection
        self.ticket_id: int | None = None
        self.entries: list[HistoryEntry] = []
        self.last_error: TicketFailure | None = None

    def load(self, ticket_id: int) -> bool:
        self.last_error = None
        try:
            self.connection.ensure_logged_in()
            content = self.connection.fetch(f"/ticket/{ticket_id}", params={"format": "rss"})
        except TracClientError as exc:
            self.last_error = failure_from_exception(exc)
            log.warning("history.load_failed", ticket_id=ticket_id, error=str(exc))
            return False

        try:
            entries = TicketHistoryParser().parse(content)
        except ET.ParseError as exc:
            self.last_error = TicketFailure(ErrorCodes.REJECTED, f"Unreadable ticket feed: {exc}")
            log.warning("history.feed_unparseable", ticket_id=ticket_id, error=str(exc))
            return False

        self.ticket_id = ticket_id
        self.entries = entries
        return True
