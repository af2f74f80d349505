"""Ticket queries through Trac's CSV export of the custom query page."""
from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from trac_web_client.adapters.trac.errors import TracClientError
from trac_web_client.adapters.trac.pages import TicketQueryCsvParser
from trac_web_client.app.failures import failure_from_exception
from trac_web_client.domain.errors import TicketFailure
from trac_web_client.domain.models import TICKET_PROPS

if TYPE_CHECKING:
    from trac_web_client.adapters.trac.connection import TracConnection
    from trac_web_client.app.ticket import Ticket

log = structlog.get_logger(__name__)


def _criterion_value(value: Any) -> str:
    # Trac ORs alternatives written as a|b.
    if isinstance(value, (list, tuple, set, frozenset)):
        return "|".join(str(v) for v in value)
    return str(value)


class TicketSearch:
    def __init__(self, connection: TracConnection, *, limit: int | None = None) -> None:
        self.connection = connection
        self.limit = limit
        self.results: Sequence[Any] = []
        self.last_error: TicketFailure | None = None

    def query(self, *, objects: bool = True, **criteria: Any) -> Sequence[Any]:
        """Run a query; returns `Ticket`s, or plain records when `objects` is False.

        Criteria use Trac's query syntax, e.g. ``status="!closed"`` or
        ``owner=["alice", "bob"]``. An empty query is refused since Trac would
        return every ticket.
        """
        self.last_error = None
        self.results = []
        if not criteria:
            log.warning("search.empty_query_refused")
            return self.results

        params: list[tuple[str, str]] = [("format", "csv"), ("order", "id")]
        if self.limit is not None:
            params.append(("max", str(self.limit)))
        params.extend(("col", prop) for prop in TICKET_PROPS)
        params.extend((name, _criterion_value(value)) for name, value in criteria.items())

        try:
            self.connection.ensure_logged_in()
            content = self.connection.fetch("/query", params=params)
        except TracClientError as exc:
            self.last_error = failure_from_exception(exc)
            log.warning("search.query_failed", error=str(exc), criteria=sorted(criteria))
            return self.results

        records = TicketQueryCsvParser().parse(content)
        if self.limit is not None:
            records = records[: self.limit]

        if not objects:
            self.results = records
            return self.results

        self.results = [self._ticket_from_record(record) for record in records]
        return self.results

    def _ticket_from_record(self, record: dict[str, str]) -> Ticket:
        from trac_web_client.app.ticket import Ticket

        ticket = Ticket(self.connection)
        ticket.load_from_mapping(record, skip_metadata=True)
        return ticket
