"""Client for a remote Trac issue tracker, driven through its HTML interface."""
from __future__ import annotations

from trac_web_client._version import __version__
from trac_web_client.adapters.trac.connection import FormResponse, TracConnection
from trac_web_client.adapters.trac.errors import (
    AuthError,
    FormNotFoundError,
    NotFoundError,
    ServerError,
    TracClientError,
)
from trac_web_client.app.history import TicketHistory
from trac_web_client.app.search import TicketSearch
from trac_web_client.app.ticket import Ticket
from trac_web_client.domain.errors import TicketFailure, TicketValidationError
from trac_web_client.domain.models import Attachment, HistoryEntry, PropChange, TicketState

__all__ = [
    "Attachment",
    "AuthError",
    "FormNotFoundError",
    "FormResponse",
    "HistoryEntry",
    "NotFoundError",
    "PropChange",
    "ServerError",
    "Ticket",
    "TicketFailure",
    "TicketHistory",
    "TicketSearch",
    "TicketState",
    "TicketValidationError",
    "TracClientError",
    "TracConnection",
    "__version__",
]
