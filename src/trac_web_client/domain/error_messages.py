"""Error message constants for consistent failure reporting.

Ticket operations keep returning None on failure; these codes let callers
tell the failure kinds apart through `Ticket.last_error`.
"""
from __future__ import annotations


class ErrorMessages:
    """Centralized error message constants."""

    # HTTP/Network errors
    HTTP_REQUEST_ERROR = "HTTP connection/request error"
    HTTP_UPSTREAM_ERROR = "HTTP {status} from Trac"

    # Trac UI errors
    TICKET_NOT_FOUND = "Ticket {ticket_id} not found"
    TICKET_NOT_LOADED = "Ticket is not loaded"
    TICKET_ALREADY_LOADED = "Ticket {ticket_id} is already loaded"
    TICKET_ID_MISSING = "Ticket record has no id"
    TICKET_ID_MISMATCH = "Ticket {ticket_id} cannot be reloaded as ticket {other_id}"
    SUBMISSION_REJECTED = "Trac rejected the submission"
    NO_TICKET_ID = "Trac did not report a new ticket id"
    ATTACHMENT_NOT_LISTED = "Trac does not list the uploaded attachment"


class ErrorCodes:
    """Error code constants for programmatic handling."""

    HTTP = "E_HTTP"
    AUTH = "E_AUTH"
    NOT_FOUND = "E_NOT_FOUND"
    FORM_NOT_FOUND = "E_FORM_NOT_FOUND"
    VALIDATION = "E_VALIDATION"
    REJECTED = "E_REJECTED"


def format_http_error(status: int | None) -> str:
    """Format HTTP error message with status code.

    Args:
        status: HTTP status code, or None when no response arrived

    Returns:
        Formatted error message
    """
    if status is None:
        return ErrorMessages.HTTP_REQUEST_ERROR
    return ErrorMessages.HTTP_UPSTREAM_ERROR.format(status=status)
