from __future__ import annotations

from trac_web_client.adapters.trac.errors import (
    AuthError,
    FormNotFoundError,
    NotFoundError,
    TracClientError,
)
from trac_web_client.domain.error_messages import ErrorCodes
from trac_web_client.domain.errors import TicketFailure


def failure_from_exception(exc: TracClientError) -> TicketFailure:
    """Map a connection error onto the failure code callers can branch on."""
    if isinstance(exc, AuthError):
        code = ErrorCodes.AUTH
    elif isinstance(exc, NotFoundError):
        code = ErrorCodes.NOT_FOUND
    elif isinstance(exc, FormNotFoundError):
        code = ErrorCodes.FORM_NOT_FOUND
    else:
        code = ErrorCodes.HTTP
    return TicketFailure(code=code, message=str(exc))
