from __future__ import annotations


class TracClientError(Exception):
    """Base class for errors raised while talking to the Trac web UI."""


class AuthError(TracClientError):
    """Authentication/authorization failed (HTTP 401/403 or login not confirmed)."""


class NotFoundError(TracClientError):
    """Requested page was not found (HTTP 404)."""


class ServerError(TracClientError):
    """Server-side failure, timeout or transport error."""


class FormNotFoundError(TracClientError):
    """The page did not contain the expected form (remote UI shape mismatch)."""
