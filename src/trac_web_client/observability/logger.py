from __future__ import annotations

import logging
import os
import sys
from typing import Any, Final

import structlog
from structlog.stdlib import ProcessorFormatter

from trac_web_client.config.redact import redact_settings_dict, scrub_secrets_in_text

_FORMATS: Final[frozenset[str]] = frozenset({"json", "human"})

# httpx/httpcore log every request at INFO/DEBUG, including full URLs.
_CHATTY_LIBRARIES: Final[tuple[str, ...]] = ("httpx", "httpcore")


def _scrub_event_dict(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return redact_settings_dict(event_dict)


def _pick_format(configured: str | None, json_logs: bool) -> str:
    """Explicit setting wins, then LOG_FORMAT, then the json_logs flag."""
    for candidate in (configured, os.environ.get("LOG_FORMAT")):
        normalized = (candidate or "").strip().lower()
        if normalized in _FORMATS:
            return normalized
    return "json" if json_logs else "human"


def _pick_level(configured: str) -> str:
    return ((os.environ.get("LOG_LEVEL") or "").strip() or configured).upper()


def configure_logging(
    *,
    log_level: str = "INFO",
    json_logs: bool = False,
    log_format: str | None = None,
) -> None:
    """
    structlog on top of stdlib logging, rendered as JSON or for humans.

    Output goes to stderr; the CLI prints its results on stdout.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _scrub_event_dict,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: Any
    if _pick_format(log_format, json_logs) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_pick_level(log_level))

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_tracker(base_url: str, user: str) -> None:
    """Tag every following log line with the tracker and the acting user."""
    structlog.contextvars.bind_contextvars(trac_url=scrub_secrets_in_text(base_url), trac_user=user)
