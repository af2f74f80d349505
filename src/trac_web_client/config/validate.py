from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from pydantic import ValidationError

from trac_web_client.config.settings import Settings

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    """All configuration problems at once, one line per setting."""

    def __init__(self, issues: Iterable[ConfigValidationIssue]):
        self.issues = list(issues)
        lines = ["Configuration is invalid:", *(f"- {i.path}: {i.message}" for i in self.issues)]
        super().__init__("\n".join(lines))


def issues_from_pydantic_error(error: ValidationError) -> list[ConfigValidationIssue]:
    return [
        ConfigValidationIssue(
            path=".".join(str(part) for part in item.get("loc", ())) or "<root>",
            message=item.get("msg", "Invalid value"),
        )
        for item in error.errors(include_url=False)
    ]


def _check_log_level(settings: Settings) -> Iterator[ConfigValidationIssue]:
    level = settings.observability.log_level
    if level.upper() not in _LOG_LEVELS:
        yield ConfigValidationIssue(
            "observability.log_level",
            f"Unsupported log level {level!r} (allowed: {', '.join(_LOG_LEVELS)})",
        )


def _check_plain_http(settings: Settings) -> Iterator[ConfigValidationIssue]:
    if settings.trac.base_url.scheme == "http" and not settings.hardening.transport.allow_insecure_http:
        yield ConfigValidationIssue(
            "trac.base_url",
            "Plain HTTP would send the Trac password in clear text with every request. "
            "Use https:// or set hardening.transport.allow_insecure_http=true.",
        )


def _check_tls_verification(settings: Settings) -> Iterator[ConfigValidationIssue]:
    if not settings.trac.verify_tls and not settings.hardening.transport.allow_insecure_tls:
        yield ConfigValidationIssue(
            "trac.verify_tls",
            "TLS verification can only be disabled together with "
            "hardening.transport.allow_insecure_tls=true.",
        )


_CHECKS: tuple[Callable[[Settings], Iterator[ConfigValidationIssue]], ...] = (
    _check_log_level,
    _check_plain_http,
    _check_tls_verification,
)


def validate_settings(settings: Settings) -> None:
    """Cross-field rules pydantic cannot express; raises with every failing rule."""
    issues = [issue for check in _CHECKS for issue in check(settings)]
    if issues:
        raise ConfigValidationError(issues)
