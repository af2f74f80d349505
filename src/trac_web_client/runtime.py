from __future__ import annotations

from pathlib import Path

from trac_web_client.adapters.trac.connection import TracConnection
from trac_web_client.config.load import load_settings
from trac_web_client.config.settings import Settings
from trac_web_client.observability.logger import bind_tracker, configure_logging


def connection_from_settings(settings: Settings) -> TracConnection:
    return TracConnection(
        base_url=str(settings.trac.base_url),
        user=settings.trac.user,
        password=settings.trac.password.get_secret_value(),
        timeout_seconds=settings.trac.timeout_seconds,
        verify_tls=settings.trac.verify_tls,
        trust_env=settings.hardening.transport.trust_env,
    )


def open_connection(*, config_path: str | Path | None = None) -> TracConnection:
    """Load settings, configure logging and connect, in that order."""
    settings = load_settings(config_path=config_path)
    configure_logging(
        log_level=settings.observability.log_level,
        log_format=settings.observability.log_format,
        json_logs=settings.observability.json_logs,
    )
    connection = connection_from_settings(settings)
    bind_tracker(connection.base_url, connection.user)
    return connection
