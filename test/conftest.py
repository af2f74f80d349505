from __future__ import annotations

import os
import socket
import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


def _live_trac_allowed() -> bool:
    return (os.environ.get("TRAC_LIVE_TESTS") or "").strip().lower() in {"1", "true", "yes"}


@pytest.fixture(autouse=True)
def _no_real_trac(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every Trac page in the tests comes from respx; sockets are refused."""
    if _live_trac_allowed():
        return

    def _refuse(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("Tests must not reach a real Trac (set TRAC_LIVE_TESTS=1 to allow it).")

    monkeypatch.setattr(socket, "create_connection", _refuse)
    monkeypatch.setattr(socket.socket, "connect", _refuse, raising=True)


@pytest.fixture(autouse=True)
def _logging_to_stderr() -> None:
    """Tests that bypass runtime.open_connection still get logs on stderr, not stdout."""
    from trac_web_client.observability.logger import configure_logging

    configure_logging()
