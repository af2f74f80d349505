"""Small helpers shared by the HTTP side of the Trac adapter."""
from __future__ import annotations

from urllib.parse import urljoin

import httpx


def timeouts_for(seconds: float) -> httpx.Timeout:
    """Read/write get the full budget; connect and pool are capped at five seconds."""
    total = float(seconds)
    connect = min(5.0, total)
    return httpx.Timeout(connect=connect, read=total, write=total, pool=connect)


def resolve_action(page_url: str, action: str | None) -> str:
    """Resolve a form action against the URL of the page it was found on."""
    if not action:
        return page_url
    return urljoin(page_url, action)
