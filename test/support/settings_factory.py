from __future__ import annotations

from copy import deepcopy
from typing import Any

from trac_web_client.config.settings import Settings


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def make_settings(
    *,
    base_url: str = "https://trac.example/project",
    user: str = "alice",
    password: str = "test-password",
    overrides: dict[str, Any] | None = None,
) -> Settings:
    data: dict[str, Any] = {
        "trac": {"base_url": base_url, "user": user, "password": password},
    }
    if overrides:
        data = _deep_merge(data, overrides)
    return Settings.from_mapping(data)
