"""Flat environment variable names for the nested settings sections.

`TRAC_BASE_URL` is friendlier than `TRAC__BASE_URL`, so both are accepted.
Legacy names from older deployments still work but emit a DeprecationWarning.
"""
from __future__ import annotations

import os
import warnings
from collections.abc import Mapping
from typing import Any, Final

FLAT_ENV_PATHS: Final[dict[str, tuple[str, ...]]] = {
    "TRAC_BASE_URL": ("trac", "base_url"),
    "TRAC_USER": ("trac", "user"),
    "TRAC_PASSWORD": ("trac", "password"),
    "TRAC_TIMEOUT_SECONDS": ("trac", "timeout_seconds"),
    "TRAC_VERIFY_TLS": ("trac", "verify_tls"),
    "LOG_LEVEL": ("observability", "log_level"),
    "LOG_FORMAT": ("observability", "log_format"),
    "LOG_JSON": ("observability", "json_logs"),
    "HARDENING_TRANSPORT_TRUST_ENV": ("hardening", "transport", "trust_env"),
    "HARDENING_TRANSPORT_ALLOW_INSECURE_HTTP": ("hardening", "transport", "allow_insecure_http"),
    "HARDENING_TRANSPORT_ALLOW_INSECURE_TLS": ("hardening", "transport", "allow_insecure_tls"),
}

# Deprecated name -> canonical name.
DEPRECATED_ENV_NAMES: Final[dict[str, str]] = {
    "TRAC_URL": "TRAC_BASE_URL",
    "TRAC_USERNAME": "TRAC_USER",
}


def _set_nested(data: dict[str, Any], path: tuple[str, ...], value: str) -> None:
    node = data
    for part in path[:-1]:
        node = node.setdefault(part, {})
    node[path[-1]] = value


def deprecated_names_in_use(env: Mapping[str, str]) -> list[tuple[str, str, bool]]:
    """(old, new, shadowed) for each deprecated name set in `env`.

    `shadowed` is True when the canonical name is set too, in which case the
    old one is ignored.
    """
    return [
        (old, new, bool(env.get(new)))
        for old, new in DEPRECATED_ENV_NAMES.items()
        if env.get(old)
    ]


def flat_env_to_nested(env: Mapping[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name, path in FLAT_ENV_PATHS.items():
        if value := env.get(name):
            _set_nested(data, path, value)

    for old, new, shadowed in deprecated_names_in_use(env):
        if shadowed:
            continue
        warnings.warn(
            f"Environment variable '{old}' is deprecated. Use '{new}' instead.",
            DeprecationWarning,
            stacklevel=3,
        )
        _set_nested(data, FLAT_ENV_PATHS[new], env[old])
    return data


def get_flat_env_settings_source() -> dict[str, Any]:
    """pydantic-settings source reading the flat names from the process environment."""
    return flat_env_to_nested(os.environ)
