"""Settings loading: `.env`, an optional YAML file and the environment.

Precedence (highest first): nested env vars (`TRAC__USER`), flat env vars
(`TRAC_USER`), the YAML file, `.env`.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from trac_web_client.config.settings import Settings
from trac_web_client.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
    validate_settings,
)

DEFAULT_CONFIG_PATH: Final[Path] = Path("config/config.yaml")

_REQUIRED_TRAC_FIELDS: Final[tuple[str, ...]] = ("base_url", "user", "password")

_HINTS: Final[dict[str, str]] = {
    f"trac.{name}": f"Set `TRAC_{name.upper()}` (or YAML `trac.{name}`)."
    for name in _REQUIRED_TRAC_FIELDS
}


def _config_file(config_path: str | Path | None) -> Path | None:
    """The YAML file to read; a file asked for explicitly must exist."""
    explicit = config_path or os.environ.get("CONFIG_PATH")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise ConfigValidationError(
                [ConfigValidationIssue("CONFIG_PATH", f"Config file not found: {path}")]
            )
        return path
    return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), f"Unable to read config file: {exc}")]
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), f"Invalid YAML: {exc}")]
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), "YAML root must be a mapping/object")]
        )
    return raw


def _explain(issues: list[ConfigValidationIssue]) -> list[ConfigValidationIssue]:
    """Spell out a missing `trac` section field by field and add where-to-set hints."""
    explained: list[ConfigValidationIssue] = []
    for issue in issues:
        if issue.path == "trac" and "Field required" in issue.message:
            explained.extend(
                ConfigValidationIssue(f"trac.{name}", issue.message) for name in _REQUIRED_TRAC_FIELDS
            )
        else:
            explained.append(issue)
    return [
        ConfigValidationIssue(i.path, f"{i.message} {_HINTS[i.path]}") if i.path in _HINTS else i
        for i in explained
    ]


def load_settings(*, config_path: str | Path | None = None) -> Settings:
    if Path(".env").is_file():
        load_dotenv(dotenv_path=".env", override=False)

    path = _config_file(config_path)
    file_data = _read_yaml(path) if path is not None else {}

    try:
        settings = Settings(**file_data)
    except ValidationError as exc:
        raise ConfigValidationError(_explain(issues_from_pydantic_error(exc))) from exc

    validate_settings(settings)
    return settings
