from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic.networks import AnyHttpUrl
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from trac_web_client.config.env_aliases import get_flat_env_settings_source


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TracSettings(_Section):
    """Where the tracker lives and who we are on it."""

    # Project root, e.g. https://trac.example/project
    base_url: AnyHttpUrl
    user: str = Field(min_length=1)
    password: SecretStr
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_tls: bool = True


class ObservabilitySettings(_Section):
    log_level: str = "INFO"
    # Wins over LOG_FORMAT and json_logs when set.
    log_format: Literal["json", "human"] | None = None
    json_logs: bool = False

    @field_validator("log_format", mode="before")
    @classmethod
    def _normalize_log_format(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class TransportHardeningSettings(_Section):
    # Let httpx pick up HTTP(S)_PROXY, NO_PROXY and netrc from the environment.
    trust_env: bool = False
    # Basic auth over plain HTTP sends the password in clear text.
    allow_insecure_http: bool = False
    allow_insecure_tls: bool = False


class HardeningSettings(_Section):
    transport: TransportHardeningSettings = Field(default_factory=TransportHardeningSettings)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    trac: TracSettings
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    hardening: HardeningSettings = Field(default_factory=HardeningSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[Any, ...]:
        # Environment beats the YAML file, which arrives as init kwargs.
        return (
            env_settings,
            get_flat_env_settings_source,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Build from nested dicts only, ignoring the environment (for tests and embedding)."""
        return _MappingOnlySettings(**dict(data))


class _MappingOnlySettings(Settings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[Any, ...]:
        return (init_settings,)
