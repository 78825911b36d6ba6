"""Configuration models and loading.

Settings come from two places, in increasing priority:

1. ``~/.config/authgate-proxy/config.json`` (or the file named by
   ``AUTHGATE_CONFIG_FILE``), nested by section.
2. Flat environment variables such as ``API_BASE`` or ``CORS_ALLOWED_ORIGINS``.
"""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "authgate-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_FILE_ENV = "AUTHGATE_CONFIG_FILE"


def _comma_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ProxySettings(_Frozen):
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = "INFO"
    mount_path: str = "/api/proxy"
    protected_paths: tuple[str, ...] = ("/match",)

    @field_validator("mount_path")
    @classmethod
    def _strip_mount(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("protected_paths", mode="before")
    @classmethod
    def _split_paths(cls, value: Any) -> Any:
        return _comma_list(value)

    @field_validator("protected_paths")
    @classmethod
    def _absolute_paths(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(p if p.startswith("/") else "/" + p for p in value if p)


class UpstreamSettings(_Frozen):
    base_url: str | None = None
    timeout: float | None = Field(default=None, gt=0)
    forward_authorization: bool = False

    @property
    def origin(self) -> str | None:
        if not self.base_url:
            return None
        return self.base_url.rstrip("/")


class CorsSettings(_Frozen):
    allowed_origins: frozenset[str] = frozenset()

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        return _comma_list(value)

    @property
    def mode(self) -> str:
        return "allowlist" if self.allowed_origins else "open"


class AuthSettings(_Frozen):
    verifier_url: str | None = None
    verifier_api_key: str | None = None
    user_id_field: str = "id"


class QuotaSettings(_Frozen):
    daily_limit: int | None = Field(default=None, ge=0)
    counter_url: str | None = None
    counter_api_key: str | None = None

    @property
    def enabled(self) -> bool:
        return self.daily_limit is not None


class AuditSettings(_Frozen):
    sink_url: str | None = None
    sink_api_key: str | None = None
    log_dir: Path = Field(default_factory=lambda: Path.cwd() / "logs" / "audit")


def config_file_path() -> Path:
    override = os.environ.get(CONFIG_FILE_ENV)
    return Path(override) if override else CONFIG_FILE


class Config(BaseSettings):
    """Complete proxy configuration.

    Keyword arguments take priority over the JSON config file. Environment
    variables are read separately by :class:`EnvSettings` and passed in as
    keyword arguments by :func:`load_config`.
    """

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            JsonConfigSettingsSource(settings_cls, json_file=config_file_path()),
        )


class EnvSettings(BaseSettings):
    """Flat environment variables for deployments without a config file.

    Blank values count as unset. List values (``PROTECTED_PATHS``,
    ``CORS_ALLOWED_ORIGINS``) are comma-separated.
    """

    model_config = SettingsConfigDict(extra="ignore", frozen=True)

    # Upstream
    api_base: str | None = Field(default=None, validation_alias="API_BASE")
    upstream_timeout: float | None = Field(default=None, validation_alias="UPSTREAM_TIMEOUT")
    forward_authorization: bool | None = Field(default=None, validation_alias="FORWARD_AUTHORIZATION")

    # Server and routing
    proxy_host: str | None = Field(default=None, validation_alias="PROXY_HOST")
    proxy_port: int | None = Field(default=None, validation_alias="PROXY_PORT")
    log_level: str | None = Field(default=None, validation_alias="LOG_LEVEL")
    mount_path: str | None = Field(default=None, validation_alias="PROXY_MOUNT_PATH")
    protected_paths: str | None = Field(default=None, validation_alias="PROTECTED_PATHS")

    # CORS
    allowed_origins: str | None = Field(default=None, validation_alias="CORS_ALLOWED_ORIGINS")

    # Identity verifier
    verifier_url: str | None = Field(default=None, validation_alias="AUTH_VERIFIER_URL")
    verifier_api_key: str | None = Field(default=None, validation_alias="AUTH_VERIFIER_API_KEY")
    user_id_field: str | None = Field(default=None, validation_alias="AUTH_USER_ID_FIELD")

    # Quota
    daily_limit: int | None = Field(default=None, validation_alias="QUOTA_DAILY_LIMIT")
    counter_url: str | None = Field(default=None, validation_alias="QUOTA_COUNTER_URL")
    counter_api_key: str | None = Field(default=None, validation_alias="QUOTA_COUNTER_API_KEY")

    # Audit
    sink_url: str | None = Field(default=None, validation_alias="AUDIT_SINK_URL")
    sink_api_key: str | None = Field(default=None, validation_alias="AUDIT_SINK_API_KEY")
    log_dir: Path | None = Field(default=None, validation_alias="AUDIT_LOG_DIR")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def overrides(self) -> dict[str, dict[str, Any]]:
        """Set values grouped by :class:`Config` section."""
        sections = {
            "upstream": {
                "base_url": self.api_base,
                "timeout": self.upstream_timeout,
                "forward_authorization": self.forward_authorization,
            },
            "proxy": {
                "host": self.proxy_host,
                "port": self.proxy_port,
                "log_level": self.log_level,
                "mount_path": self.mount_path,
                "protected_paths": self.protected_paths,
            },
            "cors": {"allowed_origins": self.allowed_origins},
            "auth": {
                "verifier_url": self.verifier_url,
                "verifier_api_key": self.verifier_api_key,
                "user_id_field": self.user_id_field,
            },
            "quota": {
                "daily_limit": self.daily_limit,
                "counter_url": self.counter_url,
                "counter_api_key": self.counter_api_key,
            },
            "audit": {
                "sink_url": self.sink_url,
                "sink_api_key": self.sink_api_key,
                "log_dir": self.log_dir,
            },
        }
        return {
            name: {key: value for key, value in values.items() if value is not None}
            for name, values in sections.items()
        }


def load_config() -> Config:
    """Load configuration from the optional JSON file, then environment overrides.

    Raises ConfigurationError when the file or any value fails validation.
    """
    try:
        overrides = EnvSettings().overrides()
        return Config(**{name: values for name, values in overrides.items() if values})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid config file {config_file_path()}: {e}") from e
