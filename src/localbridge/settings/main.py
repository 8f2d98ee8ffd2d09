import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

import yaml
from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from localbridge.common.exceptions import configuration_error
from localbridge.logging import get_logger

from .databases import DatabasesSettings
from .redis import RedisSettings
from .server import LoggingSettings, ServerSettings, TransportsSettings
from .tools import ToolsSettings

logger = get_logger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class LocalBridgeSettings(BaseSettings):
    """Complete server configuration.

    Values come from, in increasing precedence: field defaults, the YAML
    config file passed to ``load_settings``, a ``.env`` file, and
    ``LOCALBRIDGE_``-prefixed environment variables (``__`` separates nested
    keys, e.g. ``LOCALBRIDGE_LOGGING__LEVEL=debug`` or
    ``LOCALBRIDGE_TOOLS__DB__DEFAULT_DRY_RUN=true``).
    """

    model_config = SettingsConfigDict(
        env_prefix="LOCALBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    server: ServerSettings = Field(default_factory=ServerSettings, description="Server identity and limits")
    logging: LoggingSettings = Field(default_factory=LoggingSettings, description="Log level, format and output")
    transports: TransportsSettings = Field(
        default_factory=TransportsSettings,
        description="stdio, streamable HTTP and SSE transports"
    )
    databases: DatabasesSettings = Field(default_factory=DatabasesSettings, description="SQL instances")
    redis: RedisSettings = Field(default_factory=RedisSettings, description="Redis instances")
    tools: ToolsSettings = Field(default_factory=ToolsSettings, description="Tool limits and defaults")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides the YAML file, which arrives as init kwargs
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @model_validator(mode="after")
    def validate_configuration(self) -> "LocalBridgeSettings":
        if not self.transports.any_enabled:
            raise ValueError("at least one transport must be enabled")

        seen = set()
        for instance in [*self.databases.mysql, *self.databases.postgres]:
            if instance.name in seen:
                raise ValueError(f"duplicate database instance name: {instance.name}")
            seen.add(instance.name)

        redis_names = [instance.name for instance in self.redis.instances]
        if len(redis_names) != len(set(redis_names)):
            raise ValueError("duplicate redis instance names")
        return self

    @property
    def log_output(self) -> str:
        """Effective log destination; stdout is reserved while stdio serves."""
        if self.transports.stdio.enabled and self.logging.output == "stdout":
            return "stderr"
        return self.logging.output


def expand_env(text: str) -> str:
    """Substitute ``${VAR}`` and ``$VAR`` references; unset variables become empty."""
    return _ENV_REFERENCE.sub(lambda m: os.environ.get(m.group(1) or m.group(2), ""), text)


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise configuration_error(
            f"failed to read config file {path}: {exc}", config_key=str(path), cause=exc
        ) from exc

    try:
        data = yaml.safe_load(expand_env(raw)) or {}
    except yaml.YAMLError as exc:
        raise configuration_error(
            f"failed to parse config file {path}: {exc}", config_key=str(path), cause=exc
        ) from exc

    if not isinstance(data, dict):
        raise configuration_error(
            f"config file {path} must contain a mapping at the top level", config_key=str(path)
        )
    return data


def load_settings(config_path: Optional[Union[str, Path]] = None) -> LocalBridgeSettings:
    """Load and validate settings from an optional YAML file plus the environment.

    Args:
        config_path: YAML file to read. ``None`` uses defaults and the
            environment only.

    Returns:
        Validated settings

    Raises:
        LocalBridgeError: CONFIG_INVALID when the file cannot be read or
            parsed, or when validation fails.
    """
    data: Dict[str, Any] = {}
    if config_path is not None:
        data = _read_config_file(Path(config_path))

    try:
        settings = LocalBridgeSettings(**data)
    except ValidationError as exc:
        raise configuration_error(
            f"invalid configuration: {exc}",
            config_key=str(config_path) if config_path else None,
            cause=exc,
        ) from exc

    logger.debug(
        "Configuration loaded",
        extra={
            "config_path": str(config_path) if config_path else None,
            "databases": len(settings.databases.enabled()),
            "redis_instances": len(settings.redis.enabled()),
        },
    )
    return settings


# Singleton instance
_settings: Optional[LocalBridgeSettings] = None


def get_settings(config_path: Optional[Union[str, Path]] = None, force_reload: bool = False) -> LocalBridgeSettings:
    """Get the process-wide settings instance.

    The first call (or any call with ``force_reload``) loads settings via
    ``load_settings``; later calls return the same instance.

    Args:
        config_path: YAML file used when loading
        force_reload: Reload even if settings are already loaded

    Returns:
        LocalBridgeSettings: The singleton settings instance
    """
    global _settings

    if _settings is None or force_reload:
        _settings = load_settings(config_path)

    return _settings


def _reload_settings() -> None:
    """Drop the cached settings instance.

    This is primarily for tests that change the environment between cases.
    """
    global _settings
    _settings = None
