"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (SIMILO__SECTION__KEY)
3. YAML config (<home>/config.yaml)
4. Built-in defaults (lowest priority)

The home directory is ``~/.similo`` unless ``SIMILO_HOME`` points elsewhere.
It also holds the index database, PID/port files and logs.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from similo.config.constants import (
    CONFIG_FILE,
    DB_FILE,
    DEFAULT_HOME,
    HOME_ENV_VAR,
    LOG_DIR,
    LOG_FILE,
    PID_FILE,
    PORT_FILE,
)
from similo.config.models import (
    IndexingConfig,
    LoggingConfig,
    OllamaConfig,
    SearchConfig,
    ServerConfig,
    SimiloConfig,
    WorkerConfig,
)
from similo.core.errors import ConfigError


@dataclass(frozen=True)
class SimiloPaths:
    """Filesystem locations under the similo home directory."""

    home: Path

    @property
    def config_file(self) -> Path:
        return self.home / CONFIG_FILE

    @property
    def db_path(self) -> Path:
        return self.home / DB_FILE

    @property
    def pid_file(self) -> Path:
        return self.home / PID_FILE

    @property
    def port_file(self) -> Path:
        return self.home / PORT_FILE

    @property
    def log_file(self) -> Path:
        return self.home / LOG_DIR / LOG_FILE


def get_home() -> Path:
    """Resolve the similo home directory from the environment."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(DEFAULT_HOME).expanduser()


def get_paths(home: Path | None = None) -> SimiloPaths:
    return SimiloPaths(home=home or get_home())


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return data


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class SimiloSettings(BaseSettings):
        """Root config. Env vars: SIMILO__LOGGING__LEVEL, SIMILO__SERVER__PORT, etc."""

        model_config = SettingsConfigDict(
            env_prefix="SIMILO__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        ollama: OllamaConfig = OllamaConfig()
        server: ServerConfig = ServerConfig()
        indexing: IndexingConfig = IndexingConfig()
        worker: WorkerConfig = WorkerConfig()
        search: SearchConfig = SearchConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml file
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return SimiloSettings


SimiloSettings = _make_settings_class({})


def load_config(
    home: Path | None = None,
    *,
    config_file: Path | None = None,
    **kwargs: Any,
) -> SimiloConfig:
    """Load config: defaults < YAML file < env vars < kwargs.

    Args:
        home: Similo home directory. Defaults to ``get_home()``.
        config_file: Explicit YAML file. Unlike the default location it must exist.
        **kwargs: Override values (highest precedence).

    Raises:
        ConfigError: On a missing explicit file, invalid YAML or validation errors.
    """
    if config_file is not None:
        if not config_file.exists():
            raise ConfigError.file_not_found(str(config_file))
        yaml_config = _load_yaml(config_file)
    else:
        yaml_config = _load_yaml(get_paths(home).config_file)

    settings_cls = _make_settings_class(yaml_config)
    try:
        return settings_cls(**kwargs)  # type: ignore[return-value]
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
