import os
import tomllib
from contextvars import ContextVar
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from httpecho.core.errors import ConfigurationError
from httpecho.core.logging import get_logger

from .echo import EchoSettings
from .logging import LoggingSettings
from .server import ServerSettings


__all__ = ["Settings", "ConfigurationError", "find_toml_config_file", "get_settings"]


CONFIG_FILE_ENV = "HTTPECHO_CONFIG_FILE"
DEFAULT_CONFIG_FILE = ".httpecho.toml"

# CLI key -> (section, field)
_CLI_OVERRIDES: dict[str, tuple[str, str]] = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "backlog": ("server", "backlog"),
    "prefix": ("echo", "prefix"),
    "suffix": ("echo", "suffix"),
    "wait": ("echo", "wait"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "verbose": ("logging", "verbose"),
    "verbose_headers": ("logging", "verbose_headers"),
    "verbose_body": ("logging", "verbose_body"),
}

_toml_data: ContextVar[dict[str, Any] | None] = ContextVar(
    "httpecho_toml_data", default=None
)


def find_toml_config_file() -> Path | None:
    """Locate the configuration file.

    Checks ``HTTPECHO_CONFIG_FILE`` first, then ``.httpecho.toml`` in the
    current directory.
    """
    config_path_env = os.environ.get(CONFIG_FILE_ENV)
    if config_path_env:
        return Path(config_path_env)

    candidate = Path.cwd() / DEFAULT_CONFIG_FILE
    if candidate.is_file():
        return candidate
    return None


class TomlDataSource(PydanticBaseSettingsSource):
    """Settings source backed by an already parsed TOML document."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]):
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self._data.items()
            if key in self.settings_cls.model_fields
        }


class Settings(BaseSettings):
    """
    Configuration settings for the echo server.

    Precedence, highest first: explicit CLI values, ``HTTPECHO_*`` environment
    variables, ``.env`` file, TOML configuration file, defaults. Nested values
    use ``__`` in environment variable names, e.g. ``HTTPECHO_ECHO__PREFIX``.

    Settings are frozen: they are built once at startup and only read while
    requests are handled.
    """

    model_config = SettingsConfigDict(
        env_prefix="HTTPECHO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
        frozen=True,
    )

    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="Listener configuration settings",
    )

    echo: EchoSettings = Field(
        default_factory=EchoSettings,
        description="Header and body echo settings",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging and diagnostics configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: tuple[PydanticBaseSettingsSource, ...] = (
            init_settings,
            env_settings,
            dotenv_settings,
        )
        toml_data = _toml_data.get()
        if toml_data:
            sources += (TomlDataSource(settings_cls, toml_data),)
        return sources

    @property
    def server_url(self) -> str:
        """Get the complete server URL."""
        return f"http://{self.server.host}:{self.server.port}"

    def model_dump_safe(self) -> dict[str, Any]:
        """Dump configuration as JSON-compatible data."""
        return self.model_dump(mode="json")

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        cli_context: dict[str, Any] | None = None,
    ) -> "Settings":
        """Create Settings from a TOML file, the environment and CLI values.

        ``cli_context`` maps CLI option names to values; ``None`` means the
        option was not given and does not override anything.
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if config_path.suffix.lower() != ".toml":
                raise ConfigurationError(
                    f"Unsupported config file format: {config_path.suffix}. "
                    "Only TOML (.toml) files are supported."
                )
            config_data = cls.load_toml_config(config_path)
            get_logger(__name__).info(
                "config_file_loaded", path=str(config_path), category="config"
            )

        overrides: dict[str, dict[str, Any]] = {}
        for key, value in (cli_context or {}).items():
            if value is None or key not in _CLI_OVERRIDES:
                continue
            section, field = _CLI_OVERRIDES[key]
            overrides.setdefault(section, {})[field] = value

        token = _toml_data.set(config_data)
        try:
            return cls(**overrides)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        finally:
            _toml_data.reset(token)


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings, loaded once."""
    return Settings.from_config()
