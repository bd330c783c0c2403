"""Top-level settings: environment, ``.env`` and TOML configuration."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from keyman.core.logging import get_logger
from keyman.utils.config import find_toml_config_file

from .keys import KeySettings
from .logging import LoggingSettings


__all__ = ["Settings", "ConfigurationError", "get_settings"]

ENV_PREFIX = "KEYMAN_"
NESTED_DELIMITER = "__"

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""


def _env_name(*parts: str) -> str:
    return (ENV_PREFIX + NESTED_DELIMITER.join(parts)).upper()


def _drop_env_overridden(data: dict[str, Any], environ: set[str]) -> dict[str, Any]:
    """Remove file values whose setting is also given as an environment variable."""
    kept: dict[str, Any] = {}
    for section, value in data.items():
        if isinstance(value, dict):
            kept[section] = {
                name: nested
                for name, nested in value.items()
                if _env_name(section, name) not in environ
            }
        elif _env_name(section) not in environ:
            kept[section] = value
    return kept


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for name, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(name), dict):
            merged[name] = _merge(merged[name], value)
        else:
            merged[name] = value
    return merged


class Settings(BaseSettings):
    """
    Configuration settings for keyman.

    Precedence, highest first: keyword overrides, environment variables
    (``KEYMAN_KEYS__PROMPT_TIMEOUT=5``), the TOML file, ``.env``, defaults.

    The TOML file is the first of:
    1. .keyman.toml in current directory
    2. keyman.toml in git repository root
    3. config.toml in XDG_CONFIG_HOME/keyman/
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter=NESTED_DELIMITER,
    )

    keys: KeySettings = Field(
        default_factory=KeySettings,
        description="API key storage, validation and prompt settings",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    @classmethod
    def load_config_file(cls, config_path: Path) -> dict[str, Any]:
        """Parse a TOML configuration file.

        Raises:
            ValueError: The file is not TOML, cannot be read or does not parse
        """
        if config_path.suffix.lower() != ".toml":
            raise ValueError(
                f"Unsupported config file format: {config_path.suffix or '(none)'}. "
                "Only TOML (.toml) files are supported."
            )
        try:
            with config_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ValueError(f"Cannot read TOML config file {config_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML syntax in {config_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        **kwargs: Any,
    ) -> "Settings":
        """Build settings from the environment, a config file and overrides.

        Args:
            config_path: TOML file to read. Defaults to ``$CONFIG_FILE``, then
                to the discovered file, if any
            **kwargs: Overrides, nested as dicts (``logging={"level": "DEBUG"}``)
        """
        if config_path is None and os.environ.get("CONFIG_FILE"):
            config_path = os.environ["CONFIG_FILE"]
        path = Path(config_path) if config_path is not None else find_toml_config_file()

        file_data: dict[str, Any] = {}
        if path is not None and path.exists():
            file_data = cls.load_config_file(path)
            logger.debug("config_file_loaded", path=str(path))

        # Init values outrank the environment in pydantic-settings, so file
        # values that the environment also sets are left out
        environ = {name.upper() for name in os.environ}
        init_data = _merge(_drop_env_overridden(file_data, environ), kwargs)
        return cls(**init_data)


def get_settings(config_path: Path | str | None = None, **kwargs: Any) -> Settings:
    """Load settings, reporting any problem as a ConfigurationError.

    Args:
        config_path: Optional path to configuration file. If None, uses CONFIG_FILE env var
                    or auto-discovers config file.
    """
    try:
        return Settings.from_config(config_path=config_path, **kwargs)
    except ValueError as e:
        raise ConfigurationError(f"Configuration error: {e}") from e
