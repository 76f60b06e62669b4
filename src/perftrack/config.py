"""Central Configuration System for perftrack.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here.

The configuration system supports:
- Multi-source configuration (environment variables > config file > defaults)
- API key lookup for the generative backend (env > system keyring)
- Graceful degradation when the config file is missing or malformed

Example:
    >>> from perftrack.config import get_config, get_api_key
    >>>
    >>> cfg = get_config()
    >>> print(cfg.ai.model_name)  # gemini-2.5-flash
    >>> if cfg.ai.proxy_url:
    ...     print("Report generation goes through the AI proxy")

Config File Format (YAML):
    ```yaml
    ai:
      model_name: gemini-2.5-flash
      proxy_url: https://perf.example.com
      request_timeout_seconds: null

    reports:
      default_tone: Manager-ready
      output_dir: ./reports

    importer:
      fallback_list_title: Imported Tasks

    paths:
      data_dir: ~/.perftrack/data
      log_dir: ~/.perftrack/logs

    default_user: local
    debug: false
    verbose: false
    ```
"""

from __future__ import annotations

import functools
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

from perftrack.exceptions import PerftrackError

# Never log secrets from this module
logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(PerftrackError):
    """Base exception for configuration errors."""


class ConfigFileError(ConfigError):
    """Raised when a config file exists but cannot be read or parsed."""


class APIKeyError(ConfigError):
    """Base exception for API key related issues."""


class APIKeyNotFoundError(APIKeyError):
    """Raised when no API key is found in any configured source."""


# =============================================================================
# Enums
# =============================================================================


class KeySource(str, Enum):
    """Sources from which the generative backend API key can be retrieved.

    Attributes:
        ENVIRONMENT: From the API_KEY or GEMINI_API_KEY environment variable.
        KEYRING: From the system keyring.
        NONE: No key configured in any source.
    """

    ENVIRONMENT = "environment"
    KEYRING = "keyring"
    NONE = "none"


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Configuration for the generative text backend.

    Report generation and the goal helpers talk either to an HTTP proxy
    (``proxy_url`` set) or directly to Gemini through the google-genai SDK.

    Attributes:
        model_name: Model identifier sent with every request.
        proxy_url: Base URL of the ``/api/generate`` proxy. None = direct SDK.
        request_timeout_seconds: Socket timeout for proxy requests. None
            leaves the request unbounded.
    """

    model_name: str = Field(
        default="gemini-2.5-flash", description="Model used for all generation requests."
    )
    proxy_url: str | None = Field(
        default=None, description="Base URL of the generation proxy (None = direct SDK)."
    )
    request_timeout_seconds: float | None = Field(
        default=None, ge=1.0, description="Proxy request timeout in seconds."
    )

    @field_validator("proxy_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        """Normalize the proxy URL so paths can be appended."""
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            return v or None
        return v


class ReportsConfig(BaseModel):
    """Configuration for report generation and export.

    Attributes:
        default_tone: Tone used when none is given.
        output_dir: Directory for exported report files.
    """

    default_tone: str = Field(default="Manager-ready", description="Default report tone.")
    output_dir: Path = Field(default=Path("./reports"), description="Export directory.")

    @field_validator("output_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


class ImporterConfig(BaseModel):
    """Configuration for task-export imports.

    Attributes:
        fallback_list_title: Title of the synthetic list when a flat task
            array is imported from a file with no usable name.
    """

    fallback_list_title: str = Field(
        default="Imported Tasks", description="Title for unnamed flat-task imports."
    )


class PathsConfig(BaseModel):
    """Filesystem locations used by perftrack.

    Attributes:
        data_dir: Directory holding per-user JSON data files.
        log_dir: Where ``--debug`` writes ``perftrack.log``.
    """

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".perftrack" / "data")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".perftrack" / "logs")

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Supports loading from environment variables with the PERFTRACK_ prefix
    (nested sections use ``__``, e.g. ``PERFTRACK_AI__PROXY_URL``).

    Configuration priority (highest wins):
    1. Environment variables (PERFTRACK_*)
    2. Config file (YAML)
    3. In-code defaults
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    importer: ImporterConfig = Field(default_factory=ImporterConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    default_user: str = Field(default="local", description="User id for CLI sessions.")
    debug: bool = Field(default=False, description="Enable debug mode.")
    verbose: bool = Field(default=False, description="Enable verbose output.")

    model_config = {
        "env_prefix": "PERFTRACK_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def uses_proxy(self) -> bool:
        """Return True if generation requests go through the HTTP proxy."""
        return self.ai.proxy_url is not None


# =============================================================================
# API Key Management
# =============================================================================


class APIKeyManager:
    """Lookup of the Gemini API key used by the direct SDK backend.

    Sources are tried in priority order: environment, then system keyring.
    Keys are wrapped in SecretStr to prevent accidental logging.

    Security Rules:
    - NEVER log the actual key value
    - NEVER include key in exception messages
    """

    KEYRING_SERVICE = "perftrack"
    KEYRING_USERNAME = "gemini"
    ENV_VAR_NAMES = ("API_KEY", "GEMINI_API_KEY")

    def __init__(self) -> None:
        self._cached_key: SecretStr | None = None
        self._key_source = KeySource.NONE

    def get_key(self) -> SecretStr | None:
        """Retrieve the API key from the first source that has one.

        Returns:
            SecretStr wrapping the key, or None if not configured.
        """
        if self._cached_key is not None:
            return self._cached_key

        key = self._read_from_environment()
        if key:
            self._key_source = KeySource.ENVIRONMENT
        else:
            key = self._read_from_keyring()
            if key:
                self._key_source = KeySource.KEYRING

        if not key:
            self._key_source = KeySource.NONE
            return None

        self._cached_key = SecretStr(key)
        logger.debug(f"API key loaded from {self._key_source.value}")
        return self._cached_key

    def get_key_source(self) -> KeySource:
        """Return where the key was found (NONE until get_key succeeds)."""
        return self._key_source

    def store_key(self, key: str) -> None:
        """Store a key in the system keyring.

        Raises:
            APIKeyError: If the keyring backend rejects the write.
        """
        key = key.strip()
        if not key or any(c.isspace() for c in key):
            raise APIKeyError("API key must be a non-empty string without whitespace")
        try:
            keyring.set_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME, key)
        except keyring.errors.KeyringError as e:
            raise APIKeyError(f"Could not store key in keyring: {type(e).__name__}") from e
        self._cached_key = SecretStr(key)
        self._key_source = KeySource.KEYRING

    def _read_from_environment(self) -> str | None:
        for name in self.ENV_VAR_NAMES:
            key = os.environ.get(name)
            if key and key.strip():
                return key.strip()
        return None

    def _read_from_keyring(self) -> str | None:
        try:
            key = keyring.get_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
        except keyring.errors.KeyringError as e:
            logger.debug(f"Keyring unavailable: {type(e).__name__}")
            return None
        return key.strip() if key else None


# =============================================================================
# Loading
# =============================================================================


def _default_search_paths() -> list[Path]:
    return [
        Path("./perftrack.yaml"),
        Path("./perftrack.yml"),
        Path.home() / ".perftrack" / "config.yaml",
        Path.home() / ".perftrack" / "config.yml",
    ]


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file, environment, and defaults.

    If no config file is found, uses defaults only (not an error). An
    explicitly given path that cannot be parsed raises ConfigFileError; a
    malformed file found by searching is logged and ignored.

    Args:
        path: Optional path to config file. If None, searches default locations.

    Returns:
        Fully-populated AppConfig instance.

    Raises:
        ConfigFileError: If an explicitly given config file is malformed.
    """
    config_data: dict[str, Any] = {}

    if path is not None:
        if not path.exists():
            raise ConfigFileError(f"Config file not found: {path}")
        config_file: Path | None = path
    else:
        config_file = next((p for p in _default_search_paths() if p.exists()), None)

    if config_file is not None:
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            if path is not None:
                raise ConfigFileError(f"Failed to parse config file {config_file}: {e}") from e
            logger.warning(f"Failed to parse config file {config_file}: {e}. Using defaults.")
            loaded = None

        if isinstance(loaded, dict):
            config_data = loaded
        elif loaded is not None:
            logger.warning(f"Config file {config_file} has unexpected format. Using defaults.")

    # Environment values are applied by BaseSettings and override file values
    env_config = AppConfig()
    env_overrides = env_config.model_dump(exclude_unset=True)

    merged = _deep_merge(config_data, env_overrides)
    try:
        return AppConfig(**merged)
    except ValueError as e:
        if path is not None:
            raise ConfigFileError(f"Invalid configuration values in {config_file}: {e}") from e
        logger.warning(f"Error parsing config values: {e}. Using defaults.")
        return env_config


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton.

    Example:
        >>> from perftrack.config import get_config
        >>> cfg = get_config()
        >>> print(cfg.reports.default_tone)
    """
    return load_config()


def get_api_key() -> SecretStr:
    """Convenience function to get the Gemini API key.

    Raises:
        APIKeyNotFoundError: If no API key is configured in any source.
    """
    key = APIKeyManager().get_key()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set the API_KEY (or GEMINI_API_KEY) environment "
            "variable or store one with 'perftrack config set-key'."
        )
    return key


def reset_config() -> None:
    """Clear the configuration cache (used by tests and the --config option)."""
    get_config.cache_clear()
