# === NAVMAP v1 ===
# {
#   "module": "HttpGet.settings",
#   "purpose": "Engine-wide defaults loaded from YAML and environment variables.",
#   "sections": [
#     {
#       "id": "enginesettings",
#       "name": "EngineSettings",
#       "anchor": "class-enginesettings",
#       "kind": "class"
#     },
#     {
#       "id": "environmentoverrides",
#       "name": "EnvironmentOverrides",
#       "anchor": "class-environmentoverrides",
#       "kind": "class"
#     },
#     {
#       "id": "load-settings",
#       "name": "load_settings",
#       "anchor": "function-load-settings",
#       "kind": "function"
#     },
#     {
#       "id": "get-settings",
#       "name": "get_settings",
#       "anchor": "function-get-settings",
#       "kind": "function"
#     },
#     {
#       "id": "reset-settings",
#       "name": "reset_settings",
#       "anchor": "function-reset-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Engine-wide defaults.

Per-request options (:mod:`HttpGet.options`) fall back to the values held here
whenever the caller leaves them unset. Settings are assembled in three layers,
lowest precedence first:

1. the constants in :mod:`HttpGet.policy`;
2. an optional YAML file passed to :func:`load_settings`;
3. ``HTTP_GET_*`` environment variables (for example ``HTTP_GET_TIMEOUT_SEC``).

:func:`get_settings` memoises the process default; tests call
:func:`reset_settings` to pick up a patched environment.
"""

from __future__ import annotations

import logging
import threading
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .policy import (
    ACCEPT_ENCODING,
    HTTP_CONNECT_TIMEOUT,
    HTTP_TIMEOUT,
    MAX_REDIRECT_HOPS,
    USER_AGENT_TEMPLATE,
)

try:  # pragma: no cover - metadata may be unavailable during development
    _PACKAGE_VERSION = importlib_metadata.version("http-get")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - local source tree
    _PACKAGE_VERSION = "0.0.0"

__version__ = _PACKAGE_VERSION

logger = logging.getLogger(__name__)

__all__ = [
    "__version__",
    "EngineSettings",
    "EnvironmentOverrides",
    "load_settings",
    "get_settings",
    "reset_settings",
]

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_CACHE: Optional["EngineSettings"] = None


class EngineSettings(BaseModel):
    """Defaults applied to every request that does not override them."""

    timeout_sec: float = Field(default=HTTP_TIMEOUT, gt=0.0, le=3600.0)
    connect_timeout_sec: float = Field(default=HTTP_CONNECT_TIMEOUT, gt=0.0, le=600.0)
    max_redirects: int = Field(default=MAX_REDIRECT_HOPS, ge=0, le=100)
    user_agent: str = Field(default=USER_AGENT_TEMPLATE.format(version=_PACKAGE_VERSION))
    accept_encoding: str = Field(default=ACCEPT_ENCODING, min_length=1)
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for JSON log files; defaults to the platform log directory",
    )

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}")
        return upper

    model_config = {"validate_assignment": True, "extra": "forbid"}


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing ``HTTP_GET_*`` environment overrides."""

    timeout_sec: Optional[float] = None
    connect_timeout_sec: Optional[float] = None
    max_redirects: Optional[int] = None
    user_agent: Optional[str] = None
    accept_encoding: Optional[str] = None
    log_level: Optional[str] = None
    log_dir: Optional[Path] = None

    model_config = SettingsConfigDict(env_prefix="HTTP_GET_", case_sensitive=False, extra="ignore")


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    section = payload.get("http_get", payload)
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'http_get' section in {path} must be a mapping")
    return dict(section)


def load_settings(path: Optional[Union[str, Path]] = None) -> EngineSettings:
    """Build :class:`EngineSettings` from ``path`` and the environment.

    Args:
        path: Optional YAML file. Values may sit at the top level or under an
            ``http_get:`` key.

    Returns:
        Validated settings; environment variables win over file values.

    Raises:
        ConfigurationError: If the file is missing, malformed, or any value
            fails validation.
    """

    values: Dict[str, Any] = _read_yaml(Path(path)) if path is not None else {}
    try:
        overrides = EnvironmentOverrides().model_dump(exclude_none=True)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid HTTP_GET_* environment variable: {exc}") from exc
    if overrides:
        logger.debug("applying environment overrides", extra={"keys": sorted(overrides)})
    values.update(overrides)
    try:
        return EngineSettings(**values)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid engine settings: {exc}") from exc


def get_settings() -> EngineSettings:
    """Return the memoised process-wide settings."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = load_settings()
        return _SETTINGS_CACHE


def reset_settings(settings: Optional[EngineSettings] = None) -> None:
    """Drop (or replace) the memoised settings."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = settings
