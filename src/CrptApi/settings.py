# === NAVMAP v1 ===
# {
#   "module": "CrptApi.settings",
#   "purpose": "Define configuration models, environment overrides, and the memoised settings accessor",
#   "sections": [
#     {
#       "id": "httpsettings",
#       "name": "HttpSettings",
#       "anchor": "class-httpsettings",
#       "kind": "class"
#     },
#     {
#       "id": "ratelimitsettings",
#       "name": "RateLimitSettings",
#       "anchor": "class-ratelimitsettings",
#       "kind": "class"
#     },
#     {
#       "id": "loggingsettings",
#       "name": "LoggingSettings",
#       "anchor": "class-loggingsettings",
#       "kind": "class"
#     },
#     {
#       "id": "crptsettings",
#       "name": "CrptSettings",
#       "anchor": "class-crptsettings",
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
#     }
#   ]
# }
# === /NAVMAP ===

"""Configuration models and environment overrides for the CRPT client.

Settings are grouped into frozen Pydantic domain models (HTTP, rate limit,
logging) collected by :class:`CrptSettings`, a ``pydantic-settings`` model
that reads ``CRPT_*`` environment variables.  Nested values use a double
underscore delimiter, e.g. ``CRPT_RATE_LIMIT__REQUEST_LIMIT=10`` or
``CRPT_HTTP__TIMEOUT_READ=15``.  An optional YAML file supplies a base layer
that the environment overrides.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from CrptApi.errors import ConfigurationError
from CrptApi.network.policy import (
    CREATE_DOCUMENT_URL,
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_WRITE_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
)
from CrptApi.ratelimit.config import RateSpec, normalize_duration_name, parse_rate_string

logger = logging.getLogger(__name__)


class HttpSettings(BaseModel):
    """HTTP client settings for the HTTPX transport.

    Controls endpoint, timeouts, pool sizing, HTTP/2, and proxy trust behaviour.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    endpoint: str = Field(
        default=CREATE_DOCUMENT_URL,
        description="Document create endpoint",
    )
    http2: bool = Field(default=False, description="Enable HTTP/2 support")
    timeout_connect: float = Field(
        default=HTTP_CONNECT_TIMEOUT,
        gt=0.0,
        le=60.0,
        description="Connect timeout in seconds",
    )
    timeout_read: float = Field(
        default=HTTP_READ_TIMEOUT,
        gt=0.0,
        le=300.0,
        description="Read timeout in seconds",
    )
    timeout_write: float = Field(
        default=HTTP_WRITE_TIMEOUT,
        gt=0.0,
        le=300.0,
        description="Write timeout in seconds",
    )
    timeout_pool: float = Field(
        default=HTTP_POOL_TIMEOUT,
        gt=0.0,
        le=60.0,
        description="Acquire-from-pool timeout in seconds",
    )
    pool_max_connections: int = Field(
        default=MAX_CONNECTIONS,
        ge=1,
        le=1024,
        description="Max concurrent connections",
    )
    pool_keepalive_max: int = Field(
        default=MAX_KEEPALIVE_CONNECTIONS,
        ge=0,
        le=1024,
        description="Keepalive pool size",
    )
    trust_env: bool = Field(
        default=True,
        description="Honor HTTP(S)_PROXY and NO_PROXY environment variables",
    )
    verify_tls: bool = Field(default=True, description="Verify server certificates")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"endpoint must be an http(s) URL, got '{v}'")
        return v


class RateLimitSettings(BaseModel):
    """Admission gate sizing.

    Either ``rate`` ("5/second") or the ``time_unit`` + ``request_limit`` pair
    may be given; ``rate`` wins when both are set.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    time_unit: str = Field(default="second", description="Window length as one time unit")
    request_limit: int = Field(default=5, ge=1, description="Admissions per window")
    rate: Optional[str] = Field(
        default=None,
        description="Rate string overriding time_unit/request_limit (e.g., '100/minute')",
    )

    @field_validator("time_unit", mode="before")
    @classmethod
    def validate_time_unit(cls, v: str) -> str:
        """Normalize the unit name."""
        try:
            return normalize_duration_name(str(v))
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("rate", mode="before")
    @classmethod
    def validate_rate(cls, v: Optional[str]) -> Optional[str]:
        """Validate rate string format."""
        if v is None or v == "":
            return None
        try:
            parse_rate_string(v)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return v

    def to_spec(self) -> RateSpec:
        """Return the configured rate as a RateSpec."""
        if self.rate:
            return parse_rate_string(self.rate)
        return RateSpec.from_time_unit(self.time_unit, self.request_limit)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    emit_json_logs: bool = Field(default=False, description="Emit JSON-formatted console logs")
    log_to_file: bool = Field(default=False, description="Also write rotating JSON-lines files")
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for log files (platform log dir when unset)",
    )
    max_log_size_mb: float = Field(default=10.0, gt=0.0, description="Rotate after this size")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    def level_int(self) -> int:
        """Convert level string to logging module integer."""
        return getattr(logging, self.level)


class CrptSettings(BaseSettings):
    """Root settings object assembled from defaults, YAML, and ``CRPT_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="CRPT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    http: HttpSettings = Field(default_factory=HttpSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def rate_spec(self) -> RateSpec:
        """Configured admission rate."""
        return self.rate_limit.to_spec()

    def config_hash(self) -> str:
        """Compute a deterministic hash of all configuration for provenance tracking."""
        config_dict = {
            "http": self.http.model_dump(mode="json"),
            "rate_limit": self.rate_limit.model_dump(mode="json"),
            "logging": self.logging.model_dump(mode="json"),
        }
        config_str = json.dumps(config_dict, sort_keys=True, default=str)
        return hashlib.sha256(config_str.encode("utf-8")).hexdigest()[:16]


# ============================================================================
# Loading
# ============================================================================

_SETTINGS_LOCK = threading.RLock()
_SETTINGS_CACHE: Optional[CrptSettings] = None


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Settings file {path} is not valid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping at top level")
    return raw


def load_settings(path: Optional[Union[str, Path]] = None, **overrides: Any) -> CrptSettings:
    """Build settings from an optional YAML file, the environment, and overrides.

    Precedence, lowest to highest: defaults, YAML file, ``CRPT_*`` environment,
    keyword overrides.

    Raises:
        ConfigurationError: If the file is unreadable or any value is invalid
    """
    base: Dict[str, Any] = _read_yaml(Path(path)) if path is not None else {}
    try:
        env_layer = CrptSettings()
        merged = _deep_merge(base, env_layer.model_dump(exclude_unset=True))
        merged = _deep_merge(merged, overrides)
        return CrptSettings.model_validate(merged) if merged else env_layer
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def get_settings() -> CrptSettings:
    """Return the memoised process settings, loading them on first use."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = load_settings()
            logger.debug(
                "Settings loaded",
                extra={"config_hash": _SETTINGS_CACHE.config_hash()},
            )
        return _SETTINGS_CACHE


def invalidate_settings_cache() -> None:
    """Invalidate the cached settings so the next access reloads them."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "HttpSettings",
    "RateLimitSettings",
    "LoggingSettings",
    "CrptSettings",
    "load_settings",
    "get_settings",
    "invalidate_settings_cache",
]
