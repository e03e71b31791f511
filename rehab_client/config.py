"""
Rehab Platform SDK Configuration

``RehabConfig`` is immutable. Build it directly, with ``create_config`` (which
validates), or from ``REHAB_*`` environment variables.
"""

import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError
from .types import TokenStorage


class Environment(str, Enum):
    """Deployment environments of the Rehab Platform API."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


BASE_URLS: Dict[Environment, str] = {
    Environment.DEVELOPMENT: "https://dev-api.rehabplatform.io/v1",
    Environment.STAGING: "https://staging-api.rehabplatform.io/v1",
    Environment.PRODUCTION: "https://api.rehabplatform.io/v1",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RehabConfig:
    """SDK configuration options."""

    # API key issued for the integrating application
    api_key: str
    # Selects the default base URL
    environment: Environment = Environment.PRODUCTION
    # Explicit base URL, overrides the environment default
    base_url: Optional[str] = None
    # Per-attempt request timeout in seconds
    timeout: float = 30.0
    # Retries after the initial attempt
    max_retry_attempts: int = 3
    # Emit debug logs on the "rehab_client" logger
    enable_logging: bool = False
    # Exponential backoff settings (seconds)
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    # Fraction of the backoff delay used as +/- jitter
    retry_jitter: float = 0.2
    # Refresh the access token before it expires
    auto_refresh: bool = True
    # Refresh this many seconds before expiry
    refresh_threshold: int = 60
    # Token storage (default: MemoryStorage)
    storage: Optional[TokenStorage] = None
    # Extra headers sent with every request
    headers: Optional[Dict[str, str]] = None

    @property
    def resolved_base_url(self) -> str:
        url = self.base_url or BASE_URLS[parse_environment(self.environment)]
        return url.rstrip("/")

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retry_attempts

    def with_options(self, **changes: Any) -> "RehabConfig":
        """Return a validated copy with ``changes`` applied."""
        config = replace(self, **changes)
        validate_config(config)
        return config

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "RehabConfig":
        """Load configuration from REHAB_* environment variables."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        if "REHAB_API_KEY" in env:
            values["api_key"] = env["REHAB_API_KEY"]
        if "REHAB_ENVIRONMENT" in env:
            values["environment"] = parse_environment(env["REHAB_ENVIRONMENT"])
        if "REHAB_BASE_URL" in env:
            values["base_url"] = env["REHAB_BASE_URL"]
        try:
            if "REHAB_TIMEOUT" in env:
                values["timeout"] = float(env["REHAB_TIMEOUT"])
            if "REHAB_MAX_RETRY_ATTEMPTS" in env:
                values["max_retry_attempts"] = int(env["REHAB_MAX_RETRY_ATTEMPTS"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")
        if "REHAB_ENABLE_LOGGING" in env:
            values["enable_logging"] = env["REHAB_ENABLE_LOGGING"].strip().lower() in _TRUE_VALUES
        values.update(overrides)
        return create_config(**values)


def parse_environment(value: Any) -> Environment:
    """Accept an Environment or its name ("dev"/"prod" shorthands included)."""
    if isinstance(value, Environment):
        return value
    name = str(value).strip().lower()
    aliases = {"dev": "development", "stage": "staging", "prod": "production"}
    try:
        return Environment(aliases.get(name, name))
    except ValueError:
        raise ConfigurationError(
            f"Unknown environment {value!r}. Expected one of: "
            + ", ".join(e.value for e in Environment)
        )


def validate_config(config: RehabConfig) -> None:
    """Raise ConfigurationError when ``config`` cannot be used."""
    if not config.api_key or not config.api_key.strip():
        raise ConfigurationError("api_key is required")
    parse_environment(config.environment)
    url = config.resolved_base_url
    if not url.startswith(("http://", "https://")):
        raise ConfigurationError(f"base_url must be an http(s) URL, got {url!r}")
    if config.timeout <= 0:
        raise ConfigurationError("timeout must be positive")
    if config.max_retry_attempts < 0:
        raise ConfigurationError("max_retry_attempts cannot be negative")
    if config.retry_base_delay < 0 or config.retry_max_delay < 0:
        raise ConfigurationError("retry delays cannot be negative")
    if not 0 <= config.retry_jitter < 1:
        raise ConfigurationError("retry_jitter must be in [0, 1)")
    if config.refresh_threshold < 0:
        raise ConfigurationError("refresh_threshold cannot be negative")


def create_config(api_key: str = "", **options: Any) -> RehabConfig:
    """
    Assemble a validated configuration from named fields.

    Example:
        config = create_config("key_123", environment="staging", timeout=10)
    """
    known = {f.name for f in fields(RehabConfig)}
    unknown = set(options) - known
    if unknown:
        raise ConfigurationError(f"Unknown configuration options: {', '.join(sorted(unknown))}")
    if "environment" in options:
        options["environment"] = parse_environment(options["environment"])
    config = RehabConfig(api_key=api_key, **options)
    validate_config(config)
    return config
