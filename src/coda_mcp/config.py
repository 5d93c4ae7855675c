"""
Configuration for the Coda MCP Server.

All settings come from environment variables so the server can be configured
from an MCP client's launch configuration:

- CODA_API_KEY: Coda API token (required)
- CODA_API_BASE_URL: API root (default https://coda.io/apis/v1)
- CODA_TIMEOUT: HTTP timeout in seconds
- CODA_CHUNK_SIZE: Maximum characters per page content write
- CODA_PACING_DELAY: Seconds to wait between chunk writes
- CODA_SETTLE_DELAY: Seconds to wait between page creation and first write
- CODA_CHUNK_APPEND: Also chunk oversized append requests ("1", "true", "yes")
"""

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://coda.io/apis/v1"
DEFAULT_TIMEOUT = 30.0

# Largest page content write the API accepts reliably within its latency budget
DEFAULT_CHUNK_SIZE = 4000
DEFAULT_PACING_DELAY = 0.1
DEFAULT_SETTLE_DELAY = 1.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when the environment holds a missing or malformed setting."""


@dataclass
class CodaConfig:
    """Settings for a Coda API client."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    pacing_delay: float = DEFAULT_PACING_DELAY
    settle_delay: float = DEFAULT_SETTLE_DELAY
    chunk_append: bool = False

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigError("A Coda API key is required.")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.pacing_delay < 0 or self.settle_delay < 0:
            raise ConfigError("Delays cannot be negative.")
        self.base_url = self.base_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        """Default request headers for the Coda API."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_env(cls) -> "CodaConfig":
        """
        Build a configuration from environment variables.

        Raises:
            ConfigError: If CODA_API_KEY is unset or a numeric setting is malformed
        """
        api_key = os.getenv("CODA_API_KEY", "").strip()
        if not api_key:
            raise ConfigError(
                "CODA_API_KEY environment variable not set. "
                "Generate an API token at https://coda.io/account"
            )

        return cls(
            api_key=api_key,
            base_url=os.getenv("CODA_API_BASE_URL") or DEFAULT_BASE_URL,
            timeout=_env_number("CODA_TIMEOUT", DEFAULT_TIMEOUT, float),
            chunk_size=_env_number("CODA_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, int),
            pacing_delay=_env_number("CODA_PACING_DELAY", DEFAULT_PACING_DELAY, float),
            settle_delay=_env_number("CODA_SETTLE_DELAY", DEFAULT_SETTLE_DELAY, float),
            chunk_append=os.getenv("CODA_CHUNK_APPEND", "").strip().lower() in _TRUE_VALUES,
        )


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
