"""
============================================================================
Gift Card Relay - Configuration
============================================================================

This module provides configuration management for the relay:
- Environment variable parsing with type safety (.env supported)
- Default values for optional configuration
- Validation of required configuration
- Fail-closed behavior on missing credentials (RELAY-CFG-001)

ENVIRONMENT VARIABLES:
    - TILLO_API_URL: Provider issue endpoint (REQUIRED)
    - TILLO_API_KEY: Provider API key (REQUIRED)
    - TILLO_SECRET_KEY: Shared signing secret (REQUIRED)
    - TILLO_TIMEOUT_SECONDS: Outbound call timeout (default: 30)
    - PORT: Listening port (default: 3000)
    - RATE_LIMIT_ENABLED: Inbound limiter on/off (default: true)
    - RATE_LIMIT_MAX_REQUESTS: Requests per window per client (default: 100)
    - RATE_LIMIT_WINDOW_SECONDS: Window length (default: 900)
    - LOG_LEVEL: Root log level (default: INFO)
    - LOG_DIR: Directory for error.log / combined.log (default: unset)
    - ENV: Environment label (default: development)

ERROR CODES:
    - RELAY-CFG-001: Required configuration missing or invalid

============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class RelayConfigErrorCode:
    """Configuration error codes for audit logging."""
    CONFIG_MISSING = "RELAY-CFG-001"


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_PORT = 3000
DEFAULT_TIMEOUT_SECONDS = 30.0

# 100 requests per 15 minutes per client IP
DEFAULT_RATE_LIMIT_ENABLED = True
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 100
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 900

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENVIRONMENT = "development"


# =============================================================================
# Configuration Exception
# =============================================================================

class RelayConfigurationError(Exception):
    """
    Raised when configuration is invalid or missing.

    Raised during startup only, never per request.
    """

    def __init__(self, message: str, error_code: str = RelayConfigErrorCode.CONFIG_MISSING):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# Parsing helpers
# =============================================================================

def _read_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _read_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            f"[RELAY-CONFIG] Invalid {name} value: {raw}, using default: {default}"
        )
        return default


def _read_float(name: str, default: float) -> float:
    raw = os.environ.get(name, str(default))
    try:
        return float(raw.strip())
    except ValueError:
        logger.warning(
            f"[RELAY-CONFIG] Invalid {name} value: {raw}, using default: {default}"
        )
        return default


# =============================================================================
# RelayConfig
# =============================================================================

@dataclass(frozen=True)
class RelayConfig:
    """
    Process-wide, read-only relay configuration.

    Built once at startup and injected into the signer, the provider client
    and the pipeline. Nothing downstream reads the environment directly.

    The secret is excluded from repr so the object is safe to log.
    """

    provider_url: str = ""
    api_key: str = field(default="", repr=False)
    secret_key: str = field(default="", repr=False)
    port: int = DEFAULT_PORT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rate_limit_enabled: bool = DEFAULT_RATE_LIMIT_ENABLED
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    rate_limit_window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Optional[str] = None
    environment: str = DEFAULT_ENVIRONMENT

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate(self) -> None:
        """
        Validate configuration completeness.

        Raises:
            RelayConfigurationError: If any required value is missing or invalid
        """
        errors: List[str] = []

        if not self.provider_url:
            errors.append("TILLO_API_URL must be set")
        if not self.api_key:
            errors.append("TILLO_API_KEY must be set")
        if not self.secret_key:
            errors.append("TILLO_SECRET_KEY must be set")

        if self.timeout_seconds <= 0:
            errors.append(
                f"TILLO_TIMEOUT_SECONDS must be positive, got: {self.timeout_seconds}"
            )
        if not (0 < self.port < 65536):
            errors.append(f"PORT must be between 1 and 65535, got: {self.port}")
        if self.rate_limit_enabled:
            if self.rate_limit_max_requests <= 0:
                errors.append(
                    f"RATE_LIMIT_MAX_REQUESTS must be positive, got: {self.rate_limit_max_requests}"
                )
            if self.rate_limit_window_seconds <= 0:
                errors.append(
                    f"RATE_LIMIT_WINDOW_SECONDS must be positive, got: {self.rate_limit_window_seconds}"
                )

        if errors:
            error_msg = "Relay configuration validation failed: " + "; ".join(errors)
            logger.error(f"[{RelayConfigErrorCode.CONFIG_MISSING}] {error_msg}")
            raise RelayConfigurationError(error_msg)

        logger.info(
            f"[RELAY-CONFIG] Configuration validated | "
            f"provider_url={self.provider_url} | "
            f"timeout_seconds={self.timeout_seconds} | "
            f"rate_limit_enabled={self.rate_limit_enabled} | "
            f"environment={self.environment}"
        )

    @classmethod
    def from_environment(cls, validate: bool = True, load_env_file: bool = True) -> "RelayConfig":
        """
        Load configuration from environment variables.

        Args:
            validate: Whether to validate after loading (default: True)
            load_env_file: Whether to read a .env file first (default: True)

        Returns:
            RelayConfig instance with values from environment

        Raises:
            RelayConfigurationError: If required configuration is missing
        """
        if load_env_file:
            load_dotenv()

        config = cls(
            provider_url=os.environ.get("TILLO_API_URL", "").strip(),
            api_key=os.environ.get("TILLO_API_KEY", "").strip(),
            secret_key=os.environ.get("TILLO_SECRET_KEY", "").strip(),
            port=_read_int("PORT", DEFAULT_PORT),
            timeout_seconds=_read_float("TILLO_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            rate_limit_enabled=_read_bool("RATE_LIMIT_ENABLED", DEFAULT_RATE_LIMIT_ENABLED),
            rate_limit_max_requests=_read_int(
                "RATE_LIMIT_MAX_REQUESTS", DEFAULT_RATE_LIMIT_MAX_REQUESTS
            ),
            rate_limit_window_seconds=_read_int(
                "RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS
            ),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            environment=os.environ.get("ENV", DEFAULT_ENVIRONMENT).strip() or DEFAULT_ENVIRONMENT,
        )

        logger.info(
            f"[RELAY-CONFIG] Loading configuration from environment | "
            f"TILLO_API_URL={config.provider_url or 'unset'} | "
            f"TILLO_API_KEY={'set' if config.api_key else 'unset'} | "
            f"TILLO_SECRET_KEY={'set' if config.secret_key else 'unset'} | "
            f"PORT={config.port}"
        )

        if validate:
            config.validate()

        return config
