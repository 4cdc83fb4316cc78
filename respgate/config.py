"""
respgate - Configuration

Environment-driven settings for the gateway and its upstream client.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
PRODUCTION_ENVIRONMENTS = {"prod", "production"}


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"Invalid {name}: expected an integer, got {raw!r}")


def _parse_origins(raw: str) -> List[str]:
    """Parse a comma-separated CORS origin list."""
    if not raw.strip():
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass
class GatewayConfig:
    """Gateway settings resolved from the environment."""
    port: int = 8000
    environment: str = "development"

    # Upstream
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o"
    timeout_ms: int = 60000
    max_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: str = "./logs"

    cors_allow_origins: List[str] = field(default_factory=list)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in PRODUCTION_ENVIRONMENTS

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """
        Build configuration from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        return cls(
            port=_parse_int("PORT", 8000),
            environment=os.getenv("ENVIRONMENT", "development").strip() or "development",
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1"),
            default_model=os.getenv("OPENAI_DEFAULT_MODEL", "gpt-4o"),
            timeout_ms=_parse_int("OPENAI_TIMEOUT", 60000),
            max_retries=_parse_int("OPENAI_MAX_RETRIES", 3),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
            log_dir=os.getenv("LOG_DIR", "./logs"),
            cors_allow_origins=_parse_origins(os.getenv("CORS_ALLOW_ORIGINS", "")),
        )


def validate_config(config: GatewayConfig) -> None:
    """
    Fail fast on settings the gateway cannot run with.

    Raises:
        ValueError: Describing the first invalid setting
    """
    if config.timeout_ms <= 0:
        raise ValueError("OPENAI_TIMEOUT must be a positive number of milliseconds")
    if config.max_retries < 0:
        raise ValueError("OPENAI_MAX_RETRIES must not be negative")
    if config.log_level not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL {config.log_level!r}. "
            f"Use one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    if config.is_production and not config.openai_api_key:
        raise ValueError("OPENAI_API_KEY is required when ENVIRONMENT=production")


_config: Optional[GatewayConfig] = None


def get_config() -> GatewayConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = GatewayConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget cached configuration (for testing)."""
    global _config
    _config = None
