"""
respgate - Configuration Tests

Tests for environment-driven configuration and its validation.
"""

import pytest

from respgate.config import GatewayConfig, get_config, reset_config, validate_config


ENV_VARS = [
    "PORT",
    "ENVIRONMENT",
    "OPENAI_API_KEY",
    "OPENAI_API_BASE_URL",
    "OPENAI_DEFAULT_MODEL",
    "OPENAI_TIMEOUT",
    "OPENAI_MAX_RETRIES",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_DIR",
    "CORS_ALLOW_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every gateway variable from the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================
# Loading Tests
# ============================================================

class TestConfigLoading:
    """Test GatewayConfig.from_env."""

    def test_defaults(self, clean_env):
        config = GatewayConfig.from_env()

        assert config.port == 8000
        assert config.environment == "development"
        assert config.openai_api_key is None
        assert config.openai_base_url == "https://api.openai.com/v1"
        assert config.default_model == "gpt-4o"
        assert config.timeout_ms == 60000
        assert config.timeout_seconds == 60.0
        assert config.max_retries == 3
        assert config.log_level == "INFO"
        assert config.log_dir == "./logs"
        assert config.cors_allow_origins == []
        assert config.is_development
        assert not config.is_production

    def test_overrides(self, clean_env):
        clean_env.setenv("PORT", "9001")
        clean_env.setenv("ENVIRONMENT", "production")
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("OPENAI_TIMEOUT", "1500")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")

        config = GatewayConfig.from_env()

        assert config.port == 9001
        assert config.is_production
        assert config.openai_api_key == "sk-test"
        assert config.timeout_seconds == 1.5
        assert config.log_level == "DEBUG"
        assert config.cors_allow_origins == ["https://a.example", "https://b.example"]

    def test_empty_api_key_is_none(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "")
        assert GatewayConfig.from_env().openai_api_key is None

    def test_blank_number_uses_default(self, clean_env):
        clean_env.setenv("PORT", "  ")
        assert GatewayConfig.from_env().port == 8000

    def test_invalid_number(self, clean_env):
        clean_env.setenv("OPENAI_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="OPENAI_TIMEOUT"):
            GatewayConfig.from_env()

    def test_get_config_is_cached(self, clean_env):
        first = get_config()
        clean_env.setenv("PORT", "9999")
        assert get_config() is first

        reset_config()
        assert get_config().port == 9999


# ============================================================
# Validation Tests
# ============================================================

class TestConfigValidation:
    """Test validate_config."""

    def test_valid(self):
        validate_config(GatewayConfig())

    @pytest.mark.parametrize("overrides,message", [
        ({"timeout_ms": 0}, "OPENAI_TIMEOUT"),
        ({"max_retries": -1}, "OPENAI_MAX_RETRIES"),
        ({"log_level": "LOUD"}, "LOG_LEVEL"),
        ({"environment": "production"}, "OPENAI_API_KEY"),
    ])
    def test_invalid(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            validate_config(GatewayConfig(**overrides))

    def test_production_with_key(self):
        validate_config(GatewayConfig(environment="prod", openai_api_key="sk-test"))
