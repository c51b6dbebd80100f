"""Tests for GatewayConfig and load_config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from openrouter_gateway.config import AIMode, GatewayConfig, is_configured, load_config
from openrouter_gateway.exceptions import ConfigurationError, ErrorKind


@pytest.mark.unit
class TestGatewayConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Only the key is required; everything else has a default."""
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-abc")
        config = GatewayConfig()
        assert config.get_api_key() == "sk-or-abc"
        assert config.base_url == "https://openrouter.ai/api/v1"
        assert config.default_model == "openai/gpt-4o-mini"
        assert config.default_temperature == 0.7
        assert config.default_max_tokens == 2048
        assert config.timeout_ms == 30_000
        assert config.max_retries == 3
        assert config.total_timeout_ms is None
        assert config.caller_rate_limit == 10
        assert config.caller_rate_window_seconds == 60
        assert config.ai_mode is AIMode.NOT_DEMO

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """OPENROUTER_ prefixed env vars override defaults."""
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-abc")
        monkeypatch.setenv("OPENROUTER_DEFAULT_MODEL", "anthropic/claude-3-haiku")
        monkeypatch.setenv("OPENROUTER_MAX_RETRIES", "5")
        monkeypatch.setenv("OPENROUTER_BASE_URL", "https://proxy.example/api/v1/")
        config = GatewayConfig()
        assert config.default_model == "anthropic/claude-3-haiku"
        assert config.max_retries == 5
        assert config.base_url == "https://proxy.example/api/v1"

    def test_api_key_is_stripped(self) -> None:
        config = GatewayConfig(api_key="  sk-or-abc \n")  # type: ignore[arg-type]
        assert config.get_api_key() == "sk-or-abc"

    def test_missing_key_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError, match="API key is required"):
            GatewayConfig()

    def test_blank_key_counts_as_missing(self) -> None:
        with pytest.raises(ValidationError, match="API key is required"):
            GatewayConfig(api_key="   ")  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("default_temperature", 2.5),
            ("default_temperature", -0.1),
            ("default_max_tokens", 0),
            ("default_max_tokens", 128_001),
            ("timeout_ms", 999),
            ("timeout_ms", 120_001),
            ("max_retries", 0),
            ("max_retries", 11),
            ("total_timeout_ms", 10),
        ],
    )
    def test_out_of_bounds_rejected(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            GatewayConfig(api_key="sk-or-abc", **{field: value})  # type: ignore[arg-type]

    def test_is_immutable(self) -> None:
        config = GatewayConfig(api_key="sk-or-abc")  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            config.max_retries = 7  # type: ignore[misc]

    def test_redacted_drops_api_key(self) -> None:
        config = GatewayConfig(api_key="sk-or-secret")  # type: ignore[arg-type]
        redacted = config.redacted()
        assert "api_key" not in redacted
        assert "sk-or-secret" not in repr(redacted)
        assert redacted["default_model"] == "openai/gpt-4o-mini"
        assert redacted["ai_mode"] == "not_demo"


@pytest.mark.unit
class TestAIMode:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("enabled", AIMode.ENABLED),
            ("true", AIMode.ENABLED),
            ("1", AIMode.ENABLED),
            ("disabled", AIMode.DISABLED),
            ("FALSE", AIMode.DISABLED),
            ("0", AIMode.DISABLED),
            ("not-demo", AIMode.NOT_DEMO),
            ("notdemo", AIMode.NOT_DEMO),
            ("bogus", AIMode.NOT_DEMO),
        ],
    )
    def test_aliases(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: AIMode) -> None:
        monkeypatch.setenv("OPENROUTER_AI_MODE", raw)
        assert GatewayConfig(api_key="sk-or-abc").ai_mode is expected  # type: ignore[arg-type]

    def test_should_use_ai(self) -> None:
        enabled = GatewayConfig(api_key="k", ai_mode="enabled")  # type: ignore[arg-type]
        disabled = GatewayConfig(api_key="k", ai_mode="disabled")  # type: ignore[arg-type]
        not_demo = GatewayConfig(api_key="k")  # type: ignore[arg-type]

        assert enabled.should_use_ai(is_demo=True) is True
        assert disabled.should_use_ai(is_demo=False) is False
        assert not_demo.should_use_ai(is_demo=True) is False
        assert not_demo.should_use_ai(is_demo=False) is True


@pytest.mark.unit
class TestLoadConfig:
    def test_missing_key_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config()
        err = exc_info.value
        assert err.kind is ErrorKind.CONFIGURATION_ERROR
        assert err.retryable is False
        assert "API key is required. Set OPENROUTER_API_KEY environment variable." in err.message

    def test_bad_bound_names_the_field(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout_ms"):
            load_config(api_key="sk-or-abc", timeout_ms=50)

    def test_overrides(self) -> None:
        config = load_config(api_key="sk-or-abc", default_model="openai/gpt-4o")
        assert config.default_model == "openai/gpt-4o"

    def test_is_configured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert is_configured() is False
        monkeypatch.setenv("OPENROUTER_API_KEY", "  ")
        assert is_configured() is False
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-abc")
        assert is_configured() is True
