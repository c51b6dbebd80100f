"""Gateway configuration via environment variables."""

from __future__ import annotations

import os
from enum import Enum
from typing import Any

from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from openrouter_gateway.exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o-mini"

_MISSING_KEY_MESSAGE = "API key is required. Set OPENROUTER_API_KEY environment variable."


class AIMode(str, Enum):
    """Whether callers should reach the provider at all."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    NOT_DEMO = "not_demo"


_AI_MODE_ALIASES: dict[str, AIMode] = {
    "true": AIMode.ENABLED,
    "1": AIMode.ENABLED,
    "enabled": AIMode.ENABLED,
    "false": AIMode.DISABLED,
    "0": AIMode.DISABLED,
    "disabled": AIMode.DISABLED,
    "not_demo": AIMode.NOT_DEMO,
    "not-demo": AIMode.NOT_DEMO,
    "notdemo": AIMode.NOT_DEMO,
}


class GatewayConfig(BaseSettings):
    """OpenRouter gateway configuration.

    All fields are read from environment variables with the ``OPENROUTER_``
    prefix, e.g. ``OPENROUTER_DEFAULT_MODEL=openai/gpt-4o`` sets
    ``default_model``. Instances are immutable; out-of-bounds values fail
    at construction.
    """

    model_config = {
        "env_prefix": "OPENROUTER_",
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
    }

    # ── Provider ────────────────────────────────────────────────
    api_key: SecretStr | None = Field(
        default=None,
        description="OpenRouter API key. Required.",
    )
    base_url: str = Field(default=DEFAULT_BASE_URL)
    default_model: str = Field(default=DEFAULT_MODEL)

    # ── Request defaults ────────────────────────────────────────
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    default_max_tokens: int = Field(default=2048, ge=1, le=128_000)
    timeout_ms: int = Field(default=30_000, ge=1_000, le=120_000)
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per call, including the first one.",
    )
    total_timeout_ms: int | None = Field(
        default=None,
        ge=1_000,
        description="Wall-clock cap across all attempts and backoffs. None = no cap.",
    )

    # ── Per-caller budget ───────────────────────────────────────
    caller_rate_limit: int = Field(default=10, ge=1)
    caller_rate_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_sweep_seconds: float = Field(default=300.0, gt=0)

    # ── Identification headers ──────────────────────────────────
    referer: str = Field(default="https://fridgepick.app")
    app_title: str = Field(default="FridgePick")

    # ── Feature flag & cost ─────────────────────────────────────
    ai_mode: AIMode = Field(default=AIMode.NOT_DEMO)
    cost_warn_usd: float | None = Field(
        default=None,
        description="Emit a warning once cumulative estimated cost crosses this (USD).",
    )

    # ── Observability ───────────────────────────────────────────
    trace_enabled: bool = Field(default=False)
    trace_exporter: str = Field(
        default="none",
        description="Trace exporter: 'none', 'console', 'otlp'.",
    )
    trace_endpoint: str = Field(default="http://localhost:4317")
    trace_service_name: str = Field(default="openrouter-gateway")

    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="json",
        description="Log format: 'json' or 'console'.",
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, value: Any) -> Any:
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("ai_mode", mode="before")
    @classmethod
    def _parse_ai_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _AI_MODE_ALIASES.get(value.strip().lower(), AIMode.NOT_DEMO)
        return value

    @model_validator(mode="after")
    def _require_api_key(self) -> GatewayConfig:
        if self.api_key is None:
            raise ValueError(_MISSING_KEY_MESSAGE)
        return self

    def get_api_key(self) -> str:
        """Return the API key as a plain string."""
        if self.api_key is None:
            raise ConfigurationError(_MISSING_KEY_MESSAGE)
        return self.api_key.get_secret_value()

    def redacted(self) -> dict[str, Any]:
        """Return the active settings without the API key."""
        return self.model_dump(exclude={"api_key"}, mode="json")

    def should_use_ai(self, is_demo: bool) -> bool:
        """Decide whether a caller should hit the provider under ``ai_mode``."""
        if self.ai_mode is AIMode.ENABLED:
            return True
        if self.ai_mode is AIMode.DISABLED:
            return False
        return not is_demo


def load_config(**overrides: Any) -> GatewayConfig:
    """Build a ``GatewayConfig`` from the environment plus *overrides*.

    Raises:
        ConfigurationError: If any setting is missing or out of bounds.
    """
    try:
        return GatewayConfig(**overrides)
    except ValidationError as exc:
        first = exc.errors(include_url=False)[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        reason = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
        message = f"{location}: {reason}" if location else reason
        raise ConfigurationError(
            message,
            details={"errors": exc.error_count()},
        ) from exc


def is_configured() -> bool:
    """Return True if ``OPENROUTER_API_KEY`` is set to a non-blank value."""
    return bool(os.environ.get("OPENROUTER_API_KEY", "").strip())
