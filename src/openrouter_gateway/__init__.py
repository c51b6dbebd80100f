"""openrouter-gateway: OpenRouter chat-completion client with budgets and retries.

Usage:
    from openrouter_gateway import CompletionOptions, GatewayClient

    gateway = GatewayClient()  # reads OPENROUTER_* env vars
    result = await gateway.chat_completion(
        CompletionOptions(system_message="...", user_message="...", caller_id=user_id)
    )
"""

from __future__ import annotations

from openrouter_gateway.client import GatewayClient
from openrouter_gateway.config import AIMode, GatewayConfig, is_configured, load_config
from openrouter_gateway.cost import UsageTracker, estimate_cost, register_pricing
from openrouter_gateway.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ContentFilterError,
    ContextLengthExceededError,
    EmptyResponseError,
    ErrorKind,
    GatewayError,
    InvalidRequestError,
    JSONParseError,
    ModelNotFoundError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    ResponseValidationError,
    ServerError,
    is_retryable,
)
from openrouter_gateway.rate_limit import RateLimitDecision, RateLimiter, rate_limit_headers
from openrouter_gateway.schema import PydanticValidator, SchemaMismatch, SchemaValidator
from openrouter_gateway.types import (
    ChatMessage,
    CompletionOptions,
    CompletionRequest,
    CompletionResult,
    ResponseFormat,
    TokenUsage,
)

__all__ = [
    # Core
    "GatewayClient",
    "GatewayConfig",
    "AIMode",
    "load_config",
    "is_configured",
    # Types
    "ChatMessage",
    "CompletionOptions",
    "CompletionRequest",
    "CompletionResult",
    "ResponseFormat",
    "TokenUsage",
    # Structured output
    "SchemaValidator",
    "PydanticValidator",
    "SchemaMismatch",
    # Rate limiting
    "RateLimiter",
    "RateLimitDecision",
    "rate_limit_headers",
    # Cost
    "UsageTracker",
    "estimate_cost",
    "register_pricing",
    # Exceptions
    "ErrorKind",
    "GatewayError",
    "ConfigurationError",
    "InvalidRequestError",
    "AuthenticationError",
    "QuotaExceededError",
    "ModelNotFoundError",
    "RateLimitError",
    "ContextLengthExceededError",
    "ContentFilterError",
    "EmptyResponseError",
    "JSONParseError",
    "ResponseValidationError",
    "NetworkError",
    "ServerError",
    "is_retryable",
]
