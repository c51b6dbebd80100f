"""Map raw HTTP and transport failures onto the gateway error taxonomy."""

from __future__ import annotations

import asyncio
import json
import re

import httpx

from openrouter_gateway.exceptions import (
    AuthenticationError,
    ContextLengthExceededError,
    GatewayError,
    InvalidRequestError,
    ModelNotFoundError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    ServerError,
)

DEFAULT_RETRY_AFTER_SECONDS = 60

_FIRST_INTEGER_RE = re.compile(r"(\d+)")
_CONTEXT_LENGTH_MARKERS = ("context length", "context_length")


def _provider_message(body: str) -> str | None:
    """Pull ``error.message`` out of a provider error body, if present."""
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    error = parsed.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None


def _retry_after(body: str) -> int:
    match = _FIRST_INTEGER_RE.search(body or "")
    return int(match.group(1)) if match else DEFAULT_RETRY_AFTER_SECONDS


def classify_http_error(status: int, body: str) -> GatewayError:
    """Classify a non-2xx provider response.

    Args:
        status: HTTP status code.
        body: Raw response body; a ``{"error": {"message": ...}}`` shape is
            used for the message when present, anything else is tolerated.

    Returns:
        The matching ``GatewayError`` subclass instance (never raised here).
    """
    message = _provider_message(body) or f"HTTP {status} error"

    if status == 400:
        lowered = message.lower()
        if any(marker in lowered for marker in _CONTEXT_LENGTH_MARKERS):
            return ContextLengthExceededError(
                "Context length exceeded. Try reducing input size.",
                status_code=400,
                details={"provider_message": message},
            )
        return InvalidRequestError(message, status_code=400)

    if status == 401:
        return AuthenticationError(
            "Invalid API key. Check OPENROUTER_API_KEY environment variable.",
            status_code=401,
        )

    if status == 402:
        return QuotaExceededError(
            "Insufficient credits. Please add funds to your OpenRouter account.",
            status_code=402,
        )

    if status == 404:
        return ModelNotFoundError(f"Model not found: {message}", status_code=404)

    if status == 429:
        return RateLimitError(
            "Rate limit exceeded. Please try again later.",
            retry_after=_retry_after(body),
            status_code=429,
        )

    if status >= 500:
        return ServerError(f"OpenRouter server error: {message}", status_code=status)

    return InvalidRequestError(message, status_code=status)


def classify_transport_failure(error: BaseException, timeout_ms: int) -> NetworkError:
    """Classify an exception raised while talking to the provider.

    A deadline (``httpx.TimeoutException`` or ``asyncio.TimeoutError``) maps to
    a 408 ``NetworkError`` naming the configured timeout; anything else maps to
    a ``NetworkError`` carrying the underlying message.
    """
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return NetworkError(
            f"Request timeout after {timeout_ms}ms",
            status_code=408,
            details={"timeout_ms": timeout_ms},
        )
    reason = str(error) or type(error).__name__
    return NetworkError(
        f"Network error: {reason}",
        details={"exception": type(error).__name__},
    )
