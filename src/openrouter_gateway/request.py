"""Per-call option validation and wire request assembly."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from openrouter_gateway.exceptions import InvalidRequestError
from openrouter_gateway.types import ChatMessage, CompletionOptions, CompletionRequest

if TYPE_CHECKING:
    from openrouter_gateway.config import GatewayConfig

MAX_USER_MESSAGE_LENGTH = 50_000
MAX_OUTPUT_TOKENS = 128_000


def _out_of_range(value: float | None, low: float, high: float) -> bool:
    return value is not None and not (low <= value <= high)


def validate_options(options: CompletionOptions[Any]) -> InvalidRequestError | None:
    """Check caller-supplied options; return the first violation or None.

    Order: system message, user message, user message length, temperature,
    then max tokens, top-p, the penalties and the deadline.
    """
    if not (options.system_message or "").strip():
        return InvalidRequestError(
            "System message cannot be empty", field="system_message"
        )

    if not (options.user_message or "").strip():
        return InvalidRequestError("User message cannot be empty", field="user_message")

    if len(options.user_message) > MAX_USER_MESSAGE_LENGTH:
        return InvalidRequestError(
            f"User message exceeds maximum length of {MAX_USER_MESSAGE_LENGTH} characters",
            field="user_message",
        )

    if _out_of_range(options.temperature, 0.0, 2.0):
        return InvalidRequestError(
            "Temperature must be between 0 and 2", field="temperature"
        )

    if _out_of_range(options.max_tokens, 1, MAX_OUTPUT_TOKENS):
        return InvalidRequestError(
            f"Max tokens must be between 1 and {MAX_OUTPUT_TOKENS}", field="max_tokens"
        )

    if _out_of_range(options.top_p, 0.0, 1.0):
        return InvalidRequestError("Top-p must be between 0 and 1", field="top_p")

    for name in ("frequency_penalty", "presence_penalty"):
        if _out_of_range(getattr(options, name), -2.0, 2.0):
            label = name.replace("_", " ").capitalize()
            return InvalidRequestError(f"{label} must be between -2 and 2", field=name)

    if options.deadline_ms is not None and options.deadline_ms <= 0:
        return InvalidRequestError(
            "Deadline must be a positive number of milliseconds", field="deadline_ms"
        )

    return None


def build_request(
    options: CompletionOptions[Any], config: GatewayConfig
) -> CompletionRequest:
    """Merge per-call overrides over configured defaults into a wire request."""
    messages: list[ChatMessage] = [
        {"role": "system", "content": options.system_message},
        {"role": "user", "content": options.user_message},
    ]

    fmt = options.response_format
    return CompletionRequest(
        model=options.model or config.default_model,
        messages=messages,
        temperature=(
            options.temperature
            if options.temperature is not None
            else config.default_temperature
        ),
        max_tokens=options.max_tokens or config.default_max_tokens,
        top_p=options.top_p if options.top_p is not None else 1.0,
        frequency_penalty=options.frequency_penalty or 0.0,
        presence_penalty=options.presence_penalty or 0.0,
        response_format=fmt.directive() if fmt is not None else None,
    )
