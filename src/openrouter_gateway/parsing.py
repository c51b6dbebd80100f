"""Turn a raw provider response into plain text or validated structured output."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar, overload

from openrouter_gateway.exceptions import (
    ContentFilterError,
    EmptyResponseError,
    JSONParseError,
    ResponseValidationError,
)
from openrouter_gateway.schema import SchemaMismatch, SchemaValidator
from openrouter_gateway.types import RawCompletionResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Characters of offending content quoted in JSONParseError messages
_CONTENT_PREVIEW_CHARS = 200


@overload
def parse_response(raw: RawCompletionResponse, validator: None = None) -> str: ...


@overload
def parse_response(raw: RawCompletionResponse, validator: SchemaValidator[T]) -> T: ...


def parse_response(
    raw: RawCompletionResponse, validator: SchemaValidator[Any] | None = None
) -> Any:
    """Extract the first choice's content, optionally as validated JSON.

    Args:
        raw: Provider response.
        validator: When given, the content is JSON-decoded and validated.

    Returns:
        The raw text, or the validator's typed result.

    Raises:
        EmptyResponseError: No choices, or the first choice has no content.
        ContentFilterError: The provider blocked the completion.
        JSONParseError: Structured output requested but content is not JSON.
        ResponseValidationError: JSON does not conform to the schema.
    """
    if not raw.choices:
        raise EmptyResponseError("No choices in OpenRouter response")

    choice = raw.choices[0]

    if choice.finish_reason == "content_filter":
        raise ContentFilterError("Response blocked by content filter")

    if choice.finish_reason == "length":
        logger.warning(
            "Response was truncated due to max_tokens limit",
            extra={"request_id": raw.id, "model": raw.model},
        )

    content = choice.message.content if choice.message is not None else None
    if not content:
        raise EmptyResponseError("Empty content in OpenRouter response")

    if validator is None:
        return content

    try:
        parsed = json.loads(content)
    except ValueError as exc:
        prefix = content[:_CONTENT_PREVIEW_CHARS]
        raise JSONParseError(
            f"Invalid JSON in response: {prefix}...",
            content_prefix=prefix,
        ) from exc

    try:
        return validator.validate(parsed)
    except SchemaMismatch as exc:
        raise ResponseValidationError(
            f"Response validation failed: {exc}",
            violations=exc.violations,
        ) from exc
