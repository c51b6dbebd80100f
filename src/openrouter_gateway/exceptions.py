"""Exception hierarchy for openrouter-gateway.

Every failure the gateway surfaces is a ``GatewayError`` subclass. The
``kind`` class attribute tags the error; retryability is derived from it
alone.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced by the gateway."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    CONTEXT_LENGTH_EXCEEDED = "CONTEXT_LENGTH_EXCEEDED"
    CONTENT_FILTER = "CONTENT_FILTER"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    JSON_PARSE_ERROR = "JSON_PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.SERVER_ERROR, ErrorKind.RATE_LIMIT_ERROR}
)


class GatewayError(Exception):
    """Base exception for all openrouter-gateway errors."""

    kind: ClassVar[ErrorKind]
    default_status: ClassVar[int | None] = None
    public_message: ClassVar[str] = "The AI service failed to process the request."

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.details: dict[str, Any] = dict(details or {})
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether re-sending the same request may succeed."""
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> dict[str, Any]:
        """Full representation for server-side logs."""
        return {
            "name": type(self).__name__,
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "details": self.details,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Sanitized payload safe to return to end users."""
        return {"code": self.kind.value, "message": self._public_text()}

    def _public_text(self) -> str:
        return self.public_message


class ConfigurationError(GatewayError):
    """Raised when the gateway configuration is missing or out of bounds."""

    kind = ErrorKind.CONFIGURATION_ERROR
    default_status = 500
    public_message = "The AI service is not configured."


class InvalidRequestError(GatewayError):
    """Raised when the request is rejected locally or by the provider."""

    kind = ErrorKind.INVALID_REQUEST
    default_status = 400
    public_message = "The request to the AI service was invalid."

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        field: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(message, status_code, details)
        if field is not None:
            self.details.setdefault("field", field)

    def _public_text(self) -> str:
        # Local validation messages are ours; provider text is not.
        return self.message if self.field is not None else self.public_message


class AuthenticationError(GatewayError):
    """Raised on HTTP 401 from the provider."""

    kind = ErrorKind.AUTHENTICATION_ERROR
    default_status = 401
    public_message = "The AI service is temporarily unavailable."


class QuotaExceededError(GatewayError):
    """Raised on HTTP 402: the provider account is out of credits."""

    kind = ErrorKind.QUOTA_EXCEEDED
    default_status = 402
    public_message = "The AI service is temporarily unavailable."


class ModelNotFoundError(GatewayError):
    """Raised on HTTP 404: the requested model does not exist."""

    kind = ErrorKind.MODEL_NOT_FOUND
    default_status = 404
    public_message = "The requested AI model is not available."


class RateLimitError(GatewayError):
    """Raised when a rate limit is hit, locally or at the provider."""

    kind = ErrorKind.RATE_LIMIT_ERROR
    default_status = 429
    public_message = "Too many requests. Please try again later."

    def __init__(
        self,
        message: str,
        retry_after: int,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, status_code, details)
        self.details.setdefault("retry_after", retry_after)

    def to_public_dict(self) -> dict[str, Any]:
        payload = super().to_public_dict()
        payload["retry_after"] = self.retry_after
        return payload


class ContextLengthExceededError(GatewayError):
    """Raised when the prompt does not fit the model's context window."""

    kind = ErrorKind.CONTEXT_LENGTH_EXCEEDED
    default_status = 400
    public_message = "The request is too large for the AI model."


class ContentFilterError(GatewayError):
    """Raised when the provider blocked the completion."""

    kind = ErrorKind.CONTENT_FILTER
    default_status = 400
    public_message = "The response was blocked by the content filter."


class EmptyResponseError(GatewayError):
    """Raised when the provider returned no usable content."""

    kind = ErrorKind.EMPTY_RESPONSE
    default_status = 500


class JSONParseError(GatewayError):
    """Raised when structured output is not valid JSON."""

    kind = ErrorKind.JSON_PARSE_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        content_prefix: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.content_prefix = content_prefix
        super().__init__(message, status_code, details)


class ResponseValidationError(GatewayError):
    """Raised when parsed structured output does not match the schema."""

    kind = ErrorKind.VALIDATION_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        violations: list[dict[str, Any]],
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.violations = violations
        super().__init__(message, status_code, details)
        self.details.setdefault("violations", violations)


class NetworkError(GatewayError):
    """Raised when the provider could not be reached or timed out."""

    kind = ErrorKind.NETWORK_ERROR
    default_status = 500
    public_message = "The AI service could not be reached."


class ServerError(GatewayError):
    """Raised on HTTP 5xx from the provider."""

    kind = ErrorKind.SERVER_ERROR
    default_status = 500
    public_message = "The AI service is temporarily unavailable."


ERROR_CLASSES: dict[ErrorKind, type[GatewayError]] = {
    cls.kind: cls
    for cls in (
        ConfigurationError,
        InvalidRequestError,
        AuthenticationError,
        QuotaExceededError,
        ModelNotFoundError,
        RateLimitError,
        ContextLengthExceededError,
        ContentFilterError,
        EmptyResponseError,
        JSONParseError,
        ResponseValidationError,
        NetworkError,
        ServerError,
    )
}


def is_retryable(error: BaseException) -> bool:
    """Return True iff *error* is a retryable ``GatewayError``."""
    return isinstance(error, GatewayError) and error.retryable
