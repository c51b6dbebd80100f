"""Core data types for openrouter-gateway."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypedDict, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from openrouter_gateway.schema import PydanticValidator, SchemaValidator

T = TypeVar("T")

FinishReason = Literal["stop", "length", "content_filter", "tool_calls"]


class ChatMessage(TypedDict):
    """A single message in the conversation (OpenAI-compatible shape)."""

    role: Literal["system", "user", "assistant"]
    content: str


# ── Outbound wire format ───────────────────────────────────────


@dataclass(frozen=True)
class StructuredOutput:
    """``response_format`` directive asking the model for schema-shaped JSON."""

    name: str
    schema: dict[str, Any]
    strict: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {
                "name": self.name,
                "strict": self.strict,
                "schema": self.schema,
            },
        }


@dataclass(frozen=True)
class CompletionRequest:
    """Body of ``POST /chat/completions``. Streaming is never requested."""

    model: str
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    response_format: StructuredOutput | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serializable request body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [dict(m) for m in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "stream": False,
        }
        if self.response_format is not None:
            payload["response_format"] = self.response_format.to_payload()
        return payload


# ── Inbound wire format ────────────────────────────────────────


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UsagePayload(_Lenient):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChoiceMessage(_Lenient):
    role: str = "assistant"
    content: str | None = None


class Choice(_Lenient):
    index: int = 0
    message: ChoiceMessage | None = None
    finish_reason: str | None = None


class RawCompletionResponse(_Lenient):
    """Provider response to ``POST /chat/completions``.

    Missing fields default to empty values so that shape problems surface
    as taxonomy errors (``EmptyResponse``) instead of parse failures.
    """

    id: str = ""
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: UsagePayload = Field(default_factory=UsagePayload)


# ── Caller-facing types ────────────────────────────────────────


def _schema_name(tp: type) -> str:
    name = getattr(tp, "__name__", "response")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass(frozen=True)
class ResponseFormat(Generic[T]):
    """Structured-output request: a JSON Schema plus an optional validator.

    ``name``, ``schema`` and ``strict`` are sent to the provider; the
    ``validator`` stays local and turns the returned JSON into ``T``.
    """

    name: str
    schema: dict[str, Any]
    strict: bool = True
    validator: SchemaValidator[T] | None = None

    @classmethod
    def from_model(
        cls,
        tp: type[T],
        name: str | None = None,
        strict: bool = True,
    ) -> ResponseFormat[T]:
        """Derive schema and validator from a single pydantic-compatible type."""
        validator = PydanticValidator(tp)
        return cls(
            name=name or _schema_name(tp),
            schema=validator.json_schema(),
            strict=strict,
            validator=validator,
        )

    def directive(self) -> StructuredOutput:
        return StructuredOutput(name=self.name, schema=self.schema, strict=self.strict)


@dataclass
class CompletionOptions(Generic[T]):
    """Options for a single ``GatewayClient.chat_completion`` call.

    ``None`` overrides fall back to the configured defaults. ``caller_id``
    opts the call into per-caller rate limiting; ``deadline_ms`` caps the
    whole call including retries.
    """

    system_message: str
    user_message: str
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    response_format: ResponseFormat[T] | None = None
    caller_id: str | None = None
    deadline_ms: int | None = None


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the provider for a single call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class CompletionResult(Generic[T]):
    """Parsed result of a chat completion.

    Generic over T: ``str`` for plain completions, or the validated type
    for structured output.
    """

    content: T
    usage: TokenUsage
    model: str
    finish_reason: str | None
    request_id: str
    latency_ms: float = 0.0
    estimated_cost_usd: float = 0.0
    metadata: dict[str, object] = field(default_factory=dict)
