"""GatewayClient, the single class consumers import and use."""

from __future__ import annotations

import logging
import time
from typing import Any, TypeVar

import httpx

from openrouter_gateway import cost
from openrouter_gateway.config import GatewayConfig, load_config
from openrouter_gateway.cost import UsageTracker
from openrouter_gateway.exceptions import RateLimitError
from openrouter_gateway.observability.logging import configure_logging
from openrouter_gateway.observability.tracing import configure_tracing, traced_completion
from openrouter_gateway.parsing import parse_response
from openrouter_gateway.rate_limit import RateLimiter, RateLimitDecision
from openrouter_gateway.request import build_request, validate_options
from openrouter_gateway.transport import CompletionTransport, RetryingTransport
from openrouter_gateway.types import CompletionOptions, CompletionResult, TokenUsage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GatewayClient:
    """OpenRouter chat-completion client with budgets, retries and validation.

    One instance is meant to be shared by many concurrent callers. Each
    ``chat_completion`` runs validate → rate-check → build → send-with-retry
    → parse, strictly in that order.

    Usage:
        # Reads OPENROUTER_* env vars automatically
        async with GatewayClient() as gateway:
            result = await gateway.chat_completion(
                CompletionOptions(
                    system_message="You are a helpful chef.",
                    user_message="What can I cook with eggs and spinach?",
                    caller_id=user.id,
                )
            )
            print(result.content)

        # Structured output
        fmt = ResponseFormat.from_model(RecipeList)
        result = await gateway.chat_completion(
            CompletionOptions(system_message=..., user_message=..., response_format=fmt)
        )
        result.content  # RecipeList instance
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        transport: CompletionTransport | None = None,
        rate_limiter: RateLimiter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            config: Validated configuration. When omitted it is loaded from the
                environment and a ``ConfigurationError`` is raised on any
                missing or out-of-bounds setting. Build explicit configs with
                ``load_config(**overrides)`` to get the same error; calling
                ``GatewayConfig(...)`` directly raises pydantic's
                ``ValidationError`` instead.
            transport: Replacement transport (tests, custom retry policies).
            rate_limiter: Limiter shared with other clients. The caller keeps
                ownership: ``close()`` leaves an injected limiter running.
                A private one is created and owned otherwise.
            http_client: Client handed to the default ``RetryingTransport``.
        """
        self._config = config if config is not None else load_config()
        self._transport: CompletionTransport = (
            transport
            if transport is not None
            else RetryingTransport(self._config, http_client=http_client)
        )
        # RateLimiter defines __len__, so an empty one is falsy
        self._owns_rate_limiter = rate_limiter is None
        self._rate_limiter = (
            rate_limiter
            if rate_limiter is not None
            else RateLimiter(sweep_interval=self._config.rate_limit_sweep_seconds)
        )
        self._usage = UsageTracker(cost_warn_usd=self._config.cost_warn_usd)
        self._closed = False

        # Auto-configure observability
        configure_logging(
            level=self._config.log_level,
            fmt=self._config.log_format,
        )
        if self._config.trace_enabled:
            configure_tracing(
                exporter=self._config.trace_exporter,
                endpoint=self._config.trace_endpoint,
                service_name=self._config.trace_service_name,
            )

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def chat_completion(self, options: CompletionOptions[T]) -> CompletionResult[T]:
        """Send one system + user exchange and return the parsed result.

        Args:
            options: Messages, per-call overrides, optional structured-output
                format and caller identity.

        Returns:
            CompletionResult[T] with content (text or validated object),
            usage, model, finish reason, request id and latency.

        Raises:
            InvalidRequestError: Options failed local validation.
            RateLimitError: The caller's budget is exhausted (no network call
                is made) or the provider kept rate limiting.
            GatewayError: Any other classified transport or parsing failure.
        """
        error = validate_options(options)
        if error is not None:
            raise error

        if options.caller_id:
            self._enforce_caller_budget(options.caller_id)

        request = build_request(options, self._config)
        validator = (
            options.response_format.validator if options.response_format else None
        )

        async with traced_completion(
            model=request.model, caller_id=options.caller_id
        ) as span_data:
            start = time.monotonic()
            raw = await self._transport.send(request, deadline_ms=options.deadline_ms)
            latency_ms = (time.monotonic() - start) * 1000

            content = parse_response(raw, validator)

            usage = TokenUsage(
                prompt_tokens=raw.usage.prompt_tokens,
                completion_tokens=raw.usage.completion_tokens,
                total_tokens=raw.usage.total_tokens,
            )
            model = raw.model or request.model
            result: CompletionResult[T] = CompletionResult(
                content=content,
                usage=usage,
                model=model,
                finish_reason=raw.choices[0].finish_reason,
                request_id=raw.id,
                latency_ms=latency_ms,
                estimated_cost_usd=cost.estimate_cost(
                    usage.prompt_tokens, usage.completion_tokens, model
                ),
            )
            span_data["result"] = result

        self._usage.record(usage, result.estimated_cost_usd)

        logger.info(
            "Chat completion finished",
            extra={
                "request_id": result.request_id,
                "model": result.model,
                "caller_id": options.caller_id,
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "finish_reason": result.finish_reason,
                "latency_ms": round(latency_ms, 1),
                "cost_usd": result.estimated_cost_usd,
            },
        )

        return result

    def _enforce_caller_budget(self, caller_id: str) -> RateLimitDecision:
        self._rate_limiter.start()
        decision = self._rate_limiter.check_and_increment(
            caller_id,
            max_requests=self._config.caller_rate_limit,
            window_seconds=self._config.caller_rate_window_seconds,
        )
        if not decision.allowed:
            retry_after = decision.retry_after()
            logger.warning(
                "Caller rate limit exceeded",
                extra={"caller_id": caller_id, "retry_after": retry_after},
            )
            raise RateLimitError(
                "User rate limit exceeded",
                retry_after=retry_after,
                details={"limit": decision.limit},
            )
        return decision

    async def health_check(self) -> bool:
        """Return True iff the provider's models endpoint answers 2xx. Never raises."""
        try:
            return await self._transport.ping()
        except Exception:  # noqa: BLE001  health check reports, never raises
            logger.debug("Health check transport raised", exc_info=True)
            return False

    def estimate_cost(
        self, prompt_tokens: int, completion_tokens: int, model: str | None = None
    ) -> float:
        """Estimated USD cost for the given token counts.

        Uses the configured default model when *model* is omitted; unknown
        models are priced as ``cost.DEFAULT_PRICING_MODEL``.
        """
        return cost.estimate_cost(
            prompt_tokens, completion_tokens, model or self._config.default_model
        )

    def get_config(self) -> dict[str, Any]:
        """Active configuration with the API key removed."""
        return self._config.redacted()

    @property
    def total_cost_usd(self) -> float:
        """Cumulative estimated cost across all calls on this client."""
        return self._usage.total_cost_usd

    @property
    def total_tokens(self) -> int:
        """Cumulative tokens across all calls on this client."""
        return self._usage.total_tokens

    @property
    def call_count(self) -> int:
        """Number of successful completions on this client."""
        return self._usage.call_count

    def usage_summary(self) -> dict[str, Any]:
        """Return a summary dict of token usage and cost."""
        return self._usage.summary()

    async def close(self) -> None:
        """Close the transport and, if this client created it, the rate limiter."""
        if not self._closed:
            self._closed = True
            await self._transport.close()
            if self._owns_rate_limiter:
                await self._rate_limiter.close()

    async def __aenter__(self) -> GatewayClient:
        """Async context manager entry; starts the rate-limit sweep."""
        self._rate_limiter.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        """Async context manager exit; closes transport and limiter."""
        await self.close()
