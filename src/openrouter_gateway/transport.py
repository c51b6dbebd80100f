"""HTTP transport with timeout, classification, and exponential-backoff retries.

Each attempt returns an explicit ``Success`` or ``Failure`` instead of
raising, and the tenacity retry loop decides on the result tag:
retry iff the failure is retryable and attempts remain.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable

import httpx
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt
from tenacity.wait import wait_base

from openrouter_gateway.classify import classify_http_error, classify_transport_failure
from openrouter_gateway.config import GatewayConfig
from openrouter_gateway.exceptions import GatewayError, NetworkError
from openrouter_gateway.types import CompletionRequest, RawCompletionResponse

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0
JITTER_RATIO = 0.25
HEALTH_CHECK_TIMEOUT_SECONDS = 5.0


def compute_backoff(attempt: int, rng: Callable[[], float] = random.random) -> float:
    """Delay in seconds before retrying after failed attempt number *attempt*.

    ``min(1 * 2**(attempt-1), 30)`` plus uniform jitter of up to 25% of that.
    """
    base = min(BASE_DELAY_SECONDS * 2 ** (attempt - 1), MAX_DELAY_SECONDS)
    return base + rng() * base * JITTER_RATIO


class wait_backoff_with_jitter(wait_base):  # noqa: N801  (tenacity naming)
    """tenacity wait strategy wrapping ``compute_backoff``."""

    def __init__(self, rng: Callable[[], float] = random.random) -> None:
        self._rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        return compute_backoff(retry_state.attempt_number, self._rng)


@dataclass(frozen=True)
class Success:
    response: RawCompletionResponse


@dataclass(frozen=True)
class Failure:
    error: GatewayError


AttemptResult = Union[Success, Failure]


def _should_retry(result: AttemptResult) -> bool:
    return isinstance(result, Failure) and result.error.retryable


def _last_result(retry_state: RetryCallState) -> AttemptResult:
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


@runtime_checkable
class CompletionTransport(Protocol):
    """What ``GatewayClient`` needs from a transport."""

    async def send(
        self, request: CompletionRequest, deadline_ms: int | None = None
    ) -> RawCompletionResponse:
        """Deliver *request*, retrying as configured; raise ``GatewayError`` on failure."""
        ...

    async def ping(self) -> bool:
        """Return True if the provider answers; never raise."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class RetryingTransport:
    """Sends completion requests to OpenRouter over a shared ``httpx.AsyncClient``.

    Args:
        config: Gateway configuration (base URL, key, timeout, attempt budget).
        http_client: Optional pre-built client (tests inject one backed by
            ``httpx.MockTransport``). When omitted the transport owns one.
        sleep: Coroutine used for backoff delays.
        rng: Source of uniform [0, 1) floats for jitter.
    """

    def __init__(
        self,
        config: GatewayConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._config = config
        self._timeout_seconds = config.timeout_ms / 1000
        self._client = http_client or httpx.AsyncClient(timeout=self._timeout_seconds)
        self._owns_client = http_client is None
        self._sleep = sleep
        self._rng = rng

    @property
    def completions_url(self) -> str:
        return f"{self._config.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.get_api_key()}",
            "HTTP-Referer": self._config.referer,
            "X-Title": self._config.app_title,
        }

    async def attempt(self, request: CompletionRequest) -> AttemptResult:
        """Perform one HTTP exchange and classify the outcome."""
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self.completions_url,
                    headers=self._headers(),
                    json=request.to_payload(),
                    timeout=self._timeout_seconds,
                ),
                timeout=self._timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001  every transport failure is classified
            return Failure(classify_transport_failure(exc, self._config.timeout_ms))

        if not response.is_success:
            return Failure(classify_http_error(response.status_code, response.text))

        try:
            return Success(RawCompletionResponse.model_validate_json(response.content))
        except PydanticValidationError as exc:
            return Failure(
                NetworkError(
                    "Malformed response body from OpenRouter",
                    status_code=502,
                    details={"errors": exc.error_count()},
                )
            )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        result = _last_result(retry_state)
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        kind = result.error.kind.value if isinstance(result, Failure) else None
        logger.info(
            "Retrying OpenRouter request",
            extra={
                "attempt": retry_state.attempt_number,
                "max_attempts": self._config.max_retries,
                "delay_ms": round(delay * 1000),
                "error_kind": kind,
            },
        )
        trace.get_current_span().add_event(
            "gateway.retry",
            {
                "attempt": retry_state.attempt_number,
                "delay_ms": round(delay * 1000),
                "error_kind": kind or "",
            },
        )

    async def _send_with_retry(self, request: CompletionRequest) -> RawCompletionResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.max_retries),
            wait=wait_backoff_with_jitter(self._rng),
            retry=retry_if_result(_should_retry),
            before_sleep=self._log_retry,
            retry_error_callback=_last_result,
            sleep=self._sleep,
        )
        result = await retrying(self.attempt, request)
        if isinstance(result, Failure):
            raise result.error
        return result.response

    async def send(
        self, request: CompletionRequest, deadline_ms: int | None = None
    ) -> RawCompletionResponse:
        """Send *request*, retrying retryable failures with backoff.

        Args:
            request: Wire request.
            deadline_ms: Wall-clock cap for the whole exchange including
                backoffs; falls back to ``config.total_timeout_ms``.

        Raises:
            GatewayError: The terminal classified failure, unchanged.
        """
        if deadline_ms is None:
            deadline_ms = self._config.total_timeout_ms
        if deadline_ms is None:
            return await self._send_with_retry(request)
        try:
            return await asyncio.wait_for(
                self._send_with_retry(request), timeout=deadline_ms / 1000
            )
        except asyncio.TimeoutError as exc:
            raise NetworkError(
                f"Request deadline of {deadline_ms}ms exceeded",
                status_code=408,
                details={"deadline_ms": deadline_ms},
            ) from exc

    async def ping(self) -> bool:
        """GET ``/models`` with a short timeout; True iff the response is 2xx."""
        try:
            response = await asyncio.wait_for(
                self._client.get(
                    f"{self._config.base_url}/models",
                    headers={"Authorization": f"Bearer {self._config.get_api_key()}"},
                    timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
                ),
                timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
            )
        except Exception:  # noqa: BLE001  health check reports, never raises
            logger.debug("OpenRouter health check failed", exc_info=True)
            return False
        return response.is_success

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
