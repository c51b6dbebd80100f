"""Testing utilities shipped with openrouter-gateway.

Provides ``FakeOpenRouter``, a scripted stand-in for the OpenRouter HTTP API
built on ``httpx.MockTransport``. Consumers exercise the real retry,
classification and parsing paths without touching the network.

Usage::

    from openrouter_gateway import CompletionOptions, GatewayClient, load_config
    from openrouter_gateway.testing import FakeOpenRouter

    fake = FakeOpenRouter()
    fake.enqueue_error(503)
    fake.enqueue_completion('{"answer": 42}')

    client = GatewayClient(load_config(api_key="sk-test"), http_client=fake.http_client())
    result = await client.chat_completion(
        CompletionOptions(system_message="sys", user_message="What is 6*7?")
    )
    assert fake.completion_calls == 2
"""

from __future__ import annotations

import json
from collections import deque
from typing import Any, Union

import httpx

_Scripted = Union[httpx.Response, Exception]


class FakeOpenRouter:
    """Scripted OpenRouter upstream. Each completion request consumes one entry.

    Resolution order for ``POST /chat/completions``:

    1. The next queued entry (response or exception), FIFO.
    2. ``default_content`` as a successful completion, if set.
    3. HTTP 500 "No fake response queued".

    ``GET /models`` answers ``models_status`` with an empty model list.
    """

    def __init__(
        self,
        default_content: str | None = None,
        model: str = "openai/gpt-4o-mini",
    ) -> None:
        self._queue: deque[_Scripted] = deque()
        self._counter = 0
        self.default_content = default_content
        self.model = model
        self.models_status = 200
        self.requests: list[httpx.Request] = []

    def enqueue_completion(
        self,
        content: str | None,
        *,
        finish_reason: str | None = "stop",
        model: str | None = None,
        request_id: str | None = None,
        prompt_tokens: int = 100,
        completion_tokens: int = 50,
    ) -> None:
        """Queue a 200 completion carrying *content* in its first choice."""
        self._queue.append(
            httpx.Response(
                200,
                json=self.completion_body(
                    content,
                    finish_reason=finish_reason,
                    model=model,
                    request_id=request_id,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                ),
            )
        )

    def enqueue_error(self, status: int, body: Any = None) -> None:
        """Queue a non-2xx reply. *body* may be a dict (JSON) or raw text."""
        if body is None:
            body = {"error": {"message": f"fake upstream error {status}"}}
        if isinstance(body, str):
            self._queue.append(httpx.Response(status, text=body))
        else:
            self._queue.append(httpx.Response(status, json=body))

    def enqueue_response(self, response: httpx.Response) -> None:
        """Queue an arbitrary response, e.g. a malformed 2xx body."""
        self._queue.append(response)

    def enqueue_exception(self, exc: Exception) -> None:
        """Queue an exception raised from inside the transport, e.g. ``httpx.ConnectError``."""
        self._queue.append(exc)

    def completion_body(
        self,
        content: str | None,
        *,
        finish_reason: str | None = "stop",
        model: str | None = None,
        request_id: str | None = None,
        prompt_tokens: int = 100,
        completion_tokens: int = 50,
    ) -> dict[str, Any]:
        self._counter += 1
        return {
            "id": request_id or f"gen-fake-{self._counter}",
            "model": model or self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": finish_reason,
                }
            ],
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        """``httpx.MockTransport`` handler."""
        self.requests.append(request)

        if request.method == "GET" and request.url.path.endswith("/models"):
            return httpx.Response(self.models_status, json={"data": []})

        if request.method == "POST" and request.url.path.endswith("/chat/completions"):
            if self._queue:
                scripted = self._queue.popleft()
                if isinstance(scripted, Exception):
                    raise scripted
                return scripted
            if self.default_content is not None:
                return httpx.Response(200, json=self.completion_body(self.default_content))
            return httpx.Response(
                500, json={"error": {"message": "No fake response queued"}}
            )

        return httpx.Response(404, json={"error": {"message": "Not found"}})

    def http_client(self) -> httpx.AsyncClient:
        """Return an ``httpx.AsyncClient`` routed to this fake."""
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def completion_calls(self) -> int:
        """Number of ``POST /chat/completions`` requests received."""
        return sum(
            1
            for r in self.requests
            if r.method == "POST" and r.url.path.endswith("/chat/completions")
        )

    @property
    def last_payload(self) -> dict[str, Any] | None:
        """Decoded JSON body of the most recent completion request."""
        for request in reversed(self.requests):
            if request.method == "POST":
                return json.loads(request.content)
        return None

    @property
    def pending(self) -> int:
        """Scripted entries not yet consumed."""
        return len(self._queue)
