"""Tests for the shipped FakeOpenRouter test double."""

from __future__ import annotations

import httpx
import pytest

from openrouter_gateway.testing import FakeOpenRouter

URL = "https://openrouter.ai/api/v1/chat/completions"


@pytest.mark.unit
class TestFakeOpenRouter:
    async def test_queued_responses_in_order(self) -> None:
        fake = FakeOpenRouter()
        fake.enqueue_error(503)
        fake.enqueue_completion("hi", request_id="gen-9", prompt_tokens=7, completion_tokens=3)

        async with fake.http_client() as client:
            first = await client.post(URL, json={"model": "m"})
            second = await client.post(URL, json={"model": "m2"})

        assert first.status_code == 503
        body = second.json()
        assert body["id"] == "gen-9"
        assert body["choices"][0]["message"]["content"] == "hi"
        assert body["usage"] == {"prompt_tokens": 7, "completion_tokens": 3, "total_tokens": 10}
        assert fake.completion_calls == 2
        assert fake.last_payload == {"model": "m2"}
        assert fake.pending == 0

    async def test_queued_exception_raised(self) -> None:
        fake = FakeOpenRouter()
        fake.enqueue_exception(httpx.ConnectError("refused"))
        async with fake.http_client() as client:
            with pytest.raises(httpx.ConnectError):
                await client.post(URL, json={})

    async def test_default_content_when_queue_empty(self) -> None:
        fake = FakeOpenRouter(default_content="always")
        async with fake.http_client() as client:
            response = await client.post(URL, json={})
        assert response.json()["choices"][0]["message"]["content"] == "always"

    async def test_unscripted_call_is_server_error(self) -> None:
        fake = FakeOpenRouter()
        async with fake.http_client() as client:
            response = await client.post(URL, json={})
        assert response.status_code == 500

    async def test_models_endpoint(self) -> None:
        fake = FakeOpenRouter()
        fake.models_status = 401
        async with fake.http_client() as client:
            response = await client.get("https://openrouter.ai/api/v1/models")
        assert response.status_code == 401
        assert fake.completion_calls == 0
        assert fake.last_payload is None
