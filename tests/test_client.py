"""Tests for OllamaHandler with httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ollama_stream.config import ProviderSpec, RetrySpec
from ollama_stream.diagnostics import Diagnostic
from ollama_stream.errors import RequestTimeoutError
from ollama_stream.llm.client import OllamaHandler
from ollama_stream.types import ReasoningEvent, TextEvent


def _ndjson(*chunks: dict) -> bytes:
    return b"".join(json.dumps(c).encode() + b"\n" for c in chunks)


_BODY = _ndjson(
    {"message": {"role": "assistant", "thinking": "plan", "content": ""}, "done": False},
    {"message": {"role": "assistant", "content": "Writing."}, "done": False},
    {"message": {"role": "assistant", "content": "", "tool_calls": [
        {"function": {"name": "write_to_file", "arguments": {"path": "a.ts", "content": "X"}}},
    ]}, "done": False},
    {"message": {"role": "assistant", "content": ""}, "done": True, "done_reason": "stop"},
)


class RecordingSink:
    def __init__(self) -> None:
        self.records: list[Diagnostic] = []

    def record(self, diagnostic: Diagnostic) -> None:
        self.records.append(diagnostic)


class TrackingStream(httpx.AsyncByteStream):
    def __init__(self, body: bytes) -> None:
        self._lines = body.splitlines(keepends=True)
        self.closed = False

    async def __aiter__(self):
        for line in self._lines:
            yield line

    async def aclose(self) -> None:
        self.closed = True


def _handler(transport_fn, **provider_kwargs) -> OllamaHandler:
    provider = ProviderSpec(model_id="gpt-oss:20b", **provider_kwargs)
    return OllamaHandler(
        provider=provider,
        retry=RetrySpec(max_attempts=1),
        transport=httpx.MockTransport(transport_fn),
    )


async def _collect(handler: OllamaHandler) -> list:
    return [
        ev async for ev in handler.create_message(
            "You are a test.", [{"role": "user", "content": "hi"}],
        )
    ]


class TestCreateMessage:
    async def test_streams_events(self):
        handler = _handler(lambda request: httpx.Response(200, content=_BODY))
        events = await _collect(handler)
        assert events == [
            ReasoningEvent("plan"),
            TextEvent("Writing."),
            TextEvent("<write_to_file>\n<path>a.ts</path>\n\nX\n\n</write_to_file>"),
        ]
        await handler.close()

    async def test_request_payload(self):
        seen: list[httpx.Request] = []

        def transport(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=_ndjson({"done": True}))

        handler = _handler(transport, num_ctx=8192, think=True, api_key="secret")
        await _collect(handler)

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/chat"
        assert request.headers["authorization"] == "Bearer secret"
        payload = json.loads(request.content)
        assert payload["model"] == "gpt-oss:20b"
        assert payload["stream"] is True
        assert payload["think"] is True
        assert payload["options"] == {"num_ctx": 8192}
        assert payload["messages"][0] == {"role": "system", "content": "You are a test."}
        assert payload["messages"][1] == {"role": "user", "content": "hi"}
        await handler.close()

    async def test_no_auth_header_without_key(self):
        seen: list[httpx.Request] = []

        def transport(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=_ndjson({"done": True}))

        handler = _handler(transport)
        await _collect(handler)
        assert "authorization" not in seen[0].headers
        assert "think" not in json.loads(seen[0].content)
        await handler.close()

    async def test_http_error_ends_quietly(self):
        sink = RecordingSink()
        handler = OllamaHandler(
            provider=ProviderSpec(model_id="missing"),
            retry=RetrySpec(max_attempts=1),
            sink=sink,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(404, json={"error": "model 'missing' not found"}),
            ),
        )
        events = await _collect(handler)
        assert events == []
        errors = [r for r in sink.records if r.kind == "http_error"]
        assert len(errors) == 1
        assert "not found" in errors[0].data["body"]
        await handler.close()

    async def test_closing_early_closes_response(self):
        stream = TrackingStream(_BODY)
        handler = _handler(lambda request: httpx.Response(200, stream=stream))

        events = handler.create_message("sys", [{"role": "user", "content": "hi"}])
        first = await events.__anext__()
        assert first == ReasoningEvent("plan")
        assert not stream.closed

        await events.aclose()
        assert stream.closed
        await handler.close()

    async def test_connect_error_propagates(self):
        def transport(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        handler = _handler(transport)
        with pytest.raises(httpx.ConnectError):
            await _collect(handler)
        await handler.close()


class TestTimeout:
    async def test_connect_timeout_rejects_without_events(self):
        async def transport(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, content=_BODY)

        handler = _handler(transport, request_timeout_ms=1000)
        events: list = []
        with pytest.raises(RequestTimeoutError, match="timed out after 1 seconds"):
            async for ev in handler.create_message("sys", []):
                events.append(ev)
        assert events == []
        await handler.close()

    async def test_httpx_timeout_normalized(self):
        def transport(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("connect timed out", request=request)

        handler = _handler(transport, request_timeout_ms=45_000)
        with pytest.raises(RequestTimeoutError) as exc_info:
            await _collect(handler)
        assert str(exc_info.value) == "Ollama request timed out after 45 seconds"
        assert exc_info.value.timeout_ms == 45_000
        await handler.close()


class TestRetry:
    async def test_retries_before_first_event(self):
        calls = 0

        def transport(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=_BODY)

        handler = OllamaHandler(
            provider=ProviderSpec(model_id="m"),
            retry=RetrySpec(max_attempts=3),
            transport=httpx.MockTransport(transport),
        )
        with patch("ollama_stream.llm.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            events = await _collect(handler)

        assert calls == 3
        assert len(events) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]
        await handler.close()

    async def test_retries_reported_to_sink(self):
        calls = 0

        def transport(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=_BODY)

        sink = RecordingSink()
        handler = OllamaHandler(
            provider=ProviderSpec(model_id="m"),
            retry=RetrySpec(max_attempts=3),
            sink=sink,
            transport=httpx.MockTransport(transport),
        )
        with patch("ollama_stream.llm.retry.asyncio.sleep", new_callable=AsyncMock):
            await _collect(handler)

        retries = [r for r in sink.records if r.kind == "retry"]
        assert [r.data["attempt"] for r in retries] == [1, 2]
        assert [r.data["delay"] for r in retries] == [1.0, 2.0]
        assert "refused" in retries[0].message
        await handler.close()

    async def test_exhausted_retries_raise(self):
        calls = 0

        def transport(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("refused", request=request)

        handler = OllamaHandler(
            provider=ProviderSpec(model_id="m"),
            retry=RetrySpec(max_attempts=2),
            transport=httpx.MockTransport(transport),
        )
        with patch("ollama_stream.llm.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(httpx.ConnectError):
                await _collect(handler)
        assert calls == 2
        await handler.close()


class TestGetModel:
    def test_context_window_from_provider(self):
        handler = OllamaHandler(provider=ProviderSpec(model_id="qwen3:8b", num_ctx=65536))
        model_id, info = handler.get_model()
        assert model_id == "qwen3:8b"
        assert info.context_window == 65536
        assert info.supports_prompt_cache is False

    def test_defaults(self):
        model_id, info = OllamaHandler().get_model()
        assert model_id == ""
        assert info.context_window == 32768
