"""Tests for the connect-phase deadline guard."""

import asyncio

import httpx
import pytest

from ollama_stream.errors import OllamaStreamError, RequestTimeoutError
from ollama_stream.llm.timeout import guard, is_timeout, normalize_timeout


class TestGuard:
    @pytest.mark.asyncio
    async def test_result_before_deadline(self):
        async def fast():
            return "ok"

        assert await guard(fast(), 1000) == "ok"

    @pytest.mark.asyncio
    async def test_deadline_wins(self):
        started = asyncio.Event()
        cancelled = False

        async def slow():
            nonlocal cancelled
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled = True
                raise

        with pytest.raises(RequestTimeoutError) as exc_info:
            await guard(slow(), 1000)
        assert str(exc_info.value) == "Ollama request timed out after 1 seconds"
        assert started.is_set()
        assert cancelled

    @pytest.mark.asyncio
    async def test_request_error_passes_through(self):
        async def boom():
            raise ValueError("bad request")

        with pytest.raises(ValueError, match="bad request"):
            await guard(boom(), 1000)

    @pytest.mark.asyncio
    async def test_httpx_timeout_normalized(self):
        async def slow_connect():
            raise httpx.ConnectTimeout("connect timed out")

        with pytest.raises(RequestTimeoutError, match="after 5 seconds"):
            await guard(slow_connect(), 5_000)


class TestNormalize:
    def test_whole_seconds(self):
        assert str(RequestTimeoutError(30_000)) == "Ollama request timed out after 30 seconds"
        assert str(RequestTimeoutError(2_999)) == "Ollama request timed out after 2 seconds"

    def test_is_package_error(self):
        assert isinstance(RequestTimeoutError(1000), OllamaStreamError)

    @pytest.mark.parametrize("error", [
        asyncio.TimeoutError(),
        httpx.ReadTimeout("read"),
        RuntimeError("upstream timed out waiting"),
        RequestTimeoutError(1000),
    ])
    def test_timeouts_detected(self, error):
        assert is_timeout(error)
        normalized = normalize_timeout(error, 12_000)
        assert isinstance(normalized, RequestTimeoutError)
        assert str(normalized) == "Ollama request timed out after 12 seconds"

    def test_other_errors_unchanged(self):
        error = httpx.ConnectError("refused")
        assert not is_timeout(error)
        assert normalize_timeout(error, 1000) is error
