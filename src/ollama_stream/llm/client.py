"""Streaming handler for the Ollama native chat API (``/api/chat``).

``create_message`` sends the conversation with ``stream: true`` and yields
:class:`~ollama_stream.types.StreamEvent` objects as NDJSON lines arrive.
The connect step is raced against ``request_timeout_ms``; the read loop
is not.  The whole call is wrapped by :func:`~ollama_stream.llm.retry.with_retry`.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from ollama_stream.config import DEFAULT_BASE_URL, ProviderSpec, RetrySpec
from ollama_stream.diagnostics import Diagnostic, DiagnosticSink, NullSink
from ollama_stream.llm.retry import with_retry
from ollama_stream.llm.timeout import guard, is_timeout, normalize_timeout
from ollama_stream.stream.translator import StreamTranslator
from ollama_stream.tools.names import ToolNameResolver
from ollama_stream.types import ModelInfo, StreamEvent

_logger = logging.getLogger(__name__)


class OllamaHandler:
    """Stream chat completions from an Ollama server.

    Parameters
    ----------
    provider:
        Endpoint, model and timeout settings.
    retry:
        Retry settings applied to each ``create_message`` call.
    tool_aliases:
        Extra tool-name aliases on top of the built-in table.
    sink:
        Receives diagnostics from the handler and its translators.
    transport:
        Optional ``httpx`` transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        provider: ProviderSpec | None = None,
        retry: RetrySpec | None = None,
        tool_aliases: dict[str, str] | None = None,
        sink: DiagnosticSink | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = provider or ProviderSpec()
        self._resolver = ToolNameResolver(tool_aliases)
        self._sink = sink or NullSink()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.create_message = with_retry(
            self._create_message, (retry or RetrySpec()).to_policy(), self._sink,
        )

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.provider.api_key:
                headers["Authorization"] = f"Bearer {self.provider.api_key}"
            # Deadlines are enforced by the connect guard, not by httpx
            self._client = httpx.AsyncClient(
                base_url=self.provider.base_url or DEFAULT_BASE_URL,
                headers=headers,
                timeout=httpx.Timeout(None),
                transport=self._transport,
            )
        return self._client

    def _build_payload(
        self, system_prompt: str, messages: list[dict[str, Any]],
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.get_model()[0],
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "stream": True,
            "options": {"num_ctx": self.provider.num_ctx},
        }
        if self.provider.think:
            payload["think"] = True
        return payload

    async def _create_message(
        self, system_prompt: str, messages: list[dict[str, Any]],
    ) -> AsyncIterator[StreamEvent]:
        client = self._ensure_client()
        timeout_ms = self.provider.request_timeout_ms
        request = client.build_request(
            "POST", "/api/chat", json=self._build_payload(system_prompt, messages),
        )

        try:
            self._sink.record(Diagnostic("request_sent", "POST /api/chat"))
            response = await guard(client.send(request, stream=True), timeout_ms)
        except Exception as e:
            normalized = self._normalize(e, timeout_ms)
            if normalized is e:
                raise
            raise normalized from e

        translator = StreamTranslator(resolver=self._resolver, sink=self._sink)
        try:
            async for event in translator.translate_response(response):
                yield event
        except Exception as e:
            normalized = self._normalize(e, timeout_ms)
            if normalized is e:
                raise
            raise normalized from e
        finally:
            await response.aclose()

    def _normalize(self, error: Exception, timeout_ms: int) -> BaseException:
        if is_timeout(error):
            return normalize_timeout(error, timeout_ms)
        status = None
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
        self._sink.record(Diagnostic(
            "api_error",
            f"Ollama API error ({status or 'unknown'}): {str(error) or 'Unknown error'}",
            {"status": status},
        ))
        _logger.warning("Ollama API error (%s): %s", status or "unknown", error)
        return error

    def get_model(self) -> tuple[str, ModelInfo]:
        """Model id and planning metadata based on the configured context size."""
        return self.provider.model_id, ModelInfo(context_window=self.provider.num_ctx)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
