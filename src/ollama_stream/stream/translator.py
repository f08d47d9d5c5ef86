"""Translate an NDJSON chat stream into reasoning/text events.

States::

    IDLE -> STREAMING -> DONE
                      -> FAILED

A translator owns one request's line buffer and is single-use.  Malformed
lines are reported to the diagnostic sink and skipped; they never end the
stream.  A ``done: true`` chunk is the last line honoured, even when more
lines are already buffered.
"""

from __future__ import annotations

import codecs
import enum
import logging
from typing import AsyncIterable, AsyncIterator, Iterator

import httpx

from ollama_stream.diagnostics import Diagnostic, DiagnosticSink, NullSink
from ollama_stream.stream.decoder import ChunkDecoder
from ollama_stream.stream.line_buffer import LineBuffer
from ollama_stream.tools.names import ToolNameResolver
from ollama_stream.tools.xml_encoder import ToolXmlEncoder
from ollama_stream.types import (
    Chunk,
    DecodeError,
    ReasoningEvent,
    StreamEvent,
    TextEvent,
)

_logger = logging.getLogger(__name__)


class StreamState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class StreamTranslator:
    """Drive the read loop for one response and yield events lazily."""

    def __init__(
        self,
        resolver: ToolNameResolver | None = None,
        encoder: ToolXmlEncoder | None = None,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self._resolver = resolver or ToolNameResolver()
        self._encoder = encoder or ToolXmlEncoder()
        self._sink = sink or NullSink()
        self._decoder = ChunkDecoder()
        self._lines = LineBuffer()
        self._used = False
        self.state = StreamState.IDLE

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def translate_response(
        self, response: httpx.Response,
    ) -> AsyncIterator[StreamEvent]:
        """Translate an ``httpx`` streaming response.

        A non-success status is reported with the response body and ends
        the stream without events.
        """
        self._claim()
        if not response.is_success:
            self.state = StreamState.FAILED
            body = await self._read_error_body(response)
            self._sink.record(Diagnostic(
                "http_error",
                f"HTTP {response.status_code}",
                {"status": response.status_code, "body": body},
            ))
            return
        self._sink.record(Diagnostic(
            "response_received", f"HTTP {response.status_code}",
        ))
        async for event in self._run(response.aiter_bytes()):
            yield event

    async def translate(
        self, fragments: AsyncIterable[bytes | str],
    ) -> AsyncIterator[StreamEvent]:
        """Translate raw fragments (bytes or text) as they arrive."""
        self._claim()
        async for event in self._run(fragments):
            yield event

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _run(
        self, fragments: AsyncIterable[bytes | str],
    ) -> AsyncIterator[StreamEvent]:
        self.state = StreamState.STREAMING
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            async for fragment in fragments:
                if isinstance(fragment, bytes):
                    fragment = text_decoder.decode(fragment)
                else:
                    # Bytes held back for a split character belong before this text
                    fragment = text_decoder.decode(b"", final=True) + fragment
                for line in self._lines.append(fragment):
                    for event in self._handle_line(line):
                        yield event
                    if self.state is StreamState.DONE:
                        return
        except Exception:
            self.state = StreamState.FAILED
            raise

        # Natural end of stream: whatever is left is the final line
        for line in self._lines.append(text_decoder.decode(b"", final=True)):
            for event in self._handle_line(line):
                yield event
            if self.state is StreamState.DONE:
                return
        tail = self._lines.flush()
        if tail is not None:
            for event in self._handle_line(tail):
                yield event
        if self.state is StreamState.STREAMING:
            self.state = StreamState.DONE
            self._sink.record(Diagnostic("stream_done", "stream ended without done marker"))

    def _handle_line(self, line: str) -> Iterator[StreamEvent]:
        if not line.strip():
            return
        result = self._decoder.decode(line)
        if isinstance(result, DecodeError):
            self._sink.record(Diagnostic(
                "decode_error", result.message, {"line": result.line},
            ))
            return
        yield from self._events_for(result)

    def _events_for(self, chunk: Chunk) -> Iterator[StreamEvent]:
        if chunk.thinking:
            yield ReasoningEvent(chunk.thinking)
        if chunk.content:
            yield TextEvent(chunk.content)
        if chunk.skipped_tool_calls:
            self._sink.record(Diagnostic(
                "decode_error",
                f"skipped {chunk.skipped_tool_calls} malformed tool call(s)",
                {"line": chunk.raw},
            ))
        for call in chunk.tool_calls:
            resolved = self._resolver.resolve(call.name)
            if resolved.is_unknown:
                self._sink.record(Diagnostic(
                    "unknown_tool", f"unsupported tool {call.name!r}",
                    {"arguments": call.arguments},
                ))
            yield TextEvent(self._encoder.encode(resolved, call.arguments))
        if chunk.done:
            self.state = StreamState.DONE
            self._sink.record(Diagnostic("stream_done", "done marker received"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _claim(self) -> None:
        if self._used:
            raise RuntimeError("StreamTranslator instances are single-use")
        self._used = True

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> str:
        try:
            return (await response.aread()).decode(errors="replace")
        except httpx.HTTPError as e:
            _logger.debug("Could not read error body: %s", e)
            return ""
