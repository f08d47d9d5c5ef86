"""NDJSON stream decoding and event translation."""

from ollama_stream.stream.decoder import ChunkDecoder
from ollama_stream.stream.line_buffer import LineBuffer
from ollama_stream.stream.translator import StreamState, StreamTranslator

__all__ = ["ChunkDecoder", "LineBuffer", "StreamState", "StreamTranslator"]
