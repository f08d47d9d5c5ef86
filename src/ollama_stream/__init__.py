"""Translate Ollama NDJSON chat streams into agent events and XML tool calls."""

from ollama_stream.errors import OllamaStreamError, RequestTimeoutError
from ollama_stream.llm.client import OllamaHandler
from ollama_stream.types import EventType, ReasoningEvent, StreamEvent, TextEvent

__version__ = "0.1.0"

__all__ = [
    "EventType",
    "OllamaHandler",
    "OllamaStreamError",
    "ReasoningEvent",
    "RequestTimeoutError",
    "StreamEvent",
    "TextEvent",
]
