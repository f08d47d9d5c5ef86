"""Exceptions raised by ollama-stream."""

from __future__ import annotations


class OllamaStreamError(Exception):
    """Base class for errors raised by this package."""


class RequestTimeoutError(OllamaStreamError):
    """The initial request did not settle before its deadline."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Ollama request timed out after {timeout_ms // 1000} seconds"
        )
