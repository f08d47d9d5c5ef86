"""Diagnostic sinks for the stream translator and provider handler.

The core never prints or logs directly from the read loop.  Instead it
reports :class:`Diagnostic` records to an injected sink.  ``NullSink`` is
the default; ``LoggingSink`` forwards records to the ``logging`` module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

_logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """A single diagnostic record.

    ``kind`` is one of ``request_sent``, ``response_received``,
    ``decode_error``, ``unknown_tool``, ``http_error``, ``api_error``,
    ``stream_done`` or ``retry``.
    """

    kind: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class DiagnosticSink(Protocol):
    """Anything that accepts diagnostic records."""

    def record(self, diagnostic: Diagnostic) -> None:
        ...


class NullSink:
    """Discards everything."""

    def record(self, diagnostic: Diagnostic) -> None:
        return None


# Kinds that deserve more than debug level
_LEVELS: dict[str, int] = {
    "decode_error": logging.WARNING,
    "unknown_tool": logging.WARNING,
    "retry": logging.WARNING,
    "http_error": logging.ERROR,
    "api_error": logging.ERROR,
}


class LoggingSink:
    """Forward diagnostics to a ``logging.Logger``."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def record(self, diagnostic: Diagnostic) -> None:
        level = _LEVELS.get(diagnostic.kind, logging.DEBUG)
        if diagnostic.data:
            self._logger.log(
                level, "[%s] %s %s",
                diagnostic.kind, diagnostic.message, diagnostic.data,
            )
        else:
            self._logger.log(level, "[%s] %s", diagnostic.kind, diagnostic.message)
