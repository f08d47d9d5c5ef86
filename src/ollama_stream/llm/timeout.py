"""Deadline for the connect phase of a streaming request.

Only the initial request (up to response headers) is guarded.  The read
loop that follows is deliberately not subject to the deadline: a slow but
live stream keeps going until ``done``, a transport error, or its natural
end.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

import httpx

from ollama_stream.errors import RequestTimeoutError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 30_000


def is_timeout(error: BaseException) -> bool:
    """Whether *error* describes a timeout, whatever raised it."""
    if isinstance(error, (RequestTimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return True
    return "timed out" in str(error)


def normalize_timeout(error: BaseException, timeout_ms: int) -> BaseException:
    """Return a :class:`RequestTimeoutError` for timeouts, *error* otherwise."""
    if is_timeout(error):
        return RequestTimeoutError(timeout_ms)
    return error


async def guard(awaitable: Awaitable[T], timeout_ms: int = DEFAULT_TIMEOUT_MS) -> T:
    """Race *awaitable* against a deadline of *timeout_ms* milliseconds.

    Whichever settles first wins.  On timeout the pending request is
    cancelled and :class:`RequestTimeoutError` is raised.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout_ms / 1000)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        _logger.debug("Request deadline of %d ms exceeded", timeout_ms)
        raise RequestTimeoutError(timeout_ms) from e
