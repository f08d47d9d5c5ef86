"""Retry wrapper for streaming operations.

``with_retry(operation, policy)`` takes a function returning an async
iterator and returns a function with the same signature that re-runs the
operation on failure.  Once an item has been yielded the failure is
propagated instead: replaying the request would duplicate events the
consumer already saw.

The 429/5xx status checks and ``Retry-After`` handling apply to
operations that raise ``httpx.HTTPStatusError``.  ``OllamaHandler`` never
does: a non-success status ends its stream quietly, so on that path those
branches are never reached.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, TypeVar

import httpx

from ollama_stream.diagnostics import Diagnostic, DiagnosticSink, NullSink
from ollama_stream.errors import RequestTimeoutError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# Status codes worth retrying when retry_all_errors is off
_RETRYABLE_STATUS = (429, 500, 502, 503, 504)


@dataclass
class RetryPolicy:
    """How many times to retry, how long to wait, and for which errors.

    Delay is exponential (``base_delay * 2 ** attempt``) capped at
    ``max_delay``.  A ``Retry-After`` header on an HTTP status error
    overrides it.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    retry_all_errors: bool = False
    retryable: tuple[type[BaseException], ...] = field(
        default_factory=lambda: (httpx.TransportError, RequestTimeoutError),
    )

    def should_retry(self, error: BaseException) -> bool:
        if self.retry_all_errors:
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in _RETRYABLE_STATUS
        return isinstance(error, self.retryable)

    def delay_for(self, attempt: int, error: BaseException | None = None) -> float:
        retry_after = _retry_after(error)
        if retry_after is not None:
            return retry_after
        return min(self.base_delay * (2 ** attempt), self.max_delay)


def _retry_after(error: BaseException | None) -> float | None:
    """Seconds to wait according to a ``Retry-After`` header, if any."""
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    raw = error.response.headers.get("retry-after")
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    # Large values are an absolute unix timestamp rather than a delay
    now = time.time()
    if value > now:
        return max(0.0, value - now)
    return max(0.0, value)


def with_retry(
    operation: Callable[..., AsyncIterator[T]],
    policy: RetryPolicy | None = None,
    sink: DiagnosticSink | None = None,
) -> Callable[..., AsyncIterator[T]]:
    """Wrap *operation* so failures before the first item are retried.

    Closing the returned iterator closes the running attempt as well.
    """
    policy = policy or RetryPolicy()
    sink = sink or NullSink()
    attempts = max(1, policy.max_attempts)

    @functools.wraps(operation)
    async def _wrapper(*args, **kwargs) -> AsyncIterator[T]:
        for attempt in range(attempts):
            yielded = False
            try:
                async with contextlib.aclosing(operation(*args, **kwargs)) as stream:
                    async for item in stream:
                        yielded = True
                        yield item
                return
            except Exception as e:
                if (
                    yielded
                    or attempt >= attempts - 1
                    or not policy.should_retry(e)
                ):
                    raise
                delay = policy.delay_for(attempt, e)
                sink.record(Diagnostic(
                    "retry",
                    f"attempt {attempt + 1}/{attempts} failed: {e}",
                    {"attempt": attempt + 1, "delay": delay},
                ))
                _logger.warning(
                    "Request failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt + 1, attempts, e, delay,
                )
                await asyncio.sleep(delay)

    return _wrapper
