"""Reassemble newline-delimited lines from arbitrary read fragments."""

from __future__ import annotations


class LineBuffer:
    """Hold back the unterminated tail between reads.

    After every :meth:`append` the buffer contains at most one partial
    line.  Blank lines are returned as-is; filtering them is up to the
    caller.
    """

    def __init__(self) -> None:
        self._tail = ""

    def append(self, fragment: str) -> list[str]:
        """Add *fragment* and return every line it completed."""
        parts = (self._tail + fragment).split("\n")
        self._tail = parts.pop()
        return [p[:-1] if p.endswith("\r") else p for p in parts]

    def flush(self) -> str | None:
        """Return the held-back tail as a final line, if it has content."""
        tail, self._tail = self._tail, ""
        if tail.endswith("\r"):
            tail = tail[:-1]
        return tail if tail.strip() else None

    @property
    def pending(self) -> str:
        return self._tail
