"""Decode one NDJSON line into a :class:`~ollama_stream.types.Chunk`."""

from __future__ import annotations

import json
from typing import Any

from ollama_stream.types import Chunk, DecodeError, RawToolCall


def _coerce_arguments(args: Any) -> dict[str, Any]:
    """Normalize a tool call's ``arguments`` into a mapping.

    Some models emit the arguments as a JSON string (OpenAI style) or as
    a bare scalar.  Strings that decode to an object are used as the
    object, ``null`` becomes empty, anything else is kept under ``input``.
    """
    if args is None:
        return {}
    if isinstance(args, dict):
        return args
    if isinstance(args, str):
        if not args.strip():
            return {}
        try:
            parsed = json.loads(args)
        except json.JSONDecodeError:
            return {"input": args}
        if isinstance(parsed, dict):
            return parsed
    return {"input": args}


def _parse_tool_call(entry: Any) -> RawToolCall | None:
    if not isinstance(entry, dict):
        return None
    func = entry.get("function")
    if not isinstance(func, dict):
        return None
    name = func.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return RawToolCall(
        name=name.strip(),
        arguments=_coerce_arguments(func.get("arguments")),
    )


class ChunkDecoder:
    """Parse lines into chunks without ever raising.

    Fields of the wrong type are dropped one at a time so that, for
    example, a garbled ``thinking`` value does not hide the ``done``
    marker on the same line.
    """

    def decode(self, line: str) -> Chunk | DecodeError:
        try:
            data = json.loads(line)
        except (json.JSONDecodeError, ValueError) as e:
            return DecodeError(line=line, message=str(e))

        if not isinstance(data, dict):
            return DecodeError(
                line=line,
                message=f"expected a JSON object, got {type(data).__name__}",
            )

        msg = data.get("message")
        if not isinstance(msg, dict):
            msg = {}

        thinking = msg.get("thinking")
        content = msg.get("content")

        tool_calls: list[RawToolCall] = []
        skipped = 0
        raw_calls = msg.get("tool_calls")
        if isinstance(raw_calls, list):
            for entry in raw_calls:
                call = _parse_tool_call(entry)
                if call is None:
                    skipped += 1
                else:
                    tool_calls.append(call)

        return Chunk(
            thinking=thinking if isinstance(thinking, str) else None,
            content=content if isinstance(content, str) else None,
            tool_calls=tool_calls,
            done=data.get("done") is True,
            raw=data,
            skipped_tool_calls=skipped,
        )
