"""Shared data types for ollama-stream."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


# ---------------------------------------------------------------------------
# Wire types
# ---------------------------------------------------------------------------

@dataclass
class RawToolCall:
    """A function call as the provider sent it, before name resolution."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Chunk:
    """One decoded NDJSON line.

    Every field is an independent signal: a single chunk may carry
    thinking, content, tool calls and the ``done`` marker at once.
    """

    thinking: str | None = None
    content: str | None = None
    tool_calls: list[RawToolCall] = field(default_factory=list)
    done: bool = False
    raw: dict[str, Any] = field(default_factory=dict)
    skipped_tool_calls: int = 0


@dataclass
class DecodeError:
    """A line that could not be decoded into a :class:`Chunk`."""

    line: str
    message: str


# ---------------------------------------------------------------------------
# Tool names
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedToolName:
    """Result of mapping a provider tool name onto the supported vocabulary.

    ``name`` is ``None`` when the original could not be resolved.
    """

    name: str | None
    original: str

    @property
    def is_unknown(self) -> bool:
        return self.name is None


# ---------------------------------------------------------------------------
# Outbound events
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Kinds of events emitted to the agent loop."""

    REASONING = "reasoning"
    TEXT = "text"


@dataclass(frozen=True)
class ReasoningEvent:
    """Model "thinking" text."""

    reasoning: str
    type: EventType = field(default=EventType.REASONING, init=False)

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "reasoning": self.reasoning}


@dataclass(frozen=True)
class TextEvent:
    """Answer text, including tool calls rendered as XML."""

    text: str
    type: EventType = field(default=EventType.TEXT, init=False)

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "text": self.text}


StreamEvent = Union[ReasoningEvent, TextEvent]


# ---------------------------------------------------------------------------
# Model metadata
# ---------------------------------------------------------------------------

@dataclass
class ModelInfo:
    """Planning metadata for the active model.

    Defaults follow the usual OpenAI-compatible assumptions; only
    ``context_window`` is taken from the provider configuration.
    """

    max_tokens: int = -1
    context_window: int = 128_000
    supports_images: bool = True
    supports_prompt_cache: bool = False
    input_price: float = 0
    output_price: float = 0
