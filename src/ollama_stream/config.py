"""Configuration for ollama-stream.

Config discovery (first match wins):
  1. explicit path (``--config`` flag)
  2. ``./ollama_stream.yaml``
  3. ``~/.config/ollama-stream/config.yaml``
  4. Built-in defaults
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ollama_stream.llm.retry import RetryPolicy

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_CONTEXT_WINDOW = 32768
DEFAULT_REQUEST_TIMEOUT_MS = 30_000


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class ProviderSpec:
    """Where to send requests and which model to ask."""

    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    model_id: str = ""
    num_ctx: int = DEFAULT_CONTEXT_WINDOW
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    # Force-enable thinking for models that support it.  Most
    # reasoning models return ``thinking`` without being asked.
    think: bool = False


@dataclass
class RetrySpec:
    """Retry settings for the whole streaming call."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    retry_all_errors: bool = True

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            retry_all_errors=self.retry_all_errors,
        )


@dataclass
class StreamConfig:
    """Top-level config."""

    provider: ProviderSpec = field(default_factory=ProviderSpec)
    retry: RetrySpec = field(default_factory=RetrySpec)
    # Extra tool-name aliases, e.g. {"my_ns.cat": "read_file"}
    tool_aliases: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./ollama_stream.yaml"),
    Path.home() / ".config" / "ollama-stream" / "config.yaml",
]


def _parse_int(value: Any, name: str, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        _logger.warning("Invalid %s %r — using %d", name, value, default)
        return default


def parse_num_ctx(value: Any) -> int:
    """Context size from config; non-numeric values fall back to the default."""
    return _parse_int(value, "num_ctx", DEFAULT_CONTEXT_WINDOW)


def parse_timeout_ms(value: Any) -> int:
    """Request timeout from config; missing or non-numeric values use the default."""
    if value is None or value == "":
        return DEFAULT_REQUEST_TIMEOUT_MS
    return _parse_int(value, "request_timeout_ms", DEFAULT_REQUEST_TIMEOUT_MS)


def _parse_provider(raw: dict[str, Any] | None) -> ProviderSpec:
    if not raw:
        return ProviderSpec()
    return ProviderSpec(
        base_url=raw.get("base_url") or DEFAULT_BASE_URL,
        api_key=raw.get("api_key", "") or "",
        model_id=raw.get("model_id", "") or "",
        num_ctx=parse_num_ctx(raw.get("num_ctx", DEFAULT_CONTEXT_WINDOW)),
        request_timeout_ms=parse_timeout_ms(raw.get("request_timeout_ms")),
        think=bool(raw.get("think", False)),
    )


def _parse_retry(raw: dict[str, Any] | None) -> RetrySpec:
    if not raw:
        return RetrySpec()
    base: dict[str, Any] = {}
    for k, v in raw.items():
        if v is not None and k in RetrySpec.__dataclass_fields__:
            base[k] = v
    return RetrySpec(**base)


def load_config(path: str | Path | None = None) -> StreamConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    StreamConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s — using defaults", path)
            return StreamConfig()
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found — using defaults")
        return StreamConfig()

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    aliases = raw.get("tool_aliases") or {}
    return StreamConfig(
        provider=_parse_provider(raw.get("provider")),
        retry=_parse_retry(raw.get("retry")),
        tool_aliases={str(k): str(v) for k, v in aliases.items()},
    )
