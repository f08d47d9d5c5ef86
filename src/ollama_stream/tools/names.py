"""Map provider-specific tool names onto the supported vocabulary."""

from __future__ import annotations

import logging

from ollama_stream.types import ResolvedToolName

_logger = logging.getLogger(__name__)

# Tools the downstream agent parser understands
SUPPORTED_TOOLS: frozenset[str] = frozenset({
    "execute_command",
    "read_file",
    "write_to_file",
    "replace_in_file",
    "search_files",
    "list_files",
    "list_code_definition_names",
    "browser_action",
    "use_mcp_tool",
    "access_mcp_resource",
    "ask_followup_question",
    "attempt_completion",
    "new_task",
    "plan_mode_respond",
    "load_mcp_documentation",
})

# Namespaces that harmony-style models prefix their built-in tools with
_NAMESPACES = ("repo_browser", "functions", "container")

_NAMESPACED_TARGETS: dict[str, str] = {
    "open_file": "read_file",
    "read_file": "read_file",
    "print_tree": "list_files",
    "search_files": "search_files",
    "list_code_definition_names": "list_code_definition_names",
}

DEFAULT_ALIASES: dict[str, str] = {
    f"{ns}.{suffix}": target
    for ns in _NAMESPACES
    for suffix, target in _NAMESPACED_TARGETS.items()
}


class ToolNameResolver:
    """Resolve tool names with a static alias table.

    Parameters
    ----------
    aliases:
        Extra alias entries layered over :data:`DEFAULT_ALIASES`.  Every
        target must be a supported tool name.
    """

    def __init__(self, aliases: dict[str, str] | None = None) -> None:
        table = dict(DEFAULT_ALIASES)
        if aliases:
            bad = sorted(t for t in aliases.values() if t not in SUPPORTED_TOOLS)
            if bad:
                raise ValueError(f"Alias targets are not supported tools: {bad}")
            table.update(aliases)
        self._aliases = table

    def resolve(self, raw_name: str) -> ResolvedToolName:
        if raw_name in SUPPORTED_TOOLS:
            return ResolvedToolName(name=raw_name, original=raw_name)
        target = self._aliases.get(raw_name)
        if target is not None:
            _logger.debug("Resolved tool alias %s -> %s", raw_name, target)
            return ResolvedToolName(name=target, original=raw_name)
        return ResolvedToolName(name=None, original=raw_name)

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)
