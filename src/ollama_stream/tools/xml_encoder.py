"""Render resolved tool calls in the XML tool-invocation grammar.

Generic form::

    <tool_name>
    <key1>value1</key1>
    <key2>value2</key2>
    </tool_name>

Tools whose arguments carry multi-line bodies (file content, diff blocks)
have dedicated templates so the body lands as raw inner text.  Values are
never XML-escaped: the downstream parser reads inner text verbatim and
the diff delimiters below must survive byte for byte.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from ollama_stream.tools.names import SUPPORTED_TOOLS
from ollama_stream.types import ResolvedToolName

# SEARCH/REPLACE block delimiters used inside replace_in_file diffs
DIFF_SEARCH_START = "-------\n SEARCH"
DIFF_SEPARATOR = "======="
DIFF_REPLACE_END = "+++++++ REPLACE"

CLARIFICATION_TOOL = "ask_followup_question"

Encoder = Callable[[dict[str, Any]], str]


def to_text(value: Any) -> str:
    """Textual form of a JSON value inside an XML element."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def encode_generic(name: str, args: dict[str, Any]) -> str:
    lines = [f"<{name}>"]
    for key, value in args.items():
        lines.append(f"<{key}>{to_text(value)}</{key}>")
    lines.append(f"</{name}>")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Dedicated templates
# ---------------------------------------------------------------------------

def _write_to_file(args: dict[str, Any]) -> str:
    path = to_text(args.get("path", ""))
    content = to_text(args.get("content", ""))
    return f"<write_to_file>\n<path>{path}</path>\n\n{content}\n\n</write_to_file>"


def _replace_in_file(args: dict[str, Any]) -> str:
    path = to_text(args.get("path", ""))
    diff = to_text(args.get("diff", ""))
    return (
        f"<replace_in_file>\n<path>{path}</path>\n"
        f"<diff>\n{diff}\n</diff>\n</replace_in_file>"
    )


def _execute_command(args: dict[str, Any]) -> str:
    command = to_text(args.get("command", ""))
    approval = to_text(args.get("requires_approval", False))
    return (
        f"<execute_command>\n<command>{command}</command>\n"
        f"<requires_approval>{approval}</requires_approval>\n</execute_command>"
    )


def _use_mcp_tool(args: dict[str, Any]) -> str:
    server = to_text(args.get("server_name", ""))
    tool = to_text(args.get("tool_name", ""))
    raw = args.get("arguments", {})
    blob = raw if isinstance(raw, str) else json.dumps(raw, ensure_ascii=False)
    return (
        f"<use_mcp_tool>\n<server_name>{server}</server_name>\n"
        f"<tool_name>{tool}</tool_name>\n"
        f"<arguments>\n{blob}\n</arguments>\n</use_mcp_tool>"
    )


TEMPLATES: dict[str, Encoder] = {
    "write_to_file": _write_to_file,
    "replace_in_file": _replace_in_file,
    "execute_command": _execute_command,
    "use_mcp_tool": _use_mcp_tool,
}


def clarification(original_name: str) -> str:
    """Fallback invocation asking the operator to retry with a real tool."""
    supported = ", ".join(sorted(SUPPORTED_TOOLS))
    question = (
        f'The tool "{original_name}" is not supported. '
        f"Please retry the request using one of the supported tools: {supported}."
    )
    return encode_generic(CLARIFICATION_TOOL, {"question": question})


class ToolXmlEncoder:
    """Encode resolved tool calls, falling back to a clarification request."""

    def __init__(self, templates: dict[str, Encoder] | None = None) -> None:
        self._templates = dict(TEMPLATES if templates is None else templates)

    def encode(self, resolved: ResolvedToolName, args: dict[str, Any]) -> str:
        if resolved.is_unknown:
            return clarification(resolved.original)
        template = self._templates.get(resolved.name)
        if template is not None:
            return template(args)
        return encode_generic(resolved.name, args)
