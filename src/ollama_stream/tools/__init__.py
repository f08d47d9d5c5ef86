"""Tool-name resolution and XML tool-invocation encoding."""

from ollama_stream.tools.names import SUPPORTED_TOOLS, ToolNameResolver
from ollama_stream.tools.xml_encoder import ToolXmlEncoder

__all__ = ["SUPPORTED_TOOLS", "ToolNameResolver", "ToolXmlEncoder"]
