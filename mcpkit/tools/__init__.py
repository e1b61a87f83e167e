"""
MCP tools package.

Tools are named, schema-validated callables exposed to clients.
"""

from mcpkit.tools.base import Tool, ToolHandler, error_result, text_content, wrap_result
from mcpkit.tools.registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolHandler",
    "ToolRegistry",
    "error_result",
    "text_content",
    "wrap_result",
]
