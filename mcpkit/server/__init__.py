"""
MCP server package.

The Server owns the tool, resource and prompt registries and connects them to
a transport through the request handler.
"""

from mcpkit.server.handler import MCPRequestHandler
from mcpkit.server.server import Server, ServerOptions

__all__ = [
    "MCPRequestHandler",
    "Server",
    "ServerOptions",
]
