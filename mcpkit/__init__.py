"""
mcpkit - Model Context Protocol server core

A Python implementation of the server side of the Model Context Protocol (MCP),
exposing tools, resources and prompts to AI clients over JSON-RPC 2.0.
"""

__version__ = "0.2.0"
__license__ = "MIT"

from typing import List


# Version information
def get_version() -> str:
    """Return the current version of the package."""
    return __version__


__all__: List[str] = [
    "get_version",
]
