"""
MCP Transport Package

This package provides the transport abstraction and its implementations:
line-delimited stdio and HTTP with Server-Sent Events.
"""

from mcpkit.transport.base import (
    MessageHandler,
    Transport,
    TransportError,
    TransportInfo,
    TransportType,
)
from mcpkit.transport.sse import SSETransport
from mcpkit.transport.stdio import StdioTransport

__all__ = [
    "MessageHandler",
    "SSETransport",
    "StdioTransport",
    "Transport",
    "TransportError",
    "TransportInfo",
    "TransportType",
]
