"""
Transport layer abstractions for MCP.

This module defines the base Transport interface that all transport
implementations conform to. A transport delivers decoded inbound messages to
a handler, sends the handler's responses back, and lets the server push
notifications to the client at any time.
"""

import abc
import enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field

MessageHandler = Callable[[Any], Awaitable[Optional[Dict[str, Any]]]]


class TransportType(str, enum.Enum):
    """Enumeration of supported transport types."""

    STDIO = "stdio"
    SSE = "sse"


class TransportInfo(BaseModel):
    """Information about a transport implementation."""

    type: TransportType = Field(..., description="Type of transport")
    description: str = Field("", description="Where the transport is reachable")


class Transport(abc.ABC):
    """
    Abstract base class for MCP transports.

    A transport is responsible for receiving MCP messages and sending
    responses and notifications over a specific communication channel.
    """

    @property
    @abc.abstractmethod
    def info(self) -> TransportInfo:
        """
        Get information about the transport.

        Returns:
            TransportInfo object describing the transport
        """
        ...

    @abc.abstractmethod
    async def listen(self, handler: MessageHandler) -> None:
        """
        Receive messages until the transport is closed.

        Each decoded message is passed to the handler; a non-None return value
        is sent back as the response.

        Args:
            handler: Coroutine function processing one decoded message

        Raises:
            TransportError: If the transport fails to start listening
        """
        ...

    @abc.abstractmethod
    async def send(self, message: Dict[str, Any]) -> None:
        """
        Send a message document over the transport.

        Args:
            message: JSON-RPC response or notification document

        Raises:
            TransportError: If the message cannot be sent
        """
        ...

    @abc.abstractmethod
    async def close(self) -> None:
        """
        Close the transport and release resources.

        Raises:
            TransportError: If the transport fails to close
        """
        ...


class TransportError(Exception):
    """Exception raised for transport-related errors."""

    def __init__(self, message: str, data: Optional[Any] = None) -> None:
        """
        Initialize a transport error.

        Args:
            message: Error message
            data: Additional error data
        """
        self.message = message
        self.data = data
        super().__init__(message)
