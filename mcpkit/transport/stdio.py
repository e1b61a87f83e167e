"""
Stdio transport implementation for MCP.

This module provides a transport that exchanges line-delimited JSON-RPC
messages over standard input/output, the usual way for a host application to
run an MCP server as a subprocess.
"""

import asyncio
import sys
import threading
from typing import Any, Dict, Optional, TextIO

import structlog

from mcpkit.protocol import ParseError, create_error_response, parse_message, serialize_message
from mcpkit.transport.base import (
    MessageHandler,
    Transport,
    TransportError,
    TransportInfo,
    TransportType,
)

logger = structlog.get_logger(__name__)


class StdioTransport(Transport):
    """
    Transport implementation that communicates over stdin/stdout.

    Each line read from the input stream is one JSON-RPC message, and each
    message written to the output stream is one line. Writes are serialized
    with a lock, so notifications sent from other threads never interleave
    with responses.
    """

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        """
        Initialize the stdio transport.

        Args:
            input_stream: Input stream to read from (defaults to sys.stdin)
            output_stream: Output stream to write to (defaults to sys.stdout)
        """
        self._input = input_stream or sys.stdin
        self._output = output_stream or sys.stdout
        self._write_lock = threading.Lock()
        self._running = False
        self._handler: Optional[MessageHandler] = None
        self._lines: Optional["asyncio.Queue[Optional[str]]"] = None

    @property
    def info(self) -> TransportInfo:
        """Get information about the transport."""
        return TransportInfo(type=TransportType.STDIO, description="stdin/stdout")

    async def listen(self, handler: MessageHandler) -> None:
        """
        Read and handle messages until end of input or close().

        Args:
            handler: Coroutine function processing one decoded message

        Raises:
            TransportError: If the transport is already running
        """
        if self._running:
            raise TransportError("Stdio transport is already running")

        self._running = True
        self._handler = handler
        self._lines = asyncio.Queue()

        # Blocking reads happen on a daemon thread so an idle stdin never
        # keeps the process alive
        loop = asyncio.get_running_loop()
        reader = threading.Thread(
            target=self._read_lines,
            args=(loop, self._lines),
            name="mcpkit-stdio-reader",
            daemon=True,
        )
        reader.start()
        logger.info("Stdio transport listening")

        try:
            while self._running:
                line = await self._lines.get()
                if line is None:
                    # EOF reached
                    break
                await self._process_line(line)
        finally:
            self._running = False
            logger.info("Stdio transport stopped")

    def _read_lines(
        self, loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[Optional[str]]"
    ) -> None:
        try:
            for line in iter(self._input.readline, ""):
                loop.call_soon_threadsafe(lines.put_nowait, line)
        finally:
            if not loop.is_closed():
                loop.call_soon_threadsafe(lines.put_nowait, None)

    async def _process_line(self, line: str) -> None:
        """
        Process one input line as a JSON-RPC message.

        Undecodable lines are answered with a parse error addressed to a
        null id.

        Args:
            line: Raw input line
        """
        if self._handler is None:
            raise TransportError("No message handler set")

        line = line.strip()
        if not line:
            # Skip empty lines
            return

        try:
            message = parse_message(line)
        except ParseError as e:
            logger.warning("Received undecodable message", error=e.message)
            response: Optional[Dict[str, Any]] = create_error_response(None, e).to_dict()
        else:
            response = await self._handler(message)

        if response is None:
            return

        try:
            await self.send(response)
        except TransportError as e:
            # One unsendable response must not end the session
            logger.error("Failed to send response", error=str(e), response_id=response.get("id"))

    async def send(self, message: Dict[str, Any]) -> None:
        """
        Write a message to the output stream as a single line.

        Args:
            message: Message document to send

        Raises:
            TransportError: If the message cannot be sent
        """
        try:
            data = serialize_message(message)
            with self._write_lock:
                self._output.write(data + "\n")
                self._output.flush()
        except (OSError, TypeError, ValueError) as e:
            raise TransportError(f"Error sending message: {e}")

    async def close(self) -> None:
        """Stop reading; the input stream itself is left open."""
        self._running = False
        if self._lines is not None:
            self._lines.put_nowait(None)
