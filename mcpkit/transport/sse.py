"""
HTTP/SSE transport implementation for MCP.

This module provides a transport served by FastAPI and uvicorn:

- ``POST {prefix}/mcp`` handles one JSON-RPC message and returns the response
  (204 for notifications).
- ``GET {prefix}/events`` is a Server-Sent Events stream that receives every
  outbound message, including responses and server notifications.
- ``GET {prefix}/health`` reports the transport status.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional, Set

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sse_starlette.sse import EventSourceResponse
from starlette.responses import JSONResponse

from mcpkit.protocol import ParseError, create_error_response, parse_message
from mcpkit.transport.base import (
    MessageHandler,
    Transport,
    TransportError,
    TransportInfo,
    TransportType,
)

logger = structlog.get_logger(__name__)


class SSETransport(Transport):
    """
    Transport implementation that communicates over HTTP with SSE fan-out.

    The FastAPI application is created on construction, so it can be served
    by ``listen()`` or mounted and tested directly through ``app``.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        cors_origins: Optional[List[str]] = None,
        path_prefix: str = "",
    ) -> None:
        """
        Initialize the SSE transport.

        Args:
            host: Host to bind to
            port: Port to bind to
            cors_origins: List of allowed CORS origins
            path_prefix: Prefix for all routes
        """
        self._host = host
        self._port = port
        self._cors_origins = cors_origins or ["*"]
        self._path_prefix = path_prefix.rstrip("/")
        self._running = False
        self._handler: Optional[MessageHandler] = None
        self._server: Optional[uvicorn.Server] = None
        self._listeners: Set[asyncio.Queue] = set()
        self._app = self._create_app()

    @property
    def info(self) -> TransportInfo:
        """Get information about the transport."""
        return TransportInfo(
            type=TransportType.SSE,
            description=f"http://{self._host}:{self._port}{self._path_prefix}",
        )

    @property
    def app(self) -> FastAPI:
        """The FastAPI application serving the transport routes."""
        return self._app

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def set_handler(self, handler: MessageHandler) -> None:
        """Set the message handler without starting the HTTP server."""
        self._handler = handler

    def _create_app(self) -> FastAPI:
        """
        Create the FastAPI application.

        Returns:
            FastAPI application
        """
        app = FastAPI(
            title="MCP Server",
            description="Model Context Protocol server with SSE transport",
            docs_url=None,
            redoc_url=None,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.post(f"{self._path_prefix}/mcp")
        async def handle_mcp_message(request: Request):
            """Handle one JSON-RPC message."""
            if self._handler is None:
                raise TransportError("No message handler set")

            body = await request.body()
            try:
                message = parse_message(body.decode("utf-8", errors="replace"))
            except ParseError as e:
                logger.warning("Received undecodable message", error=e.message)
                error_response = create_error_response(None, e).to_dict()
                await self.send(error_response)
                return JSONResponse(content=error_response)

            response = await self._handler(message)
            if response is None:
                # No response for notifications
                return Response(status_code=204)

            await self.send(response)
            return JSONResponse(content=response)

        @app.get(f"{self._path_prefix}/events")
        async def stream_events():
            """Stream every outbound message to the client."""
            queue = self._subscribe()
            return EventSourceResponse(self._event_generator(queue))

        @app.get(f"{self._path_prefix}/health")
        async def health_check():
            """Report transport status."""
            return {
                "status": "ok",
                "transport": self.info.type.value,
                "listeners": self.listener_count,
            }

        return app

    def _subscribe(self) -> "asyncio.Queue[Optional[Dict[str, Any]]]":
        queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._listeners.add(queue)
        logger.debug("Event listener connected", listeners=len(self._listeners))
        return queue

    async def _event_generator(
        self, queue: "asyncio.Queue[Optional[Dict[str, Any]]]"
    ) -> AsyncIterator[Dict[str, str]]:
        """
        Generate SSE events from a listener queue.

        Args:
            queue: Queue receiving outbound messages; None ends the stream

        Yields:
            SSE event data
        """
        try:
            while True:
                message = await queue.get()
                if message is None:
                    break
                yield {"event": "message", "data": json.dumps(message)}
        finally:
            self._listeners.discard(queue)
            logger.debug("Event listener disconnected", listeners=len(self._listeners))

    async def listen(self, handler: MessageHandler) -> None:
        """
        Serve the HTTP application until close().

        Args:
            handler: Coroutine function processing one decoded message

        Raises:
            TransportError: If the server fails to start
        """
        if self._running:
            raise TransportError("SSE transport is already running")

        self._running = True
        self._handler = handler

        config = uvicorn.Config(
            app=self._app,
            host=self._host,
            port=self._port,
            log_config=None,
            loop="asyncio",
        )
        self._server = uvicorn.Server(config)
        logger.info("SSE transport listening", host=self._host, port=self._port)

        try:
            await self._server.serve()
        except (OSError, SystemExit) as e:
            raise TransportError(f"Error starting SSE transport: {e}")
        finally:
            self._running = False
            logger.info("SSE transport stopped")

    async def send(self, message: Dict[str, Any]) -> None:
        """
        Fan a message out to every connected event listener.

        Args:
            message: Message document to send
        """
        for queue in list(self._listeners):
            queue.put_nowait(message)

    async def close(self) -> None:
        """Disconnect event listeners and stop the HTTP server."""
        self._running = False

        for queue in list(self._listeners):
            queue.put_nowait(None)

        if self._server is not None:
            self._server.should_exit = True
