"""
MCP server implementation.

This module provides the main Server class that owns the tool, resource and
prompt registries, wires them to the request handler and a transport, and
manages the server lifecycle.

Registries may change while the server is running, from any thread. The
server turns those changes into notifications and delivers them on its event
loop.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Set

import structlog
from pydantic import BaseModel, Field

from mcpkit import __version__
from mcpkit.prompts.base import Prompt
from mcpkit.prompts.registry import PromptHandler, PromptRegistry
from mcpkit.protocol import (
    ListChangedCapability,
    MCPMethod,
    ResourcesCapability,
    ServerCapabilities,
    ServerInfo,
    create_notification,
)
from mcpkit.resources.registry import Notifier, ResourceRegistry
from mcpkit.schema import SchemaLike
from mcpkit.server.handler import MCPRequestHandler
from mcpkit.tools.base import Tool, ToolHandler
from mcpkit.tools.registry import ToolRegistry
from mcpkit.transport.base import Transport, TransportError


class ServerOptions(BaseModel):
    """Configuration options for the MCP server."""

    name: str = Field("mcpkit-server", description="Name of the server")
    version: str = Field(__version__, description="Version of the server")
    debug: bool = Field(
        False, description="Include tracebacks in internal error responses"
    )
    tools_list_changed: bool = Field(
        True, description="Advertise and send tools/list_changed notifications"
    )
    resources_list_changed: bool = Field(
        True, description="Advertise and send resource update notifications"
    )
    resources_subscribe: bool = Field(False, description="Advertise resource subscriptions")
    prompts_list_changed: bool = Field(
        True, description="Advertise and send prompts/list_changed notifications"
    )

    def capabilities(self) -> ServerCapabilities:
        """Build the capabilities document advertised during initialize."""
        return ServerCapabilities(
            tools=ListChangedCapability(list_changed=self.tools_list_changed),
            resources=ResourcesCapability(
                list_changed=self.resources_list_changed,
                subscribe=self.resources_subscribe,
            ),
            prompts=ListChangedCapability(list_changed=self.prompts_list_changed),
        )


class Server:
    """
    Main MCP server class.

    The server can be embedded without a transport: ``handle_message`` takes
    decoded messages and returns response documents. A transport is only
    needed for ``start()`` and for delivering notifications.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        options: Optional[ServerOptions] = None,
    ) -> None:
        """
        Initialize the server.

        Args:
            transport: Transport implementation to use
            options: Server configuration options
        """
        self.transport = transport
        self.options = options or ServerOptions()

        self.logger = structlog.get_logger("mcpkit.server")

        self.server_info = ServerInfo(name=self.options.name, version=self.options.version)
        self.server_capabilities = self.options.capabilities()

        self.tools = ToolRegistry(on_change=self._on_tool_added)
        self.resources = ResourceRegistry(on_change=self._on_resource_updated)
        self.prompts = PromptRegistry(on_change=self._on_prompt_added)

        self.handler = MCPRequestHandler(
            server_info=self.server_info,
            server_capabilities=self.server_capabilities,
            tools=self.tools,
            resources=self.resources,
            prompts=self.prompts,
            debug=self.options.debug,
        )

        # Server state
        self._running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._server_task: Optional[asyncio.Task] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._pending: Set[asyncio.Task] = set()

    def add_tool(
        self,
        name: str,
        description: str,
        schema: Optional[SchemaLike],
        handler: ToolHandler,
    ) -> Tool:
        """Register a tool. See ToolRegistry.register."""
        return self.tools.register(name, description, schema, handler)

    def add_resource(
        self,
        uri: str,
        name: str,
        description: str,
        reader: Callable[[], Any],
    ) -> Notifier:
        """Register a static resource and return its change notifier."""
        return self.resources.register_static(uri, name, description, reader)

    def add_dynamic_resource(
        self,
        prefix: str,
        name: str,
        description: str,
        reader: Callable[[str], Any],
    ) -> Notifier:
        """Register a prefix resource and return its change notifier."""
        return self.resources.register_dynamic(prefix, name, description, reader)

    def add_template(
        self,
        uri_template: str,
        name: str,
        description: str,
        mime_type: Optional[str],
        reader: Callable[[Dict[str, str]], Any],
    ) -> Notifier:
        """Register a URI template resource and return its change notifier."""
        return self.resources.register_template(uri_template, name, description, mime_type, reader)

    def add_prompt(self, prompt: Prompt, handler: PromptHandler) -> None:
        """Register a prompt. See PromptRegistry.register."""
        self.prompts.register(prompt, handler)

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded inbound message.

        Args:
            message: Decoded JSON value

        Returns:
            Response document, or None for notifications
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return await self.handler.handle_message(message)

    async def send_message(self, message: Dict[str, Any]) -> None:
        """
        Send a message document through the transport.

        Raises:
            TransportError: If no transport is configured or sending fails
        """
        if self.transport is None:
            raise TransportError("No transport configured")
        await self.transport.send(message)

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """
        Schedule a notification for delivery.

        Safe to call from any thread. When called on the server's event loop
        the notification is queued as a task; from another thread it is handed
        over to the server's loop.

        Args:
            method: Notification method
            params: Notification parameters
        """
        message = create_notification(method, params).to_dict()

        try:
            current: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            current = None

        target = self._loop if self._loop is not None and self._loop.is_running() else current
        if target is None:
            self.logger.debug("Dropping notification, no running event loop", method=method)
            return

        if target is current:
            task = target.create_task(self._deliver(message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run_coroutine_threadsafe(self._deliver(message), target)

    async def _deliver(self, message: Dict[str, Any]) -> None:
        try:
            await self.send_message(message)
        except Exception:
            self.logger.exception("Failed to deliver notification", method=message.get("method"))

    def _on_tool_added(self, name: str) -> None:
        if self.handler.initialized and self.server_capabilities.tools.list_changed:
            self.notify(MCPMethod.TOOLS_LIST_CHANGED.value)

    def _on_prompt_added(self, name: str) -> None:
        if self.handler.initialized and self.server_capabilities.prompts.list_changed:
            self.notify(MCPMethod.PROMPTS_LIST_CHANGED.value)

    def _on_resource_updated(self, uri: str) -> None:
        if self.handler.initialized and self.server_capabilities.resources.list_changed:
            self.notify(MCPMethod.RESOURCES_UPDATED.value, {"uri": uri})

    async def start(self) -> None:
        """
        Start the server.

        This method starts the transport in a background task and returns
        immediately.

        Raises:
            RuntimeError: If the server is already running or has no transport
        """
        if self._running:
            raise RuntimeError("Server is already running")
        if self.transport is None:
            raise RuntimeError("Server has no transport")

        self.logger.info(
            "Starting MCP server",
            server_name=self.server_info.name,
            server_version=self.server_info.version,
            transport_type=self.transport.info.type.value,
        )

        self._loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()
        self._running = True
        self._server_task = asyncio.create_task(self._run_server())

    async def _run_server(self) -> None:
        """
        Run the transport until it stops.

        This method is called by start() and runs in a separate task.
        """
        try:
            await self.transport.listen(self.handle_message)
        except asyncio.CancelledError:
            self.logger.info("Server task cancelled")
            raise
        except Exception as e:
            self.logger.error("Error in server loop", error=str(e))
        finally:
            self._running = False
            if self._shutdown_event is not None:
                self._shutdown_event.set()

    async def close(self, timeout: float = 5.0) -> None:
        """
        Stop the server and close the transport.

        Calling close() on a server that is not running does nothing.

        Args:
            timeout: Seconds to wait for the transport to stop before
                cancelling it
        """
        task = self._server_task
        if task is None:
            return

        self.logger.info("Stopping server")
        self._server_task = None

        try:
            await self.transport.close()
        except TransportError as e:
            self.logger.error("Error closing transport", error=e.message)

        if not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.warning("Timeout waiting for transport to stop, cancelling")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._running = False
        if self._shutdown_event is not None:
            self._shutdown_event.set()
        self.logger.info("Server stopped")

    async def serve(self) -> None:
        """Start the server and run until the transport stops."""
        await self.start()
        try:
            await self.wait_for_shutdown()
        finally:
            await self.close()

    @property
    def is_running(self) -> bool:
        """
        Check if the server is running.

        Returns:
            True if the server is running, False otherwise
        """
        return self._running

    async def wait_for_shutdown(self) -> None:
        """
        Wait for the server to shut down.

        Returns immediately if the server was never started.
        """
        if self._shutdown_event is None:
            return
        await self._shutdown_event.wait()
