"""
Request handler for MCP server.

This module provides the dispatcher that validates incoming JSON-RPC
envelopes, enforces the initialize handshake and routes each method to the
tool, resource or prompt registry. Every request with an id gets exactly one
response; notifications never get one, even when they fail.
"""

import traceback
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from mcpkit.prompts.registry import PromptRegistry
from mcpkit.protocol import (
    InitializeResult,
    InternalError,
    InvalidRequestError,
    MCPError,
    MCPMethod,
    MethodNotFoundError,
    PromptsGetParams,
    Request,
    ResourcesReadParams,
    Response,
    ServerCapabilities,
    ServerInfo,
    ToolCallParams,
    create_error_response,
    create_result_response,
    extract_request_id,
    parse_params,
    parse_request,
    serialize_message,
)
from mcpkit.resources.registry import ResourceRegistry
from mcpkit.tools.registry import ToolRegistry

logger = structlog.get_logger(__name__)

MethodHandler = Callable[[Any], Awaitable[Dict[str, Any]]]


class MCPRequestHandler:
    """
    Main request handler for MCP server.

    The handler starts uninitialized. Until an ``initialize`` request arrives,
    every other method is rejected with an invalid request error.
    """

    def __init__(
        self,
        server_info: ServerInfo,
        server_capabilities: ServerCapabilities,
        tools: ToolRegistry,
        resources: ResourceRegistry,
        prompts: PromptRegistry,
        debug: bool = False,
    ) -> None:
        """
        Initialize the request handler.

        Args:
            server_info: Name and version reported to clients
            server_capabilities: Capabilities advertised during initialize
            tools: Tool registry
            resources: Resource registry
            prompts: Prompt registry
            debug: Attach tracebacks to internal error responses
        """
        self.server_info = server_info
        self.server_capabilities = server_capabilities
        self.tools = tools
        self.resources = resources
        self.prompts = prompts
        self.debug = debug
        self._initialized = False

        # Map of method names to handler methods
        self._method_handlers: Dict[str, MethodHandler] = {
            MCPMethod.INITIALIZE: self._handle_initialize,
            MCPMethod.PING: self._handle_ping,
            MCPMethod.TOOLS_LIST: self._handle_tools_list,
            MCPMethod.TOOLS_CALL: self._handle_tools_call,
            MCPMethod.RESOURCES_LIST: self._handle_resources_list,
            MCPMethod.RESOURCES_TEMPLATES_LIST: self._handle_resources_templates_list,
            MCPMethod.RESOURCES_READ: self._handle_resources_read,
            MCPMethod.PROMPTS_LIST: self._handle_prompts_list,
            MCPMethod.PROMPTS_GET: self._handle_prompts_get,
        }

        # Map of notification methods to handler methods
        self._notification_handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {
            MCPMethod.INITIALIZED: self._handle_initialized_notification,
        }

    @property
    def initialized(self) -> bool:
        """Whether an initialize request has been handled."""
        return self._initialized

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded inbound message.

        Args:
            message: Decoded JSON value received by a transport

        Returns:
            Response document, or None for notifications
        """
        try:
            request = parse_request(message)
        except MCPError as e:
            logger.warning("Rejected malformed message", error=e.message)
            return create_error_response(extract_request_id(message), e).to_dict()

        if request.is_notification:
            await self.handle_notification(request)
            return None

        response = await self.handle_request(request)
        return response.to_dict()

    async def handle_request(self, request: Request) -> Response:
        """
        Handle a request that carries an id.

        Typed errors become error responses with their own code; any other
        exception becomes an internal error.

        Args:
            request: The request to handle

        Returns:
            Response to the request
        """
        try:
            if not self._initialized and request.method != MCPMethod.INITIALIZE:
                raise InvalidRequestError("Server not initialized")

            handler = self._method_handlers.get(request.method)
            if handler is None:
                raise MethodNotFoundError(f"Method not found: {request.method}")

            result = await handler(request.params)

            # Results must survive the trip through the transport
            serialize_message(result)
            return create_result_response(request.id, result)
        except MCPError as e:
            logger.info(
                "Request failed",
                method=request.method,
                request_id=request.id,
                code=int(e.code),
                error=e.message,
            )
            return create_error_response(request.id, e)
        except Exception as e:
            logger.exception(
                "Unexpected error handling request",
                method=request.method,
                request_id=request.id,
            )
            details = traceback.format_exc() if self.debug else None
            return create_error_response(
                request.id, InternalError(f"Internal error: {e}", details=details)
            )

    async def handle_notification(self, notification: Request) -> None:
        """
        Handle a notification.

        Unknown notifications are ignored. Failures are logged and never
        reported to the client.

        Args:
            notification: The notification to handle
        """
        handler = self._notification_handlers.get(notification.method)
        if handler is None:
            logger.debug("Ignoring notification", method=notification.method)
            return

        try:
            await handler(notification.params)
        except Exception:
            logger.exception("Error handling notification", method=notification.method)

    async def _handle_initialize(self, params: Any) -> Dict[str, Any]:
        client_info = params.get("clientInfo") if isinstance(params, dict) else None
        if not self._initialized:
            logger.info("Client initialized session", client_info=client_info)
        self._initialized = True

        result = InitializeResult(
            capabilities=self.server_capabilities,
            server_info=self.server_info,
        )
        return result.to_dict()

    async def _handle_initialized_notification(self, params: Any) -> None:
        logger.debug("Client reported initialized")

    async def _handle_ping(self, params: Any) -> Dict[str, Any]:
        return {}

    async def _handle_tools_list(self, params: Any) -> Dict[str, Any]:
        return {"tools": self.tools.list()}

    async def _handle_tools_call(self, params: Any) -> Dict[str, Any]:
        call = parse_params(params, ToolCallParams)
        tool = self.tools.get(call.name)
        return await self.tools.execute(tool, call.arguments)

    async def _handle_resources_list(self, params: Any) -> Dict[str, Any]:
        return {"resources": self.resources.list()}

    async def _handle_resources_templates_list(self, params: Any) -> Dict[str, Any]:
        return {"resourceTemplates": self.resources.list_templates()}

    async def _handle_resources_read(self, params: Any) -> Dict[str, Any]:
        read = parse_params(params, ResourcesReadParams)
        contents = await self.resources.read(read.uri)
        return {"contents": [contents.to_dict()]}

    async def _handle_prompts_list(self, params: Any) -> Dict[str, Any]:
        return {"prompts": self.prompts.list()}

    async def _handle_prompts_get(self, params: Any) -> Dict[str, Any]:
        get = parse_params(params, PromptsGetParams)
        return await self.prompts.get_content(get.name, params)
