"""
Tool registry for MCP.

This module provides the registry that owns the server's tools. Registration
and lookup are thread-safe so tools can be added while the server is running.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from mcpkit.protocol.errors import AlreadyExistsError, InvalidDefinitionError, NotFoundError
from mcpkit.schema import SchemaDefinitionError, SchemaLike, ensure_schema
from mcpkit.tools.base import Tool, ToolHandler

logger = structlog.get_logger(__name__)

ChangeCallback = Callable[[str], None]


class ToolRegistry:
    """
    Registry of tools keyed by name.

    Tools are listed in registration order. The optional change callback is
    called with the tool name after each successful registration.
    """

    def __init__(self, on_change: Optional[ChangeCallback] = None) -> None:
        """
        Initialize the tool registry.

        Args:
            on_change: Called with a tool name whenever a tool is added
        """
        self._tools: Dict[str, Tool] = {}
        self._lock = threading.RLock()
        self._on_change = on_change

    def register(
        self,
        name: str,
        description: str,
        schema: Optional[SchemaLike],
        handler: Optional[ToolHandler],
    ) -> Tool:
        """
        Register a tool.

        Args:
            name: Unique tool name
            description: Description shown to clients
            schema: Input schema, or a builder for one
            handler: Callable receiving the validated arguments

        Returns:
            The registered tool

        Raises:
            InvalidDefinitionError: If a part of the definition is missing
            AlreadyExistsError: If a tool with the same name exists
        """
        if not name:
            raise InvalidDefinitionError("Tool name cannot be empty")
        if not description:
            raise InvalidDefinitionError(f"Tool description cannot be empty: {name}")
        if schema is None:
            raise InvalidDefinitionError(f"Tool schema cannot be empty: {name}")
        if handler is None or not callable(handler):
            raise InvalidDefinitionError(f"Tool handler must be callable: {name}")

        try:
            input_schema = ensure_schema(schema)
        except SchemaDefinitionError as e:
            raise InvalidDefinitionError(f"Invalid schema for tool {name}: {e}")

        tool = Tool(name, description, input_schema, handler)
        with self._lock:
            if name in self._tools:
                raise AlreadyExistsError(f"Tool already exists: {name}")
            self._tools[name] = tool

        logger.debug("Tool registered", tool=name)
        if self._on_change is not None:
            self._on_change(name)
        return tool

    def tool(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        schema: Optional[SchemaLike] = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator registering a function as a tool.

        The function name and docstring are used when no name or description
        is given.

        Example:

            @registry.tool(
                description="Upper-case some text",
                schema=SchemaBuilder.object().add_property("text", SchemaBuilder.string()),
            )
            def shout(arguments):
                return arguments["text"].upper()
        """

        def decorator(func: ToolHandler) -> ToolHandler:
            self.register(
                name or func.__name__,
                description or (func.__doc__ or "").strip(),
                schema,
                func,
            )
            return func

        return decorator

    def get(self, name: str) -> Tool:
        """
        Get a tool by name.

        Raises:
            NotFoundError: If no tool has that name
        """
        with self._lock:
            tool = self._tools.get(name)
        if tool is None:
            raise NotFoundError(f"Tool not found: {name}")
        return tool

    def list(self) -> List[Dict[str, Any]]:
        """
        List all tools in registration order.

        Returns:
            List of tools/list entries
        """
        with self._lock:
            tools = list(self._tools.values())
        return [tool.to_dict() for tool in tools]

    async def execute(self, tool: Union[Tool, str], arguments: Any) -> Dict[str, Any]:
        """
        Execute a tool.

        Args:
            tool: Tool or tool name
            arguments: Decoded call arguments

        Returns:
            Tool result document; failures are reported with ``isError``

        Raises:
            NotFoundError: If a tool name is given and not registered
        """
        if isinstance(tool, str):
            tool = self.get(tool)
        return await tool.execute(arguments)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._tools
