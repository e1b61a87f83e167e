"""
Tool definitions for MCP.

A tool pairs a name and description with an input schema and a handler. Tool
execution never raises for bad input or handler failures: both are reported
to the client as a result with ``isError`` set, so the model calling the tool
can see what went wrong and retry.
"""

import inspect
import json
from typing import Any, Awaitable, Callable, Dict, Union

import structlog

from mcpkit.schema import BaseSchema, SchemaValidationError

logger = structlog.get_logger(__name__)

ToolHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


def text_content(text: str) -> Dict[str, Any]:
    """Build a text content item."""
    return {"type": "text", "text": text}


def error_result(message: str) -> Dict[str, Any]:
    """Build a tool result that reports a failure."""
    return {"content": [text_content(message)], "isError": True}


def is_content_envelope(result: Any) -> bool:
    """Check whether a handler already returned a formatted tool result."""
    return isinstance(result, dict) and ("content" in result or "_meta" in result)


def wrap_result(result: Any) -> Dict[str, Any]:
    """
    Convert a handler return value into a tool result.

    Formatted results pass through unchanged; anything else becomes a single
    text content item. Strings are used as they are, other values are encoded
    as JSON.
    """
    if is_content_envelope(result):
        return result
    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, default=str)
    return {"content": [text_content(text)]}


class Tool:
    """
    A named, schema-validated callable exposed to clients.

    Tools are created by the registry and not modified afterwards.
    """

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: BaseSchema,
        handler: ToolHandler,
    ) -> None:
        """
        Initialize a tool.

        Args:
            name: Unique tool name
            description: Description shown to clients
            input_schema: Schema the arguments must satisfy
            handler: Callable receiving the validated arguments
        """
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.handler = handler

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the tools/list entry format.

        Returns:
            Dictionary with name, description and inputSchema
        """
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema.to_json_schema(),
        }

    async def execute(self, arguments: Any) -> Dict[str, Any]:
        """
        Validate the arguments and run the handler.

        Args:
            arguments: Decoded arguments from the tools/call request

        Returns:
            Tool result document
        """
        try:
            self.input_schema.validate_value(arguments)
        except SchemaValidationError as e:
            logger.info("Tool arguments rejected", tool=self.name, error=str(e))
            return error_result(str(e))
        except Exception as e:
            logger.warning("Tool argument validation failed", tool=self.name, exc_info=True)
            return error_result(f"Invalid arguments: {e}")

        try:
            result = self.handler(arguments)

            # Handle coroutines
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("Tool execution failed", tool=self.name, error=str(e), exc_info=True)
            return error_result(str(e))

        return wrap_result(result)

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r})"
