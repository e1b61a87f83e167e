"""
MCP Protocol Package

This package provides the protocol codec for the Model Context Protocol (MCP):
JSON-RPC 2.0 envelope models, error codes and typed errors, MCP method
definitions, and validation utilities.
"""

from mcpkit.protocol.base import (
    JSONRPC_VERSION,
    PROTOCOL_VERSION,
    Error,
    ErrorCode,
    Notification,
    Request,
    RequestId,
    Response,
)
from mcpkit.protocol.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidDefinitionError,
    InvalidParamsError,
    InvalidRequestError,
    MCPError,
    MethodNotFoundError,
    NotFoundError,
    ParseError,
)
from mcpkit.protocol.methods import (
    InitializeResult,
    ListChangedCapability,
    MCPMethod,
    PromptsGetParams,
    ResourcesCapability,
    ResourcesReadParams,
    ServerCapabilities,
    ServerInfo,
    ToolCallParams,
)
from mcpkit.protocol.validation import (
    create_error_response,
    create_notification,
    create_result_response,
    extract_request_id,
    is_valid_id,
    parse_message,
    parse_params,
    parse_request,
    serialize_message,
)

__all__ = [
    # Base types
    "JSONRPC_VERSION",
    "PROTOCOL_VERSION",
    "Error",
    "ErrorCode",
    "Notification",
    "Request",
    "RequestId",
    "Response",
    # Errors
    "AlreadyExistsError",
    "InternalError",
    "InvalidDefinitionError",
    "InvalidParamsError",
    "InvalidRequestError",
    "MCPError",
    "MethodNotFoundError",
    "NotFoundError",
    "ParseError",
    # Methods
    "InitializeResult",
    "ListChangedCapability",
    "MCPMethod",
    "PromptsGetParams",
    "ResourcesCapability",
    "ResourcesReadParams",
    "ServerCapabilities",
    "ServerInfo",
    "ToolCallParams",
    # Validation utilities
    "create_error_response",
    "create_notification",
    "create_result_response",
    "extract_request_id",
    "is_valid_id",
    "parse_message",
    "parse_params",
    "parse_request",
    "serialize_message",
]
