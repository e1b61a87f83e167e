"""
Base JSON-RPC 2.0 protocol models for MCP.

This module defines the envelope types exchanged with clients, implementing
the JSON-RPC 2.0 specification with Pydantic models.
"""

from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

RequestId = Union[str, int]


class ErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class Error(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Optional[Any] = Field(None, description="Additional error details")

    def __str__(self) -> str:
        """String representation of the error."""
        if self.data:
            return f"code: {self.code}, message: {self.message}, data: {self.data}"
        return f"code: {self.code}, message: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Request(BaseModel):
    """
    JSON-RPC 2.0 request.

    A request without an id (or with a null id) is a notification and never
    receives a response.
    """

    jsonrpc: Literal["2.0"] = Field(JSONRPC_VERSION, description="JSON-RPC version")
    id: Optional[RequestId] = Field(None, description="Request ID")
    method: str = Field(..., description="Method name")
    params: Optional[Union[Dict[str, Any], List[Any]]] = Field(
        None, description="Method parameters"
    )

    @property
    def is_notification(self) -> bool:
        return self.id is None


class Response(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = Field(JSONRPC_VERSION, description="JSON-RPC version")
    id: Optional[RequestId] = Field(..., description="Request ID")
    result: Optional[Any] = Field(None, description="Result data")
    error: Optional[Error] = Field(None, description="Error information")

    @model_validator(mode="after")
    def validate_result_or_error(self) -> "Response":
        """Validate that response has either result or error, not both."""
        if self.result is not None and self.error is not None:
            raise ValueError("Response cannot have both result and error")
        if self.result is None and self.error is None:
            raise ValueError("Response must have either result or error")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a wire document.

        The id is always present, even when null, as JSON-RPC requires for
        responses to requests whose id could not be determined.
        """
        document: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            document["error"] = self.error.to_dict()
        else:
            document["result"] = self.result
        return document


class Notification(BaseModel):
    """JSON-RPC 2.0 notification sent from the server."""

    jsonrpc: Literal["2.0"] = Field(JSONRPC_VERSION, description="JSON-RPC version")
    method: str = Field(..., description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
