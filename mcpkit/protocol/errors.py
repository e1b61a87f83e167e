"""
Typed protocol errors.

Each error class carries the JSON-RPC error code it maps to, so anything that
raises one of these can be answered with a matching error response.
"""

from typing import Optional

from mcpkit.protocol.base import Error, ErrorCode


class MCPError(Exception):
    """Base class for errors that map onto a JSON-RPC error response."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        """
        Initialize an MCP error.

        Args:
            message: Error message
            details: Optional details string sent as the error's data
            code: Override for the class error code
        """
        self.message = message
        self.details = details
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_error(self) -> Error:
        """
        Convert to an Error model.

        Returns:
            Error object
        """
        return Error(code=int(self.code), message=self.message, data=self.details)


class ParseError(MCPError):
    """Malformed JSON at the transport boundary."""

    code = ErrorCode.PARSE_ERROR


class InvalidRequestError(MCPError):
    """Envelope failed structural validation, or the server is not initialized."""

    code = ErrorCode.INVALID_REQUEST


class MethodNotFoundError(MCPError):
    """Unknown method."""

    code = ErrorCode.METHOD_NOT_FOUND


class InvalidParamsError(MCPError):
    """Call parameters missing or malformed."""

    code = ErrorCode.INVALID_PARAMS


class InternalError(MCPError):
    """Handler failure or structurally invalid handler output."""

    code = ErrorCode.INTERNAL_ERROR


class NotFoundError(MethodNotFoundError):
    """A tool, resource or prompt lookup found nothing."""


class AlreadyExistsError(InvalidRequestError):
    """A registration reused an existing key."""


class InvalidDefinitionError(InvalidParamsError):
    """A registration was missing a required part."""
