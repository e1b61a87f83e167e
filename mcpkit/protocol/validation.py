"""
Validation utilities for MCP protocol messages.

This module provides functions to decode JSON payloads, validate JSON-RPC
envelopes, validate method parameters and build response and notification
messages.
"""

import json
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from mcpkit.protocol.base import (
    JSONRPC_VERSION,
    Notification,
    Request,
    RequestId,
    Response,
)
from mcpkit.protocol.errors import InvalidParamsError, InvalidRequestError, MCPError, ParseError

T = TypeVar("T", bound=BaseModel)


def parse_message(data: str) -> Any:
    """
    Decode a JSON payload.

    Args:
        data: JSON text received from a transport

    Returns:
        Decoded JSON value

    Raises:
        ParseError: If the text is not valid JSON
    """
    try:
        return json.loads(data, parse_constant=_reject_constant)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Invalid JSON: {e}")


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are accepted by the json module but not JSON
    raise ParseError(f"Invalid JSON: unexpected token {name}")


def is_valid_id(value: Any) -> bool:
    """Check whether a value may be used as a request id."""
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int))


def extract_request_id(data: Any) -> Optional[RequestId]:
    """
    Get the id of a possibly malformed message for addressing an error.

    Returns None when the message has no usable id.
    """
    if isinstance(data, dict):
        value = data.get("id")
        if is_valid_id(value):
            return value
    return None


def parse_request(data: Any) -> Request:
    """
    Validate a decoded JSON-RPC envelope.

    Args:
        data: Decoded JSON value

    Returns:
        Request (a notification when it carries no id)

    Raises:
        InvalidRequestError: If the envelope is malformed
    """
    if not isinstance(data, dict):
        raise InvalidRequestError("Invalid Request: message must be a JSON object")

    if data.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError(f"Invalid JSON-RPC version: {data.get('jsonrpc')!r}")

    method = data.get("method")
    if not isinstance(method, str):
        raise InvalidRequestError("Invalid Request: method must be a string")

    if "params" in data and not isinstance(data["params"], (dict, list)):
        raise InvalidRequestError("Invalid Request: params must be an object or array")

    if not is_valid_id(data.get("id")):
        raise InvalidRequestError("Invalid Request: id must be a string, an integer or null")

    try:
        return Request(
            jsonrpc=JSONRPC_VERSION,
            id=data.get("id"),
            method=method,
            params=data.get("params"),
        )
    except ValidationError as e:
        raise InvalidRequestError("Invalid Request", details=str(e))


def parse_params(params: Any, model_class: Type[T]) -> T:
    """
    Validate method parameters against a Pydantic model.

    Args:
        params: Request params (missing params count as an empty object)
        model_class: Model describing the parameters

    Returns:
        Parsed parameters

    Raises:
        InvalidParamsError: If the parameters are missing or malformed
    """
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidParamsError("Invalid params: expected an object")

    try:
        return model_class.model_validate(params)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            problems.append(f"{location}: {error['msg']}")
        raise InvalidParamsError(f"Invalid params: {'; '.join(problems)}")


def create_error_response(request_id: Optional[RequestId], error: MCPError) -> Response:
    """
    Create an error response from a typed error.

    Args:
        request_id: ID of the request that caused the error
        error: Error to report

    Returns:
        Response object with error information
    """
    return Response(jsonrpc=JSONRPC_VERSION, id=request_id, error=error.to_error())


def create_result_response(request_id: RequestId, result: Any) -> Response:
    """
    Create a successful response.

    Args:
        request_id: ID of the request
        result: Result data

    Returns:
        Response object with result
    """
    return Response(jsonrpc=JSONRPC_VERSION, id=request_id, result=result)


def create_notification(method: str, params: Optional[Dict[str, Any]] = None) -> Notification:
    """Create a server-to-client notification."""
    return Notification(jsonrpc=JSONRPC_VERSION, method=method, params=params)


def serialize_message(message: Dict[str, Any]) -> str:
    """
    Encode an outbound message as compact JSON.

    Raises:
        TypeError: If the message holds a value JSON cannot represent
        ValueError: If the message holds a non-finite float
    """
    return json.dumps(message, separators=(",", ":"), allow_nan=False)

