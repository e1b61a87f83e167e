"""
MCP method definitions.

This module lists the MCP methods and notifications the server understands,
and the Pydantic models for the initialize handshake and for the parameters
of methods that take named arguments.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from mcpkit.protocol.base import PROTOCOL_VERSION


class MCPMethod(str, Enum):
    """MCP methods and notifications."""

    INITIALIZE = "initialize"
    PING = "ping"

    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    RESOURCES_LIST = "resources/list"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"

    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    # Notifications
    INITIALIZED = "notifications/initialized"
    RESOURCES_UPDATED = "notifications/resources/updated"
    TOOLS_LIST_CHANGED = "notifications/tools/list_changed"
    PROMPTS_LIST_CHANGED = "notifications/prompts/list_changed"


class CamelModel(BaseModel):
    """Model serialized with camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ServerInfo(CamelModel):
    """Name and version reported in the initialize result."""

    name: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")


class ListChangedCapability(CamelModel):
    list_changed: bool = Field(True, alias="listChanged")


class ResourcesCapability(ListChangedCapability):
    subscribe: bool = Field(False, description="Whether resources/subscribe is supported")


class ServerCapabilities(CamelModel):
    """Capabilities document advertised during initialize."""

    tools: ListChangedCapability = Field(default_factory=ListChangedCapability)
    resources: ResourcesCapability = Field(default_factory=ResourcesCapability)
    prompts: ListChangedCapability = Field(default_factory=ListChangedCapability)


class InitializeResult(CamelModel):
    """Result of the initialize method."""

    protocol_version: str = Field(PROTOCOL_VERSION, alias="protocolVersion")
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    server_info: ServerInfo = Field(..., alias="serverInfo")


class ToolCallParams(BaseModel):
    """Parameters for tools/call."""

    name: StrictStr = Field(..., description="Name of the tool to call")
    arguments: Any = Field(..., description="Arguments validated against the tool schema")


class ResourcesReadParams(BaseModel):
    """Parameters for resources/read."""

    uri: StrictStr = Field(..., description="URI of the resource to read")


class PromptsGetParams(BaseModel):
    """Parameters for prompts/get."""

    name: StrictStr = Field(..., description="Name of the prompt")
    arguments: Optional[Any] = Field(None, description="Prompt arguments")
