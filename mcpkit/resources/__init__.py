"""
MCP resources package.

Resources are addressable content read by URI: static URIs, dynamic URI
prefixes and URI templates.
"""

from mcpkit.resources.base import (
    ResourceContents,
    ResourceEntry,
    ResourceKind,
    ResourceTemplate,
    compile_uri_template,
)
from mcpkit.resources.registry import Notifier, ResourceRegistry

__all__ = [
    "Notifier",
    "ResourceContents",
    "ResourceEntry",
    "ResourceKind",
    "ResourceRegistry",
    "ResourceTemplate",
    "compile_uri_template",
]
