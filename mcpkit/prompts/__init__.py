"""
MCP prompts package.

Prompts are named, argument-parameterized generators of messages.
"""

from mcpkit.prompts.base import (
    EmbeddedResource,
    ImageContent,
    Prompt,
    PromptArgument,
    PromptContent,
    PromptMessage,
    PromptResponse,
    ResourceReference,
    TextContent,
)
from mcpkit.prompts.registry import PromptHandler, PromptRegistry, extract_arguments, template_handler

__all__ = [
    "EmbeddedResource",
    "ImageContent",
    "Prompt",
    "PromptArgument",
    "PromptContent",
    "PromptHandler",
    "PromptMessage",
    "PromptRegistry",
    "PromptResponse",
    "ResourceReference",
    "TextContent",
    "extract_arguments",
    "template_handler",
]
