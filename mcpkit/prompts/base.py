"""
Prompt models for MCP.

A prompt is a named, argument-parameterized generator of messages. Message
content is a tagged union of text, image and embedded resource variants,
discriminated by the ``type`` field.
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

VALID_ROLES = ("user", "assistant")


class PromptArgument(BaseModel):
    """An argument accepted by a prompt."""

    name: str = Field(..., description="Argument name")
    description: str = Field("", description="Description of the argument")
    required: bool = Field(False, description="Whether the argument must be supplied")

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"name": self.name}
        if self.description:
            document["description"] = self.description
        if self.required:
            document["required"] = True
        return document


class Prompt(BaseModel):
    """Metadata describing a prompt and its arguments."""

    name: str = Field(..., description="Unique prompt name")
    description: str = Field("", description="Description of the prompt")
    arguments: List[PromptArgument] = Field(default_factory=list, description="Prompt arguments")

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"name": self.name}
        if self.description:
            document["description"] = self.description
        if self.arguments:
            document["arguments"] = [argument.to_dict() for argument in self.arguments]
        return document


class TextContent(BaseModel):
    """Plain text message content."""

    type: Literal["text"] = "text"
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self.text}


class ImageContent(BaseModel):
    """Base64-encoded image message content."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["image"] = "image"
    data: str = Field(..., description="Base64-encoded image data")
    mime_type: str = Field(..., alias="mimeType")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data, "mimeType": self.mime_type}


class ResourceReference(BaseModel):
    """Resource embedded in a message."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str = Field(..., alias="mimeType")
    text: str = ""


class EmbeddedResource(BaseModel):
    """Message content referencing a resource, with its text inline."""

    type: Literal["resource"] = "resource"
    resource: ResourceReference

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "resource": {
                "uri": self.resource.uri,
                "mimeType": self.resource.mime_type,
                "text": self.resource.text,
            },
        }


PromptContent = Annotated[
    Union[TextContent, ImageContent, EmbeddedResource],
    Field(discriminator="type"),
]


class PromptMessage(BaseModel):
    """
    A message produced by a prompt.

    The role is not restricted here; the prompt registry rejects roles other
    than ``user`` and ``assistant`` when a handler returns them.
    """

    role: str = Field(..., description="Message role")
    content: PromptContent

    @classmethod
    def text(cls, role: str, text: str) -> "PromptMessage":
        return cls(role=role, content=TextContent(text=text))

    @classmethod
    def image(cls, role: str, data: str, mime_type: str) -> "PromptMessage":
        return cls(role=role, content=ImageContent(data=data, mime_type=mime_type))

    @classmethod
    def resource(cls, role: str, uri: str, mime_type: str, text: str = "") -> "PromptMessage":
        reference = ResourceReference(uri=uri, mime_type=mime_type, text=text)
        return cls(role=role, content=EmbeddedResource(resource=reference))

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content.to_dict()}


class PromptResponse(BaseModel):
    """Messages generated for one prompts/get request."""

    description: str = Field("", description="Description of the generated prompt")
    messages: List[PromptMessage] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "messages": [message.to_dict() for message in self.messages],
        }
