"""
Resource models for MCP.

This module defines the contents returned when a resource is read, and the
entries the resource registry matches request URIs against: static URIs,
dynamic URI prefixes and URI templates.
"""

import base64
import re
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from mcpkit.mime import guess_mime_type, is_text_mime_type

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


class ResourceContents(BaseModel):
    """
    Contents of a resource read.

    Exactly one of ``text`` and ``blob`` is set. The URI is not chosen by the
    reader; the registry stamps the requested URI onto the contents.
    """

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field("text/plain", alias="mimeType", description="MIME type of the content")
    text: Optional[str] = Field(None, description="Text payload")
    blob: Optional[bytes] = Field(None, description="Binary payload")

    _uri: Optional[str] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def validate_payload(self) -> "ResourceContents":
        """Validate that exactly one payload is present."""
        if self.text is not None and self.blob is not None:
            raise ValueError("Resource contents cannot have both text and blob")
        if self.text is None and self.blob is None:
            raise ValueError("Resource contents must have either text or blob")
        return self

    @classmethod
    def from_text(cls, text: str, mime_type: str = "text/plain") -> "ResourceContents":
        return cls(mime_type=mime_type, text=text)

    @classmethod
    def from_bytes(
        cls, data: bytes, mime_type: str = "application/octet-stream"
    ) -> "ResourceContents":
        return cls(mime_type=mime_type, blob=data)

    @classmethod
    def from_file(
        cls, file_path: Union[str, Path], mime_type: Optional[str] = None
    ) -> "ResourceContents":
        """
        Read a file into resource contents.

        Text MIME types are read as UTF-8 text, everything else as bytes.

        Args:
            file_path: Path to the file
            mime_type: MIME type, guessed from the file name when omitted

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(file_path)
        mime_type = mime_type or guess_mime_type(path)
        if is_text_mime_type(mime_type):
            return cls.from_text(path.read_text(encoding="utf-8"), mime_type)
        return cls.from_bytes(path.read_bytes(), mime_type)

    @property
    def uri(self) -> Optional[str]:
        return self._uri

    def with_uri(self, uri: str) -> "ResourceContents":
        """Return a copy of the contents addressed to a URI."""
        stamped = self.model_copy()
        stamped._uri = uri
        return stamped

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the resources/read contents format.

        Binary payloads are base64 encoded.
        """
        document: Dict[str, Any] = {}
        if self._uri is not None:
            document["uri"] = self._uri
        document["mimeType"] = self.mime_type
        if self.blob is not None:
            document["blob"] = base64.b64encode(self.blob).decode("ascii")
        else:
            document["text"] = self.text
        return document


class ResourceKind(str, Enum):
    """How a resource entry matches URIs."""

    STATIC = "static"
    DYNAMIC = "dynamic"


class ResourceEntry(BaseModel):
    """
    A static resource (exact URI) or a dynamic resource (URI prefix).

    Static readers take no arguments. Dynamic readers receive the part of the
    requested URI that follows the prefix.
    """

    uri: str = Field(..., description="Exact URI, or prefix for dynamic entries")
    name: str = Field(..., description="Human-readable name")
    description: str = Field("", description="Description of the resource")
    kind: ResourceKind = Field(ResourceKind.STATIC, description="Matching mode")
    reader: Callable[..., Any] = Field(..., description="Reader callback", exclude=True)

    @property
    def is_dynamic(self) -> bool:
        return self.kind == ResourceKind.DYNAMIC

    def sort_key(self) -> Tuple[int, int]:
        # Static entries first, then dynamic entries with the longest prefix first
        if self.is_dynamic:
            return (1, -len(self.uri))
        return (0, 0)

    def match(self, uri: str) -> Optional[Tuple[Any, ...]]:
        """
        Match a requested URI.

        Returns:
            Reader arguments if the URI matches, otherwise None
        """
        if self.is_dynamic:
            if uri.startswith(self.uri):
                return (uri[len(self.uri):],)
            return None
        if uri == self.uri:
            return ()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": f"{self.uri}*" if self.is_dynamic else self.uri,
            "name": self.name,
            "description": self.description,
        }


def compile_uri_template(uri_template: str) -> Tuple[Pattern[str], List[str]]:
    """
    Compile a URI template into a regular expression.

    Each ``{name}`` placeholder matches one or more characters other than
    ``/``; the rest of the template is matched literally.

    Returns:
        Compiled pattern and the placeholder names in template order
    """
    parts: List[str] = []
    names: List[str] = []
    position = 0
    for match in _PLACEHOLDER.finditer(uri_template):
        parts.append(re.escape(uri_template[position:match.start()]))
        parts.append("([^/]+)")
        names.append(match.group(1))
        position = match.end()
    parts.append(re.escape(uri_template[position:]))
    return re.compile("".join(parts)), names


class ResourceTemplate(BaseModel):
    """A parameterized resource addressed by a URI template such as ``users/{id}``."""

    uri_template: str = Field(..., description="URI template with {name} placeholders")
    name: str = Field(..., description="Human-readable name")
    description: str = Field("", description="Description of the template")
    mime_type: Optional[str] = Field(None, description="MIME type of the resources")
    reader: Callable[..., Any] = Field(..., description="Reader callback", exclude=True)

    _pattern: Pattern[str] = PrivateAttr()
    _params: List[str] = PrivateAttr(default_factory=list)

    def model_post_init(self, __context: Any) -> None:
        self._pattern, self._params = compile_uri_template(self.uri_template)

    @property
    def parameters(self) -> List[str]:
        return list(self._params)

    def match(self, uri: str) -> Optional[Dict[str, str]]:
        """
        Match a URI against the template.

        Returns:
            Mapping of placeholder names to values, or None
        """
        found = self._pattern.fullmatch(uri)
        if found is None:
            return None
        return dict(zip(self._params, found.groups()))

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "uriTemplate": self.uri_template,
            "name": self.name,
            "description": self.description,
        }
        if self.mime_type:
            document["mimeType"] = self.mime_type
        return document
