"""
Resource registry for MCP.

This module provides the registry that resolves resource URIs to readers.
Lookup order for a URI:

1. Static entries, by exact URI.
2. Dynamic entries, by URI prefix, longest prefix first.
3. URI templates, in registration order.

Every registration returns a notifier. Calling it reports a change of that
resource to the registry's change callback (the server turns this into a
``notifications/resources/updated`` message).
"""

import inspect
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import structlog

from mcpkit.protocol.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidDefinitionError,
    NotFoundError,
)
from mcpkit.resources.base import ResourceContents, ResourceEntry, ResourceKind, ResourceTemplate

logger = structlog.get_logger(__name__)

Notifier = Callable[[], None]
ChangeCallback = Callable[[str], None]


class ResourceRegistry:
    """
    Registry of static, dynamic and templated resources.

    All methods are safe to call from any thread. Readers run outside the
    registry lock and may be plain functions or coroutine functions.
    """

    def __init__(self, on_change: Optional[ChangeCallback] = None) -> None:
        """
        Initialize the resource registry.

        Args:
            on_change: Called with a URI, prefix or template string when a
                notifier is invoked
        """
        self._entries: List[ResourceEntry] = []
        self._templates: List[ResourceTemplate] = []
        self._lock = threading.RLock()
        self._on_change = on_change

    def register_static(
        self,
        uri: str,
        name: str,
        description: str,
        reader: Callable[[], Any],
    ) -> Notifier:
        """
        Register a resource with a fixed URI.

        Args:
            uri: Exact URI of the resource
            name: Human-readable name
            description: Description of the resource
            reader: Callable returning ResourceContents

        Returns:
            Notifier for signalling changes to this resource

        Raises:
            InvalidDefinitionError: If the URI is empty or the reader is not callable
            AlreadyExistsError: If the URI is already registered
        """
        entry = self._make_entry(uri, name, description, reader, ResourceKind.STATIC)
        self._add_entry(entry)
        return self._notifier(uri)

    def register_dynamic(
        self,
        prefix: str,
        name: str,
        description: str,
        reader: Callable[[str], Any],
    ) -> Notifier:
        """
        Register a resource family sharing a URI prefix.

        The reader receives the remainder of the requested URI after the
        prefix. When prefixes overlap, the longest matching prefix wins.

        Args:
            prefix: URI prefix
            name: Human-readable name
            description: Description of the resources
            reader: Callable taking the URI suffix and returning ResourceContents

        Returns:
            Notifier for signalling changes under this prefix
        """
        entry = self._make_entry(prefix, name, description, reader, ResourceKind.DYNAMIC)
        self._add_entry(entry)
        return self._notifier(prefix)

    def register_template(
        self,
        uri_template: str,
        name: str,
        description: str,
        mime_type: Optional[str],
        reader: Callable[[Dict[str, str]], Any],
    ) -> Notifier:
        """
        Register a URI template such as ``weather://{city}/{date}``.

        Args:
            uri_template: Template with ``{name}`` placeholders
            name: Human-readable name
            description: Description of the resources
            mime_type: MIME type advertised in the template listing
            reader: Callable taking the placeholder values and returning ResourceContents

        Returns:
            Notifier for signalling changes to resources of this template
        """
        if not uri_template:
            raise InvalidDefinitionError("Resource URI template cannot be empty")
        if not callable(reader):
            raise InvalidDefinitionError(f"Resource reader must be callable: {uri_template}")

        template = ResourceTemplate(
            uri_template=uri_template,
            name=name,
            description=description or "",
            mime_type=mime_type,
            reader=reader,
        )
        with self._lock:
            if any(t.uri_template == uri_template for t in self._templates):
                raise AlreadyExistsError(f"Resource template already exists: {uri_template}")
            self._templates.append(template)

        logger.debug("Resource template registered", uri_template=uri_template)
        return self._notifier(uri_template)

    def register_file(
        self,
        file_path: Union[str, Path],
        uri: Optional[str] = None,
        name: Optional[str] = None,
        description: str = "",
        mime_type: Optional[str] = None,
    ) -> Notifier:
        """
        Register a file as a static resource.

        The file is read on every request, so changes on disk are picked up.

        Args:
            file_path: Path to the file
            uri: URI to serve it under (defaults to its file:// URI)
            name: Human-readable name (defaults to the file name)
            description: Description of the resource
            mime_type: MIME type (guessed from the file name when omitted)

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(file_path).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"File '{file_path}' does not exist")

        def read_file() -> ResourceContents:
            return ResourceContents.from_file(path, mime_type)

        return self.register_static(
            uri or path.as_uri(),
            name or path.name,
            description or f"File {path.name}",
            read_file,
        )

    def register_directory(
        self,
        directory: Union[str, Path],
        prefix: str,
        name: Optional[str] = None,
        description: str = "",
    ) -> Notifier:
        """
        Serve the files below a directory under a URI prefix.

        ``prefix + "notes/todo.md"`` reads ``directory/notes/todo.md``. Paths
        escaping the directory are not found.

        Raises:
            NotADirectoryError: If the directory does not exist
        """
        root = Path(directory).resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Directory '{directory}' does not exist")

        def read_path(suffix: str) -> ResourceContents:
            target = (root / suffix).resolve()
            if root not in target.parents or not target.is_file():
                raise NotFoundError(f"Resource not found: {prefix}{suffix}")
            return ResourceContents.from_file(target)

        return self.register_dynamic(
            prefix,
            name or root.name,
            description or f"Files in {root.name}",
            read_path,
        )

    def list(self) -> List[Dict[str, Any]]:
        """
        List static and dynamic resources.

        Dynamic entries are reported as their prefix followed by ``*``.
        """
        with self._lock:
            entries = list(self._entries)
        return [entry.to_dict() for entry in entries]

    def list_templates(self) -> List[Dict[str, Any]]:
        """List URI templates in registration order."""
        with self._lock:
            templates = list(self._templates)
        return [template.to_dict() for template in templates]

    async def read(self, uri: str) -> ResourceContents:
        """
        Read the resource addressed by a URI.

        Args:
            uri: Requested URI

        Returns:
            Resource contents stamped with the requested URI

        Raises:
            NotFoundError: If nothing matches the URI
            InternalError: If the reader returns something other than ResourceContents
        """
        reader, args = self._resolve(uri)

        contents = reader(*args)

        # Handle coroutines
        if inspect.isawaitable(contents):
            contents = await contents

        if not isinstance(contents, ResourceContents):
            raise InternalError(
                f"Resource reader for {uri} returned {type(contents).__name__}, "
                "expected ResourceContents"
            )
        return contents.with_uri(uri)

    def _resolve(self, uri: str) -> Tuple[Callable[..., Any], Tuple[Any, ...]]:
        with self._lock:
            for entry in self._entries:
                args = entry.match(uri)
                if args is not None:
                    return entry.reader, args

            for template in self._templates:
                params = template.match(uri)
                if params is not None:
                    return template.reader, (params,)

        raise NotFoundError(f"Resource not found: {uri}")

    def _make_entry(
        self,
        uri: str,
        name: str,
        description: str,
        reader: Callable[..., Any],
        kind: ResourceKind,
    ) -> ResourceEntry:
        if not uri:
            raise InvalidDefinitionError("Resource URI cannot be empty")
        if not callable(reader):
            raise InvalidDefinitionError(f"Resource reader must be callable: {uri}")
        return ResourceEntry(
            uri=uri,
            name=name,
            description=description or "",
            kind=kind,
            reader=reader,
        )

    def _add_entry(self, entry: ResourceEntry) -> None:
        with self._lock:
            for existing in self._entries:
                if existing.kind == entry.kind and existing.uri == entry.uri:
                    raise AlreadyExistsError(f"Resource already exists: {entry.uri}")
            self._entries.append(entry)
            self._entries.sort(key=ResourceEntry.sort_key)

        logger.debug("Resource registered", uri=entry.uri, kind=entry.kind.value)

    def _notifier(self, key: str) -> Notifier:
        def notify() -> None:
            if self._on_change is not None:
                self._on_change(key)

        return notify

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries) + len(self._templates)
