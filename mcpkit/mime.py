"""
MIME type helpers.

Used when serving files as resources to decide the advertised MIME type and
whether the content is sent as text or as a base64 blob.
"""

import mimetypes
from pathlib import Path
from typing import Dict, Optional, Union

DEFAULT_MIME_TYPE = "application/octet-stream"

# Extensions whose stdlib guess is missing or differs between platforms
_OVERRIDES: Dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".js": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".gz": "application/gzip",
}

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/yaml",
    "application/x-yaml",
    "application/javascript",
    "application/ecmascript",
    "application/x-httpd-php",
    "application/x-sh",
}


def guess_mime_type(path: Union[str, Path]) -> str:
    """
    Guess a MIME type from a file name.

    Args:
        path: File path or name

    Returns:
        MIME type, ``application/octet-stream`` when unknown
    """
    suffix = Path(path).suffix.lower()
    if suffix in _OVERRIDES:
        return _OVERRIDES[suffix]
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or DEFAULT_MIME_TYPE


def is_text_mime_type(mime_type: Optional[str]) -> bool:
    """Check whether content of this MIME type can be sent as text."""
    if not mime_type:
        return False
    mime_type = mime_type.split(";", 1)[0].strip().lower()
    if mime_type.startswith("text/"):
        return True
    if mime_type.endswith("+json") or mime_type.endswith("+xml"):
        return True
    return mime_type in _TEXT_APPLICATION_TYPES
