"""Metadata helpers for file identifiers."""

import mimetypes
from pathlib import PurePosixPath
from typing import Final

_FALLBACK_MIME_TYPE: Final = 'application/octet-stream'


def detect_mime_type(identifier: str, recorded: str = '') -> str:
    """Detect MIME type of a file.

    The MIME type recorded by the registry wins. Otherwise it is
    guessed from the extension with Python's mimetypes module.

    Args:
        identifier: File identifier with extension.
        recorded: MIME type stored on the file, if any.

    Returns:
        Lowercase MIME type string (e.g., 'image/jpeg').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if recorded:
        return recorded.lower()
    mime_type, _ = mimetypes.guess_type(identifier)
    if mime_type is None:
        return _FALLBACK_MIME_TYPE
    return mime_type


def get_file_extension(identifier: str) -> str:
    """Get file extension from an identifier.

    Args:
        identifier: Identifier (e.g., '/docs/document.PDF').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = PurePosixPath(identifier).suffix
    return extension.lstrip('.').lower()
