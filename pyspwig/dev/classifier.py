"""Text/binary classification and checksumming of theme files."""

import base64
import hashlib
from pathlib import Path, PurePosixPath
from typing import Union

from ..models import Encoding, FileChange

# Images, fonts and icons. Everything else is sent as UTF-8 text.
BINARY_EXTENSIONS = frozenset(
    {
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".webp",
        ".avif",
        ".ico",
        ".woff",
        ".woff2",
        ".ttf",
        ".otf",
        ".eot",
    }
)


def is_binary_path(path: str) -> bool:
    """Decide the encoding for a path from its extension alone.

    Examples:
        >>> is_binary_path("assets/logo.PNG")
        True
        >>> is_binary_path("templates/home.html")
        False
    """
    return PurePosixPath(path).suffix.lower() in BINARY_EXTENSIONS


def calculate_checksum(raw: bytes) -> str:
    """SHA-256 hex digest of the raw (pre-encoding) bytes."""
    return hashlib.sha256(raw).hexdigest()


def normalize_path(path: Union[str, Path], root: Union[str, Path]) -> str:
    """Return ``path`` relative to ``root`` using forward slashes.

    Examples:
        >>> normalize_path("/theme/assets/a.css", "/theme")
        'assets/a.css'
    """
    return Path(path).relative_to(Path(root)).as_posix()


class ChangeClassifier:
    """Turns raw file bytes into a FileChange."""

    def __init__(self, binary_extensions: frozenset = BINARY_EXTENSIONS):
        self.binary_extensions = frozenset(e.lower() for e in binary_extensions)

    def encoding_for(self, path: str) -> Encoding:
        if PurePosixPath(path).suffix.lower() in self.binary_extensions:
            return Encoding.BASE64
        return Encoding.UTF8

    def classify(self, path: str, raw: bytes) -> FileChange:
        """Classify and encode a file.

        Args:
            path: Slash-normalized path relative to the theme root
            raw: File contents

        Returns:
            FileChange whose checksum covers ``raw`` regardless of encoding
        """
        encoding = self.encoding_for(path)
        if encoding is Encoding.BASE64:
            content = base64.b64encode(raw).decode("ascii")
        else:
            # Invalid bytes are replaced; the checksum still covers the
            # raw bytes
            content = raw.decode("utf-8", errors="replace")

        return FileChange(
            path=path,
            content=content,
            checksum=calculate_checksum(raw),
            encoding=encoding,
        )
