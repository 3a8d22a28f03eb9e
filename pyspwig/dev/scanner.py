"""Directory scanning and ignore rules for theme directories."""

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = frozenset({"node_modules", "dist"})
IGNORED_FILE_PATTERNS = ("*.log",)


@dataclass
class LocalFile:
    """Represents a local theme file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Theme root for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        return cls(
            path=file_path,
            relative_path=file_path.relative_to(base_path).as_posix(),
            size=stat.st_size,
            mtime=stat.st_mtime,
        )


class ThemeScanner:
    """Walks a theme directory, skipping files that are never synced.

    Dotfiles and dot-directories, ``node_modules``, ``dist`` and ``*.log``
    files are always skipped. Ignored directories are not descended into.

    Examples:
        >>> scanner = ThemeScanner(ignore_patterns=["*.psd"])
        >>> files = scanner.scan(Path("/themes/aurora"))
    """

    def __init__(self, ignore_patterns: Optional[list[str]] = None):
        """Initialize scanner.

        Args:
            ignore_patterns: Extra glob patterns, matched against both the
                relative path and the file name
        """
        self.ignore_patterns = list(ignore_patterns or [])

    def is_ignored_relative(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check a slash-separated path relative to the theme root.

        Any ignored path component excludes everything below it.
        """
        parts = PurePosixPath(relative_path).parts
        if not parts:
            return False

        for index, part in enumerate(parts):
            if part.startswith("."):
                return True
            is_last = index == len(parts) - 1
            if (not is_last or is_dir) and part in IGNORED_DIRECTORIES:
                return True

        name = parts[-1]
        if not is_dir and any(
            fnmatch.fnmatch(name, pattern) for pattern in IGNORED_FILE_PATTERNS
        ):
            return True

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(
                name, pattern
            ):
                return True
        return False

    def should_ignore(self, path: Path, base_path: Path, is_dir: bool = False) -> bool:
        """Check if an absolute path under ``base_path`` should be skipped."""
        try:
            relative_path = path.relative_to(base_path).as_posix()
        except ValueError:
            # Outside the theme root
            return True
        if relative_path == ".":
            return False
        return self.is_ignored_relative(relative_path, is_dir=is_dir)

    def scan(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a theme directory.

        Args:
            directory: Directory to scan
            base_path: Theme root (defaults to directory)

        Returns:
            List of LocalFile objects sorted by relative path
        """
        if base_path is None:
            base_path = directory

        files: list[LocalFile] = []
        try:
            for item in directory.iterdir():
                is_dir = item.is_dir()
                if self.should_ignore(item, base_path, is_dir=is_dir):
                    logger.debug(f"Ignoring: {item}")
                    continue

                if is_dir:
                    files.extend(self.scan(item, base_path))
                elif item.is_file():
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        logger.warning(f"Skipping unreadable file {item}: {e}")
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")

        files.sort(key=lambda f: f.relative_path)
        return files
