"""Live theme development: watch a theme directory and sync it to a shop."""

from .classifier import (
    BINARY_EXTENSIONS,
    ChangeClassifier,
    calculate_checksum,
    is_binary_path,
    normalize_path,
)
from .debouncer import Debouncer
from .engine import DevOptions, DevSyncEngine, EngineState
from .manifest import MANIFEST_FILE, load_manifest
from .scanner import LocalFile, ThemeScanner
from .session import Credentials, SessionManager, SessionState
from .transport import SyncTransport, collapse_batch
from .watcher import ThemeWatcher

__all__ = [
    "BINARY_EXTENSIONS",
    "ChangeClassifier",
    "calculate_checksum",
    "is_binary_path",
    "normalize_path",
    "Debouncer",
    "DevOptions",
    "DevSyncEngine",
    "EngineState",
    "MANIFEST_FILE",
    "load_manifest",
    "LocalFile",
    "ThemeScanner",
    "Credentials",
    "SessionManager",
    "SessionState",
    "SyncTransport",
    "collapse_batch",
    "ThemeWatcher",
]
