"""Recursive observation of a theme directory.

Ignored directories (dot-directories, ``node_modules``, ``dist``) are never
scheduled with the observer: every other directory gets its own
non-recursive watch, and watches are added or removed as directories come
and go. Added and modified files are reported only after their size and
mtime have stopped changing for ``stability_threshold`` seconds; removals
are reported immediately.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..exceptions import SpwigWatchError
from ..models import ChangeKind, WatchEvent
from .classifier import normalize_path
from .debouncer import Debouncer, TimerFactory
from .scanner import ThemeScanner

logger = logging.getLogger(__name__)

EventCallback = Callable[[WatchEvent], None]


def _stat_signature(path: Path) -> Optional[tuple[int, int]]:
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_size, stat.st_mtime_ns)


class _ThemeEventHandler(FileSystemEventHandler):
    """Translates watchdog events into theme-relative observations."""

    def __init__(self, watcher: "ThemeWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if isinstance(event, DirCreatedEvent) or event.is_directory:
            self.watcher._directory_added(path)
        elif isinstance(event, FileCreatedEvent):
            self.watcher._file_changed(path, ChangeKind.ADDED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent) and not event.is_directory:
            self.watcher._file_changed(
                Path(os.fsdecode(event.src_path)), ChangeKind.MODIFIED
            )

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if isinstance(event, DirDeletedEvent) or event.is_directory:
            self.watcher._directory_removed(path)
        elif isinstance(event, FileDeletedEvent):
            self.watcher._file_removed(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        src = Path(os.fsdecode(event.src_path))
        dest = Path(os.fsdecode(event.dest_path))
        if isinstance(event, DirMovedEvent) or event.is_directory:
            self.watcher._directory_removed(src)
            self.watcher._directory_added(dest)
        elif isinstance(event, FileMovedEvent):
            self.watcher._file_removed(src)
            self.watcher._file_changed(dest, ChangeKind.ADDED)


class ThemeWatcher:
    """Watches a theme directory and reports WatchEvents.

    Examples:
        >>> watcher = ThemeWatcher(Path("/themes/aurora"), on_event=print)
        >>> watcher.start()
        >>> watcher.stop()
    """

    def __init__(
        self,
        root: Path,
        on_event: EventCallback,
        scanner: Optional[ThemeScanner] = None,
        stability_threshold: float = 0.1,
        observer_factory: Callable[[], Any] = Observer,
        timer_factory: Optional[TimerFactory] = None,
    ):
        """Initialize the watcher.

        Args:
            root: Theme root directory
            on_event: Called with each settled WatchEvent
            scanner: Provides the ignore rules (default: ThemeScanner())
            stability_threshold: Seconds without writes before a file is reported
            observer_factory: Creates the watchdog observer
            timer_factory: Timer factory for the stability checks
        """
        self.root = Path(root).resolve()
        self.on_event = on_event
        self.scanner = scanner or ThemeScanner()
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._handler = _ThemeEventHandler(self)
        self._watches: dict[Path, Any] = {}
        self._pending_kinds: dict[str, ChangeKind] = {}
        self._stability = Debouncer(stability_threshold, timer_factory=timer_factory)
        self._lock = threading.RLock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def _relative(self, path: Path, is_dir: bool = False) -> Optional[str]:
        """Theme-relative path, or None for ignored or foreign paths."""
        if self.scanner.should_ignore(path, self.root, is_dir=is_dir):
            return None
        return normalize_path(path, self.root)

    # =========================
    # Lifecycle
    # =========================

    def start(self) -> None:
        """Start observing.

        Raises:
            SpwigWatchError: If the root is missing or the observer fails
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Watcher already started")
            if not self.root.exists():
                raise SpwigWatchError(f"Theme directory does not exist: {self.root}")
            if not self.root.is_dir():
                raise SpwigWatchError(f"Theme path is not a directory: {self.root}")

            self._observer = self._observer_factory()
            try:
                self._schedule_tree(self.root)
                self._observer.start()
            except OSError as e:
                self._watches.clear()
                self._observer = None
                raise SpwigWatchError(f"Could not watch {self.root}: {e}") from e

            self._running = True
            logger.debug(f"Watching {len(self._watches)} directories under {self.root}")

    def stop(self) -> None:
        """Stop observing. Safe to call more than once."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            observer = self._observer
            self._observer = None
            self._watches.clear()
            self._pending_kinds.clear()

        dropped = self._stability.cancel_all()
        if dropped:
            logger.debug(f"Discarded {len(dropped)} unsettled file event(s)")

        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5.0)

    # =========================
    # Directory bookkeeping
    # =========================

    def _schedule_tree(self, directory: Path) -> list[Path]:
        """Schedule a watch for ``directory`` and its non-ignored subdirectories.

        Returns:
            Files found in newly scheduled directories
        """
        found: list[Path] = []
        if directory in self._watches:
            return found

        self._watches[directory] = self._observer.schedule(
            self._handler, str(directory), recursive=False
        )
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list {directory}: {e}")
            return found

        for entry in entries:
            is_dir = entry.is_dir()
            if self.scanner.should_ignore(entry, self.root, is_dir=is_dir):
                continue
            if is_dir:
                found.extend(self._schedule_tree(entry))
            elif entry.is_file():
                found.append(entry)
        return found

    def _directory_added(self, path: Path) -> None:
        with self._lock:
            if not self._running or self._relative(path, is_dir=True) is None:
                return
            try:
                files = self._schedule_tree(path)
            except OSError as e:
                logger.warning(f"Cannot watch new directory {path}: {e}")
                return

        # Files created before the watch existed produced no events
        for file_path in files:
            self._file_changed(file_path, ChangeKind.ADDED)

    def _directory_removed(self, path: Path) -> None:
        with self._lock:
            if not self._running:
                return
            stale = [p for p in self._watches if p == path or path in p.parents]
            for directory in stale:
                watch = self._watches.pop(directory)
                try:
                    self._observer.unschedule(watch)
                except (KeyError, OSError):
                    # The backend may already have dropped it
                    pass

    # =========================
    # File events
    # =========================

    def _file_changed(self, path: Path, kind: ChangeKind) -> None:
        relative = self._relative(path)
        if relative is None or not self._running:
            return

        with self._lock:
            # A modify following an unreported add is still an add
            if self._pending_kinds.get(relative) is not ChangeKind.ADDED:
                self._pending_kinds[relative] = kind
            signature = _stat_signature(path)

        self._stability.register(
            relative, lambda: self._settle(path, relative, signature)
        )

    def _settle(
        self, path: Path, relative: str, signature: Optional[tuple[int, int]]
    ) -> None:
        current = _stat_signature(path)
        if current is None:
            # Gone again; the delete event reports it
            with self._lock:
                self._pending_kinds.pop(relative, None)
            return
        if current != signature:
            # Still being written
            self._stability.register(
                relative, lambda: self._settle(path, relative, current)
            )
            return

        with self._lock:
            kind = self._pending_kinds.pop(relative, ChangeKind.MODIFIED)
            if not self._running:
                return
        self._emit(WatchEvent(path=relative, kind=kind))

    def _file_removed(self, path: Path) -> None:
        relative = self._relative(path)
        if relative is None or not self._running:
            return
        self._stability.cancel(relative)
        with self._lock:
            self._pending_kinds.pop(relative, None)
        self._emit(WatchEvent(path=relative, kind=ChangeKind.REMOVED))

    def _emit(self, event: WatchEvent) -> None:
        logger.debug(f"{event.kind.value}: {event.path}")
        try:
            self.on_event(event)
        except Exception:
            logger.exception(f"Event handler failed for {event.path}")
