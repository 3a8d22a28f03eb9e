"""Live theme sync engine.

Connects to a shop, pushes the whole theme once, then keeps the shop's copy
current by pushing every settled, debounced file change until shutdown.
"""

import logging
import signal
import threading
import webbrowser
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..api import SpwigClient
from ..config import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_GRACE_PERIOD,
    DEFAULT_STABILITY_MS,
)
from ..exceptions import SpwigAuthenticationError, SpwigError
from ..models import (
    ChangeKind,
    DevSession,
    FileChange,
    ReloadHint,
    SyncResult,
    ThemeManifest,
    ValidationReport,
    WatchEvent,
)
from ..output import OutputFormatter
from ..utils import format_size
from .classifier import ChangeClassifier
from .debouncer import Debouncer, TimerFactory
from .manifest import load_manifest
from .scanner import ThemeScanner
from .session import Credentials, SessionManager
from .transport import SyncTransport
from .watcher import ThemeWatcher

logger = logging.getLogger(__name__)


class EngineState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    INITIAL_SYNC = "initial_sync"
    VALIDATING = "validating"
    WATCHING = "watching"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"
    ERROR = "error"


@dataclass
class DevOptions:
    """Options for a dev run."""

    theme_path: Path
    shop_url: str
    open_browser: bool = True
    debounce: float = DEFAULT_DEBOUNCE_MS / 1000
    stability_threshold: float = DEFAULT_STABILITY_MS / 1000
    grace_period: float = DEFAULT_GRACE_PERIOD
    sync_deletes: bool = False
    ignore: list[str] = field(default_factory=list)


class DevSyncEngine:
    """Orchestrates a live theme development run.

    States: IDLE -> CONNECTING -> INITIAL_SYNC -> VALIDATING -> WATCHING ->
    SHUTTING_DOWN -> TERMINATED, or ERROR on a fatal startup failure.

    Stopping always goes through :meth:`request_shutdown`, which only sets an
    event; the thread running :meth:`run` notices it and performs the single
    :meth:`shutdown` sequence.

    Examples:
        >>> client = SpwigClient("http://localhost:8000")
        >>> options = DevOptions(theme_path=Path("."), shop_url=client.shop_url)
        >>> engine = DevSyncEngine(client, options)
        >>> engine.run(Credentials("admin", "secret"))
        0
    """

    def __init__(
        self,
        client: SpwigClient,
        options: DevOptions,
        output: Optional[OutputFormatter] = None,
        watcher_factory: Callable[..., ThemeWatcher] = ThemeWatcher,
        timer_factory: Optional[TimerFactory] = None,
        browser_opener: Callable[[str], Any] = webbrowser.open,
    ):
        """Initialize the engine.

        Args:
            client: Shop API client
            options: Run options
            output: Output formatter for developer-facing messages
            watcher_factory: Creates the ThemeWatcher
            timer_factory: Timer factory for the debouncer
            browser_opener: Opens the preview URL
        """
        self.client = client
        self.options = options
        self.output = output or OutputFormatter()
        self.root = Path(options.theme_path).resolve()

        self.sessions = SessionManager(client)
        self.transport = SyncTransport(client)
        self.classifier = ChangeClassifier()
        self.scanner = ThemeScanner(ignore_patterns=options.ignore)
        self.debouncer = Debouncer(options.debounce, timer_factory=timer_factory)

        self._watcher_factory = watcher_factory
        self._browser_opener = browser_opener
        self.watcher: Optional[ThemeWatcher] = None
        self.manifest: Optional[ThemeManifest] = None
        self.state = EngineState.IDLE
        self.stats = {"synced": 0, "failed": 0, "deleted": 0}

        self._stop_event = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False
        self._inflight = 0
        self._inflight_cond = threading.Condition()
        self._stats_lock = threading.Lock()
        # path -> [lock, number of flushes holding or waiting for it]
        self._path_locks: dict[str, list[Any]] = {}
        self._path_locks_guard = threading.Lock()
        self._last_kinds: dict[str, ChangeKind] = {}
        self._previous_handlers: dict[int, Any] = {}
        self._expiry_warned = False

    @property
    def session(self) -> Optional[DevSession]:
        return self.sessions.session

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    # =========================
    # Run
    # =========================

    def run(self, credentials: Credentials) -> int:
        """Run until shutdown is requested.

        Args:
            credentials: Admin credentials for the connect call

        Returns:
            0 after a graceful shutdown

        Raises:
            SpwigError: On a fatal startup failure (after cleanup)
        """
        self.install_signal_handlers()
        try:
            self.start(credentials)
            self.wait()
        finally:
            self.shutdown()
        return 0

    def start(self, credentials: Credentials) -> None:
        """Run every phase up to and including starting the watcher."""
        try:
            self.manifest = load_manifest(self.root)
            version = f" v{self.manifest.version}" if self.manifest.version else ""
            self.output.info(f"Theme: [bold]{self.manifest.name}[/bold]{version}")
            self.output.info(f"Shop: [cyan]{self.options.shop_url}[/cyan]")

            self.connect(credentials)
            if self.stop_requested:
                return

            self.initial_sync()
            if self.stop_requested:
                return

            self.validate()
            if self.stop_requested:
                return

            self._announce()
            self.start_watching()
        except SpwigError:
            self.state = EngineState.ERROR
            raise

    def wait(self) -> None:
        """Block until shutdown is requested."""
        try:
            while not self._stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            self.request_shutdown()

    # =========================
    # Phases
    # =========================

    def connect(self, credentials: Credentials) -> DevSession:
        """Open the dev session (fatal on failure)."""
        self.state = EngineState.CONNECTING
        manifest = self.manifest or load_manifest(self.root)
        self.output.info("Connecting to shop...")
        session = self.sessions.connect(manifest.name, str(self.root), credentials)
        self.output.success(f"✓ Connected {session.message}".rstrip())
        return session

    def collect_changes(self) -> list[FileChange]:
        """Read and classify every syncable file under the theme root."""
        changes: list[FileChange] = []
        for local_file in self.scanner.scan(self.root):
            try:
                raw = local_file.path.read_bytes()
            except OSError as e:
                self.output.warning(f"✗ {local_file.relative_path}: read error ({e})")
                continue
            changes.append(self.classifier.classify(local_file.relative_path, raw))
        return changes

    def initial_sync(self) -> Optional[SyncResult]:
        """Push the complete theme as one batch.

        Rejected files and request failures are reported, not raised, so the
        run continues in a degraded state. A rejected dev token is fatal.

        Returns:
            SyncResult, or None if the request failed
        """
        self.state = EngineState.INITIAL_SYNC
        session = self._require_session()
        changes = self.collect_changes()
        total_size = sum(len(c.content) for c in changes)
        logger.debug(f"Initial sync: {len(changes)} file(s), {format_size(total_size)}")

        try:
            with self._spinner(f"Syncing {len(changes)} theme file(s)..."):
                result = self.transport.push(session, changes)
        except SpwigAuthenticationError:
            raise
        except SpwigError as e:
            self.output.error(f"Initial sync failed: {e}")
            return None

        self._count("synced", result.succeeded_count)
        self._count("failed", result.failed_count)
        if result.success:
            self.output.success(f"✓ Synced {result.succeeded_count} file(s)")
        else:
            self.output.warning(
                f"Synced with {len(result.errors)} error(s): {result.summary()}"
            )
            for err in result.errors:
                self.output.warning(f"  - {err}")
        return result

    def validate(self) -> Optional[ValidationReport]:
        """Ask the shop to check the theme. Failures are reported only."""
        self.state = EngineState.VALIDATING
        session = self._require_session()
        try:
            with self._spinner("Validating theme..."):
                report = self.transport.validate(session)
        except SpwigAuthenticationError:
            raise
        except SpwigError as e:
            self.output.warning(f"Validation request failed: {e}")
            return None

        if report.is_valid:
            self.output.success("✓ Theme validation passed")
        else:
            self.output.warning(
                f"Validation: {report.error_count} error(s), "
                f"{report.warning_count} warning(s)"
            )
        for err in report.errors:
            self.output.warning(f"  ✗ {err}")
        for warn in report.warnings:
            self.output.warning(f"  ⚠ {warn}")
        return report

    def _announce(self) -> None:
        session = self._require_session()
        preview = session.preview_link(self.options.shop_url)
        self.output.success("\n✓ Dev server ready!")
        self.output.info(f"Preview: [cyan]{preview}[/cyan]", preview_url=preview)
        if self.options.open_browser:
            try:
                self._browser_opener(preview)
            except webbrowser.Error as e:
                self.output.warning(f"Could not open browser: {e}")

    def start_watching(self) -> None:
        """Start the watcher and enter the WATCHING state."""
        self.watcher = self._watcher_factory(
            self.root,
            self.handle_event,
            scanner=self.scanner,
            stability_threshold=self.options.stability_threshold,
        )
        self.state = EngineState.WATCHING
        self.watcher.start()
        self.output.info("Watching for file changes... (Press Ctrl+C to stop)")

    # =========================
    # Watching
    # =========================

    def handle_event(self, event: WatchEvent) -> None:
        """Schedule a debounced flush for a filesystem event."""
        if self.stop_requested or self.state is not EngineState.WATCHING:
            return
        with self._path_locks_guard:
            self._last_kinds[event.path] = event.kind
        self.debouncer.register(event.path, lambda: self._flush(event.path))

    def _flush(self, path: str) -> None:
        """Read the current state of ``path`` and push it."""
        with self._track_inflight(), self._path_lock(path):
            with self._path_locks_guard:
                kind = self._last_kinds.pop(path, ChangeKind.MODIFIED)
            if self.stop_requested:
                return
            session = self.session
            if session is None:
                return
            self._warn_if_expired(session)

            try:
                raw = (self.root / path).read_bytes()
            except FileNotFoundError:
                if kind is ChangeKind.REMOVED:
                    self._handle_removed(session, path)
                else:
                    self.output.warning(f"✗ {path}: file disappeared before sync")
                return
            except OSError as e:
                self.output.warning(f"✗ {path}: read error ({e})")
                return

            change = self.classifier.classify(path, raw)
            try:
                result = self.transport.push(session, [change])
            except SpwigError as e:
                self._count("failed")
                self.output.error(f"✗ {path} sync failed: {e}", path=path)
                return
            self._report_push(path, result)

    def _report_push(self, path: str, result: SyncResult) -> None:
        if result.success:
            self._count("synced")
            hint = "css" if result.reload_hint is ReloadHint.STYLE_ONLY else "reload"
            self.output.success(
                f"✓ {path} synced ({hint})", path=path, reload=result.reload_hint.value
            )
        else:
            self._count("failed")
            self.output.warning(f"✗ {path} failed", path=path)
            for err in result.errors:
                self.output.warning(f"    {err}")

    def _handle_removed(self, session: DevSession, path: str) -> None:
        if not self.options.sync_deletes:
            self.output.warning(
                f"⊖ {path} deleted locally; "
                "use --sync-deletes to remove it from the shop",
                path=path,
            )
            return
        try:
            result = self.transport.delete(session, [path])
        except SpwigError as e:
            self.output.error(f"✗ {path} delete failed: {e}", path=path)
            return
        if result.success:
            self._count("deleted")
            self.output.success(f"⊖ {path} deleted", path=path)
        else:
            self.output.warning(f"✗ {path} delete rejected", path=path)
            for err in result.errors:
                self.output.warning(f"    {err}")

    def _warn_if_expired(self, session: DevSession) -> None:
        if not self._expiry_warned and session.is_expired():
            self._expiry_warned = True
            self.output.warning("Dev session has expired; restart dev to reconnect")

    # =========================
    # Shutdown
    # =========================

    def request_shutdown(self, signum: Optional[int] = None) -> None:
        """Ask the run loop to stop. Safe from signal handlers and threads."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if signum is not None:
            logger.debug(f"Received signal {signum}")
        self.output.warning("\nShutting down dev server...")

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to request_shutdown (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._previous_handlers[sig] = signal.signal(
                    sig, lambda signum, frame: self.request_shutdown(signum)
                )
            except (ValueError, OSError):
                logger.debug(f"Cannot install handler for signal {sig}")

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError, TypeError):
                pass
        self._previous_handlers.clear()

    def shutdown(self) -> None:
        """Stop watching, disconnect and release resources.

        Runs at most once; later calls return immediately.
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        self._stop_event.set()
        failed = self.state is EngineState.ERROR
        if not failed:
            self.state = EngineState.SHUTTING_DOWN

        dropped = self.debouncer.cancel_all()
        if dropped:
            self.output.warning(
                f"Discarded {len(dropped)} unsynced change(s): {', '.join(dropped)}"
            )

        if self.watcher is not None:
            self.watcher.stop()

        if not self._wait_for_inflight(self.options.grace_period):
            self.output.warning("Gave up waiting for in-flight syncs")

        if self.sessions.is_connected:
            self.output.info("Disconnecting...")
            if self.sessions.disconnect():
                self.output.success("✓ Disconnected")
            else:
                self.output.warning("Failed to disconnect cleanly")

        self.client.close()
        self._restore_signal_handlers()

        if not failed:
            self.state = EngineState.TERMINATED

    # =========================
    # Helpers
    # =========================

    def _require_session(self) -> DevSession:
        session = self.session
        if session is None:
            raise RuntimeError("No active dev session")
        return session

    @contextmanager
    def _spinner(self, description: str) -> Iterator[None]:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.output.console,
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            progress.add_task(description, total=None)
            yield

    @contextmanager
    def _path_lock(self, path: str) -> Iterator[None]:
        # Serializes pushes of the same path; the entry lives only while used
        with self._path_locks_guard:
            entry = self._path_locks.setdefault(path, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._path_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._path_locks[path]

    def _count(self, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            self.stats[key] += amount

    @contextmanager
    def _track_inflight(self) -> Iterator[None]:
        with self._inflight_cond:
            self._inflight += 1
        try:
            yield
        finally:
            with self._inflight_cond:
                self._inflight -= 1
                self._inflight_cond.notify_all()

    def _wait_for_inflight(self, timeout: float) -> bool:
        with self._inflight_cond:
            return self._inflight_cond.wait_for(
                lambda: self._inflight == 0, timeout=timeout
            )
