"""Per-path debouncing of filesystem events."""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class Debouncer:
    """Coalesces bursts of calls per key into one emission after a quiet window.

    Each key owns at most one pending timer. Registering a key that already
    has a pending timer cancels that timer and schedules a new one, so the
    emission happens ``delay`` seconds after the most recent call. Keys are
    independent of each other.

    Examples:
        >>> debouncer = Debouncer(delay=0.2)
        >>> debouncer.register("assets/theme.css", lambda: print("flush"))
        >>> debouncer.cancel_all()
        ['assets/theme.css']
    """

    def __init__(
        self,
        delay: float = 0.2,
        timer_factory: Optional[TimerFactory] = None,
    ):
        """Initialize the debouncer.

        Args:
            delay: Quiet window in seconds
            timer_factory: Callable(delay, fn) returning an object with
                start() and cancel(). Defaults to threading.Timer.
        """
        self.delay = delay
        self._timer_factory: TimerFactory = timer_factory or threading.Timer
        self._timers: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, key: str, emit: Callable[[], None]) -> None:
        """(Re)schedule ``emit`` for ``key``."""
        timer: Any = None

        def fire() -> None:
            with self._lock:
                # A newer registration replaced this timer
                if self._timers.get(key) is not timer:
                    return
                del self._timers[key]
            try:
                emit()
            except Exception:
                logger.exception(f"Debounced callback for {key} failed")

        timer = self._timer_factory(self.delay, fire)
        if hasattr(timer, "daemon"):
            timer.daemon = True

        with self._lock:
            previous = self._timers.get(key)
            if previous is not None:
                previous.cancel()
                logger.debug(f"Debounce reset: {key}")
            self._timers[key] = timer
        timer.start()

    def cancel(self, key: str) -> bool:
        """Drop the pending emission for ``key``.

        Returns:
            True if an emission was pending
        """
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> list[str]:
        """Drop every pending emission.

        Returns:
            Keys whose emissions were dropped, sorted
        """
        with self._lock:
            timers = self._timers
            self._timers = {}
        for timer in timers.values():
            timer.cancel()
        return sorted(timers)

    def pending(self) -> list[str]:
        """Keys with a scheduled emission, sorted."""
        with self._lock:
            return sorted(self._timers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)
