"""Shared test fixtures."""

import tempfile
from pathlib import Path

import pytest


class ManualTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()

    @property
    def active(self):
        return self.started and not self.cancelled and not self.fired


class ManualTimers:
    """Timer factory that records every timer it creates."""

    def __init__(self):
        self.created = []

    def __call__(self, interval, function):
        timer = ManualTimer(interval, function)
        self.created.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.created if t.active]

    def fire_all(self):
        """Fire every active timer, including ones scheduled while firing."""
        fired = 0
        while self.active:
            for timer in self.active:
                timer.fire()
                fired += 1
        return fired


@pytest.fixture
def timers():
    """Provide a manual timer factory."""
    return ManualTimers()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def theme_dir(temp_dir):
    """Create a minimal theme: manifest, tokens and a logo."""
    (temp_dir / "manifest.json").write_text('{"name": "Aurora", "version": "1.0.0"}')
    (temp_dir / "tokens.json").write_text('{"colors": {"primary": "#336699"}}')
    (temp_dir / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")
    return temp_dir
