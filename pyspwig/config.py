"""Configuration management for pyspwig.

Values are resolved from environment variables first, then from the
config file at ``~/.config/pyspwig/config``, then from built-in defaults.
"""

import os
from pathlib import Path
from typing import Optional

from .exceptions import SpwigConfigError

DEFAULT_TIMEOUT: float = 30.0
DEFAULT_DEBOUNCE_MS: int = 200
DEFAULT_STABILITY_MS: int = 100
DEFAULT_GRACE_PERIOD: float = 5.0
DEFAULT_PORT: int = 3000

# Keys that may be persisted. Passwords are never written to disk.
SAVEABLE_KEYS = ("SPWIG_SHOP_URL", "SPWIG_USERNAME")


class Config:
    """Layered configuration (environment > config file > defaults)."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path.home() / ".config" / "pyspwig"
        self.config_file = self.config_dir / "config"

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_file

    def _read_file(self) -> dict[str, str]:
        """Read ``KEY=value`` pairs from the config file."""
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            text = self.config_file.read_text(encoding="utf-8")
        except OSError:
            return values

        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
        return values

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a raw value by key."""
        env_value = os.environ.get(key)
        if env_value:
            return env_value
        return self._read_file().get(key, default)

    def _get_number(self, key: str, default: float) -> float:
        raw = self.get(key)
        if raw is None or raw == "":
            return default
        try:
            value = float(raw)
        except ValueError as e:
            raise SpwigConfigError(f"{key} must be a number, got {raw!r}") from e
        if value < 0:
            raise SpwigConfigError(f"{key} must not be negative, got {raw!r}")
        return value

    @property
    def shop_url(self) -> Optional[str]:
        """Default shop URL."""
        url = self.get("SPWIG_SHOP_URL")
        return url.rstrip("/") if url else None

    @property
    def username(self) -> Optional[str]:
        """Default admin username."""
        return self.get("SPWIG_USERNAME")

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._get_number("SPWIG_TIMEOUT", DEFAULT_TIMEOUT)

    @property
    def debounce_ms(self) -> int:
        """Debounce window in milliseconds."""
        return int(self._get_number("SPWIG_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS))

    def is_configured(self) -> bool:
        """Check whether a default shop URL is available."""
        return bool(self.shop_url)

    def save(self, key: str, value: str) -> None:
        """Persist a single value to the config file.

        Args:
            key: One of ``SAVEABLE_KEYS``
            value: Value to store

        Raises:
            SpwigConfigError: If the key may not be persisted
        """
        if key not in SAVEABLE_KEYS:
            raise SpwigConfigError(f"Refusing to store {key} in the config file")

        values = self._read_file()
        values[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        lines = [f"{k}={v}" for k, v in sorted(values.items())]
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        # Restrict permissions (read/write for owner only)
        self.config_file.chmod(0o600)


config = Config()
