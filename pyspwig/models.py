"""Data models for the theme dev API."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .exceptions import SpwigInvalidResponseError
from .utils import parse_iso_timestamp

# Extensions whose changes can be applied without a page reload
STYLE_EXTENSIONS = (".css",)


def _require_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SpwigInvalidResponseError(
            f"Unexpected {what} response: expected a JSON object, "
            f"got {type(data).__name__}"
        )
    return data


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    """Read a list of strings; a lone string counts as a one-item list."""
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise SpwigInvalidResponseError(
            f"Field '{key}' must be a list, got {type(value).__name__}"
        )
    return [str(item) for item in value]


def _count(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, int):
        raise SpwigInvalidResponseError(
            f"Field '{key}' must be an integer, got {type(value).__name__}"
        )
    return value


class Encoding(Enum):
    """Content encoding of a FileChange."""

    UTF8 = "utf-8"
    BASE64 = "base64"


class ReloadHint(Enum):
    """What the preview browser should do after a batch is applied."""

    STYLE_ONLY = "css"
    FULL = "full"

    @classmethod
    def from_remote(cls, value: Optional[str], paths: list[str]) -> "ReloadHint":
        """Resolve the hint for a batch.

        The remote ``reload_type`` is trusted only when it asks for a
        style-only refresh and every path in the batch is a stylesheet;
        anything else escalates to a full reload.

        Args:
            value: ``reload_type`` reported by the shop (may be None)
            paths: Paths in the batch

        Returns:
            Exactly one ReloadHint for the whole batch
        """
        all_styles = bool(paths) and all(
            p.lower().endswith(STYLE_EXTENSIONS) for p in paths
        )
        if value is None:
            return cls.STYLE_ONLY if all_styles else cls.FULL
        if value.lower() in ("css", "style", "style-only") and all_styles:
            return cls.STYLE_ONLY
        return cls.FULL


class ChangeKind(Enum):
    """Kind of filesystem observation."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchEvent:
    """A single filesystem observation, relative to the theme root."""

    path: str
    kind: ChangeKind


@dataclass
class DevSession:
    """An authenticated live-development connection to a shop."""

    token: str
    expires_at: Optional[datetime]
    preview_url: str
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DevSession":
        """Create a DevSession from the connect response.

        Args:
            data: JSON body returned by the connect endpoint

        Returns:
            DevSession instance

        Raises:
            ValueError: If the response carries no token
        """
        token = data.get("token")
        if not token or not isinstance(token, str):
            raise ValueError("Connect response did not include a session token")
        return cls(
            token=token,
            expires_at=parse_iso_timestamp(data.get("expires_at")),
            preview_url=data.get("theme_dev_url") or "/",
            message=data.get("message") or "",
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the session is past its expiry instant."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def preview_link(self, shop_url: str) -> str:
        """Absolute preview URL on the given shop."""
        if self.preview_url.startswith(("http://", "https://")):
            return self.preview_url
        return f"{shop_url.rstrip('/')}/{self.preview_url.lstrip('/')}"

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks
        return (
            f"DevSession(token='***', expires_at={self.expires_at!r}, "
            f"preview_url={self.preview_url!r})"
        )


@dataclass
class FileChange:
    """A single file's content as sent to the shop."""

    path: str
    """Slash-normalized path relative to the theme root"""

    content: str
    """UTF-8 text or base64, depending on encoding"""

    checksum: str
    """SHA-256 hex digest of the raw bytes before encoding"""

    encoding: Encoding

    def to_dict(self) -> dict[str, str]:
        """Wire representation."""
        return {
            "path": self.path,
            "content": self.content,
            "checksum": self.checksum,
            "encoding": self.encoding.value,
        }


@dataclass
class SyncResult:
    """The shop's response to a batch."""

    success: bool
    synced: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    reload_hint: ReloadHint = ReloadHint.FULL
    requested: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], requested: list[str]) -> "SyncResult":
        """Create a SyncResult from the sync endpoint response.

        Args:
            data: JSON body returned by the shop
            requested: Paths that were sent in the batch

        Returns:
            SyncResult instance

        Raises:
            SpwigInvalidResponseError: If the body is not a well-formed result
        """
        data = _require_object(data, "sync")
        synced = _string_list(data, "synced")
        errors = _string_list(data, "errors")
        success = data.get("success")
        if success is None:
            success = not errors
        reload_type = data.get("reload_type")
        if reload_type is not None and not isinstance(reload_type, str):
            reload_type = ReloadHint.FULL.value
        return cls(
            success=bool(success),
            synced=synced,
            errors=errors,
            reload_hint=ReloadHint.from_remote(reload_type, requested),
            requested=list(requested),
        )

    @property
    def succeeded_count(self) -> int:
        return len(self.synced)

    @property
    def failed_count(self) -> int:
        """Number of requested paths the shop did not accept."""
        if self.requested:
            return max(len(self.requested) - len(self.synced), 0)
        return len(self.errors)

    @property
    def is_partial(self) -> bool:
        return self.succeeded_count > 0 and self.failed_count > 0

    def summary(self) -> str:
        """Short "N succeeded, M failed" description."""
        return f"{self.succeeded_count} succeeded, {self.failed_count} failed"


@dataclass
class ValidationReport:
    """Result of the shop's read-only theme check."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationReport":
        data = _require_object(data, "validation")
        errors = _string_list(data, "errors")
        warnings = _string_list(data, "warnings")
        is_valid = data.get("is_valid")
        if is_valid is None:
            is_valid = not errors
        return cls(
            is_valid=bool(is_valid),
            errors=errors,
            warnings=warnings,
            error_count=_count(data, "error_count", len(errors)),
            warning_count=_count(data, "warning_count", len(warnings)),
        )


@dataclass
class ThemeManifest:
    """The parts of manifest.json the dev engine needs."""

    name: str
    path: str
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def version(self) -> Optional[str]:
        version = self.raw.get("version")
        return str(version) if version is not None else None
