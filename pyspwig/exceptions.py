"""Exceptions raised by pyspwig."""

from typing import Optional


class SpwigError(Exception):
    """Base exception for all pyspwig errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SpwigAPIError(SpwigError):
    """Raised when a request to the shop fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpwigAuthenticationError(SpwigAPIError):
    """Raised when credentials or the dev token are rejected."""


class SpwigPermissionError(SpwigAPIError):
    """Raised when the account lacks theme development permissions."""


class SpwigNotFoundError(SpwigAPIError):
    """Raised when an endpoint or resource does not exist on the shop."""


class SpwigNetworkError(SpwigAPIError):
    """Raised on connection failures and timeouts."""


class SpwigInvalidResponseError(SpwigAPIError):
    """Raised when the shop returns a body that is not the expected JSON."""


class SpwigConnectionError(SpwigAPIError):
    """Raised when a dev session cannot be established."""


class SpwigConfigError(SpwigError):
    """Raised for invalid configuration values."""


class SpwigThemeError(SpwigError):
    """Raised when the theme directory or its manifest cannot be used."""


class SpwigWatchError(SpwigError):
    """Raised when the file watcher cannot be started."""
