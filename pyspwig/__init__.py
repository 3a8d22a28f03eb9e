"""pyspwig - live theme development for Spwig shops."""

__version__ = "2.0.0"

from .api import SpwigClient  # noqa: E402
from .exceptions import (  # noqa: E402
    SpwigAPIError,
    SpwigAuthenticationError,
    SpwigConfigError,
    SpwigConnectionError,
    SpwigError,
    SpwigInvalidResponseError,
    SpwigNetworkError,
    SpwigNotFoundError,
    SpwigPermissionError,
    SpwigThemeError,
    SpwigWatchError,
)

__all__ = [
    "__version__",
    "SpwigClient",
    "SpwigError",
    "SpwigAPIError",
    "SpwigAuthenticationError",
    "SpwigConfigError",
    "SpwigConnectionError",
    "SpwigInvalidResponseError",
    "SpwigNetworkError",
    "SpwigNotFoundError",
    "SpwigPermissionError",
    "SpwigThemeError",
    "SpwigWatchError",
]
