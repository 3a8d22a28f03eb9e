"""API client for the Spwig theme development endpoints."""

from __future__ import annotations

import logging
import platform
from typing import Any

import httpx

from . import __version__
from .config import DEFAULT_TIMEOUT
from .exceptions import (
    SpwigAPIError,
    SpwigAuthenticationError,
    SpwigConnectionError,
    SpwigInvalidResponseError,
    SpwigNetworkError,
    SpwigNotFoundError,
    SpwigPermissionError,
)
from .models import FileChange
from .utils import join_url

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Dev-Token"

CONNECT_ENDPOINT = "/api/theme-dev/connect/"
SYNC_ENDPOINT = "/api/theme-dev/sync/"
VALIDATE_ENDPOINT = "/api/theme-dev/validate/"
DELETE_ENDPOINT = "/api/theme-dev/delete/"
DISCONNECT_ENDPOINT = "/api/theme-dev/disconnect/"


def default_client_info() -> dict[str, str]:
    """Describe this client to the shop."""
    return {
        "cli_version": __version__,
        "python_version": platform.python_version(),
        "os": platform.system().lower(),
    }


def _extract_error_message(response: httpx.Response) -> str | None:
    """Pull a human-readable message out of an error response body."""
    try:
        if response.content:
            error_data = response.json()
            if isinstance(error_data, dict):
                msg = (
                    error_data.get("error")
                    or error_data.get("message")
                    or error_data.get("detail")
                )
                if msg:
                    return str(msg)
    except ValueError:
        # Body is not JSON, fall back to the status-based message
        pass
    return None


class SpwigClient:
    """Client for a shop's theme development API.

    Every call is a single attempt. Retrying is left to the caller, since a
    failed sync is superseded by the next debounced change anyway.
    """

    def __init__(
        self,
        shop_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client_info: dict[str, Any] | None = None,
    ):
        """Initialize the client.

        Args:
            shop_url: Base URL of the shop (e.g. http://localhost:8000)
            timeout: Per-request timeout in seconds (default: 30.0)
            client_info: Extra metadata sent with the connect request
        """
        self.shop_url = shop_url.rstrip("/")
        self.timeout = timeout
        self.client_info = default_client_info()
        if client_info:
            self.client_info.update(client_info)

        self._client: httpx.Client | None = None

    def __enter__(self) -> SpwigClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> SpwigAPIError:
        """Translate an HTTP error status into a typed exception.

        Args:
            e: The HTTP error exception

        Returns:
            Exception to raise
        """
        status_code = e.response.status_code
        remote_msg = _extract_error_message(e.response)

        if status_code == 401:
            return SpwigAuthenticationError(
                remote_msg or "Invalid credentials or expired dev session",
                status_code,
            )
        elif status_code == 403:
            return SpwigPermissionError(
                remote_msg or "Access forbidden - check your admin permissions",
                status_code,
            )
        elif status_code == 404:
            return SpwigNotFoundError(
                remote_msg or "Resource not found - is theme development enabled?",
                status_code,
            )

        error_msg = f"API request failed with status {status_code}"
        if remote_msg:
            error_msg = f"{error_msg}: {remote_msg}"
        return SpwigAPIError(error_msg, status_code)

    def _request(
        self,
        method: str,
        endpoint: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Make a single API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            token: Dev session token, sent as the X-Dev-Token header
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for an empty body)

        Raises:
            SpwigAPIError: If the request fails
        """
        url = join_url(self.shop_url, endpoint)
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers[TOKEN_HEADER] = token

        logger.debug(f"{method} {url}")
        client = self._get_client()

        try:
            response = client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e) from e
        except httpx.TimeoutException as e:
            raise SpwigNetworkError(
                f"Request timed out after {self.timeout:g}s: {method} {endpoint}"
            ) from e
        except httpx.RequestError as e:
            raise SpwigNetworkError(f"Network error: {e}") from e

        # Check if response is JSON
        content_type = response.headers.get("Content-Type", "")
        if response.content and "application/json" not in content_type:
            # An HTML page usually means a login redirect
            if "text/html" in content_type:
                raise SpwigAuthenticationError(
                    "Shop returned HTML instead of JSON - check your credentials",
                    response.status_code,
                )
            raise SpwigInvalidResponseError(
                f"Unexpected response type: {content_type}", response.status_code
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise SpwigInvalidResponseError(
                "Invalid JSON response from shop", response.status_code
            ) from e

    # =========================
    # Session Operations
    # =========================

    def connect(
        self,
        theme_name: str,
        theme_path: str,
        username: str,
        password: str,
    ) -> dict[str, Any]:
        """Open a dev session.

        Args:
            theme_name: Theme name from manifest.json
            theme_path: Absolute local path of the theme
            username: Admin username
            password: Admin password

        Returns:
            Connect response with token, expires_at, theme_dev_url and message

        Raises:
            SpwigConnectionError: If the shop refuses or cannot be reached
        """
        payload = {
            "theme_name": theme_name,
            "theme_path": theme_path,
            "client_info": self.client_info,
        }
        try:
            result = self._request(
                "POST",
                CONNECT_ENDPOINT,
                json=payload,
                auth=httpx.BasicAuth(username, password),
            )
        except SpwigConnectionError:
            raise
        except SpwigAPIError as e:
            if e.status_code is not None:
                raise self._connection_error(e) from e
            raise SpwigConnectionError(e.message) from e

        if not isinstance(result, dict):
            raise SpwigConnectionError("Unexpected connect response from shop")
        return result

    @staticmethod
    def _connection_error(e: SpwigAPIError) -> SpwigConnectionError:
        cause = e.__cause__
        if isinstance(cause, httpx.HTTPStatusError):
            message = _extract_error_message(cause.response) or (
                f"Connection failed: {e.status_code}"
            )
        else:
            # Raised after a 2xx, e.g. an HTML login page
            message = e.message
        return SpwigConnectionError(message, e.status_code)

    def disconnect(self, token: str) -> Any:
        """Close a dev session on the shop."""
        return self._request("POST", DISCONNECT_ENDPOINT, token=token)

    # =========================
    # Theme Operations
    # =========================

    def sync_files(self, token: str, files: list[FileChange]) -> dict[str, Any]:
        """Send file contents to the shop.

        Args:
            token: Dev session token
            files: Files to apply

        Returns:
            Sync response with success, synced, errors and reload_type
        """
        payload = {"files": [f.to_dict() for f in files]}
        result: dict[str, Any] = self._request(
            "POST", SYNC_ENDPOINT, token=token, json=payload
        )
        return result

    def validate_theme(self, token: str) -> dict[str, Any]:
        """Ask the shop to check the theme it currently holds.

        Returns:
            Response with is_valid, errors, warnings, error_count, warning_count
        """
        result: dict[str, Any] = self._request("GET", VALIDATE_ENDPOINT, token=token)
        return result

    def delete_files(self, token: str, paths: list[str]) -> dict[str, Any]:
        """Tell the shop that files were removed locally.

        Args:
            token: Dev session token
            paths: Theme-relative paths that no longer exist

        Returns:
            Response in the same shape as sync_files
        """
        result: dict[str, Any] = self._request(
            "POST", DELETE_ENDPOINT, token=token, json={"paths": paths}
        )
        return result
