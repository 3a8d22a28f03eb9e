"""Unit tests for the shop API client."""

from unittest.mock import patch

import httpx
import pytest

from pyspwig.api import TOKEN_HEADER, SpwigClient
from pyspwig.exceptions import (
    SpwigAPIError,
    SpwigAuthenticationError,
    SpwigConnectionError,
    SpwigInvalidResponseError,
    SpwigNetworkError,
    SpwigNotFoundError,
    SpwigPermissionError,
)
from pyspwig.models import Encoding, FileChange

SHOP = "http://shop.test"


def make_response(status_code=200, json=None, content=None, headers=None, method="GET"):
    """Build a real httpx.Response bound to a request."""
    request = httpx.Request(method, f"{SHOP}/api/theme-dev/")
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(
        status_code, content=content or b"", headers=headers, request=request
    )


class TestSpwigClient:
    """Tests for SpwigClient initialization."""

    def test_init_strips_trailing_slash(self):
        """Test that the shop URL is normalized."""
        client = SpwigClient(f"{SHOP}/")
        assert client.shop_url == SHOP
        assert client.timeout == 30.0

    def test_client_info_includes_version(self):
        """Test that client info describes the CLI and can be extended."""
        client = SpwigClient(SHOP, client_info={"port": 3000})
        assert "cli_version" in client.client_info
        assert "python_version" in client.client_info
        assert client.client_info["port"] == 3000

    def test_close_is_safe_without_requests(self):
        """Test closing a client that never made a request."""
        client = SpwigClient(SHOP)
        client.close()
        client.close()

    def test_context_manager_closes_client(self):
        """Test that leaving the context closes the httpx client."""
        with SpwigClient(SHOP) as client:
            http = client._get_client()
        assert http.is_closed


class TestAPIRequest:
    """Tests for the _request method."""

    @patch("pyspwig.api.httpx.Client.request")
    def test_successful_json_response(self, mock_request):
        """Test successful API request with JSON response."""
        mock_request.return_value = make_response(json={"data": "test"})

        client = SpwigClient(SHOP)
        result = client._request("GET", "/test")

        assert result == {"data": "test"}
        mock_request.assert_called_once()
        assert mock_request.call_args.args[1] == f"{SHOP}/test"

    @patch("pyspwig.api.httpx.Client.request")
    def test_token_sent_as_header(self, mock_request):
        """Test that the dev token goes into the X-Dev-Token header."""
        mock_request.return_value = make_response(json={})

        client = SpwigClient(SHOP)
        client._request("GET", "/test", token="tok-123")

        headers = mock_request.call_args.kwargs["headers"]
        assert headers[TOKEN_HEADER] == "tok-123"

    @patch("pyspwig.api.httpx.Client.request")
    def test_empty_response(self, mock_request):
        """Test handling of empty response."""
        mock_request.return_value = make_response(content=b"")

        client = SpwigClient(SHOP)
        assert client._request("POST", "/test") == {}

    @patch("pyspwig.api.httpx.Client.request")
    def test_html_response_raises_error(self, mock_request):
        """Test that an HTML page is treated as an authentication problem."""
        mock_request.return_value = make_response(
            content=b"<html>Login</html>", headers={"Content-Type": "text/html"}
        )

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigAuthenticationError, match="HTML instead of JSON"):
            client._request("GET", "/test")

    @patch("pyspwig.api.httpx.Client.request")
    def test_non_json_response_unexpected_type(self, mock_request):
        """Test handling of unexpected content type (not HTML, not JSON)."""
        mock_request.return_value = make_response(
            content=b"some text", headers={"Content-Type": "text/plain"}
        )

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigInvalidResponseError, match="text/plain"):
            client._request("GET", "/test")

    @patch("pyspwig.api.httpx.Client.request")
    def test_invalid_json_body(self, mock_request):
        """Test that a broken JSON body raises SpwigInvalidResponseError."""
        mock_request.return_value = make_response(
            content=b"{not json", headers={"Content-Type": "application/json"}
        )

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigInvalidResponseError, match="Invalid JSON"):
            client._request("GET", "/test")

    @pytest.mark.parametrize(
        "status_code,error_class",
        [
            (401, SpwigAuthenticationError),
            (403, SpwigPermissionError),
            (404, SpwigNotFoundError),
        ],
    )
    @patch("pyspwig.api.httpx.Client.request")
    def test_http_client_errors(self, mock_request, status_code, error_class):
        """Test mapping of 4xx status codes to typed errors."""
        mock_request.return_value = make_response(status_code, content=b"")

        client = SpwigClient(SHOP)
        with pytest.raises(error_class) as exc_info:
            client._request("GET", "/test")
        assert exc_info.value.status_code == status_code

    @patch("pyspwig.api.httpx.Client.request")
    def test_http_500_includes_remote_message(self, mock_request):
        """Test that server errors carry the remote error text."""
        mock_request.return_value = make_response(500, json={"error": "Theme locked"})

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigAPIError, match="status 500: Theme locked"):
            client._request("POST", "/test")

    @patch("pyspwig.api.httpx.Client.request")
    def test_network_error(self, mock_request):
        """Test handling of network errors."""
        mock_request.side_effect = httpx.ConnectError("Connection refused")

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigNetworkError, match="Network error"):
            client._request("GET", "/test")

    @patch("pyspwig.api.httpx.Client.request")
    def test_timeout_is_network_error(self, mock_request):
        """Test that a timeout is reported as a transport failure."""
        mock_request.side_effect = httpx.ReadTimeout("timed out")

        client = SpwigClient(SHOP, timeout=2.0)
        with pytest.raises(SpwigNetworkError, match="timed out after 2s"):
            client._request("POST", "/api/theme-dev/sync/")

    @patch("pyspwig.api.httpx.Client.request")
    def test_no_retries(self, mock_request):
        """Test that a failed request is attempted exactly once."""
        mock_request.return_value = make_response(503, content=b"")

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigAPIError):
            client._request("GET", "/test")
        assert mock_request.call_count == 1


class TestConnect:
    """Tests for the connect endpoint."""

    @patch("pyspwig.api.httpx.Client.request")
    def test_connect_success(self, mock_request):
        """Test a successful connect request."""
        mock_request.return_value = make_response(
            json={
                "token": "tok",
                "expires_at": "2030-01-01T00:00:00Z",
                "theme_dev_url": "/?theme_dev=1",
                "message": "admin",
            }
        )

        client = SpwigClient(SHOP)
        result = client.connect("Aurora", "/themes/aurora", "admin", "secret")

        assert result["token"] == "tok"
        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert args[1] == f"{SHOP}/api/theme-dev/connect/"
        assert kwargs["json"]["theme_name"] == "Aurora"
        assert kwargs["json"]["theme_path"] == "/themes/aurora"
        assert "client_info" in kwargs["json"]
        assert isinstance(kwargs["auth"], httpx.BasicAuth)

    @patch("pyspwig.api.httpx.Client.request")
    def test_connect_401_uses_remote_message(self, mock_request):
        """Test that a rejected connect carries the shop's message."""
        mock_request.return_value = make_response(
            401, json={"error": "Invalid credentials"}
        )

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigConnectionError, match="Invalid credentials") as exc:
            client.connect("Aurora", "/themes/aurora", "admin", "wrong")
        assert exc.value.status_code == 401

    @patch("pyspwig.api.httpx.Client.request")
    def test_connect_failure_without_message(self, mock_request):
        """Test the status-based message when the shop says nothing."""
        mock_request.return_value = make_response(502, content=b"")

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigConnectionError, match="Connection failed: 502"):
            client.connect("Aurora", "/themes/aurora", "admin", "secret")

    @patch("pyspwig.api.httpx.Client.request")
    def test_connect_html_page_keeps_message(self, mock_request):
        """Test that a login page answer explains itself."""
        mock_request.return_value = make_response(
            content=b"<html>Login</html>", headers={"Content-Type": "text/html"}
        )

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigConnectionError, match="HTML instead of JSON") as exc:
            client.connect("Aurora", "/themes/aurora", "admin", "secret")
        assert "Connection failed" not in exc.value.message

    @patch("pyspwig.api.httpx.Client.request")
    def test_connect_network_error(self, mock_request):
        """Test that an unreachable shop fails the connect."""
        mock_request.side_effect = httpx.ConnectError("Connection refused")

        client = SpwigClient(SHOP)
        with pytest.raises(SpwigConnectionError, match="Network error"):
            client.connect("Aurora", "/themes/aurora", "admin", "secret")


class TestThemeOperations:
    """Tests for sync, validate, delete and disconnect."""

    @patch("pyspwig.api.httpx.Client.request")
    def test_sync_files_payload(self, mock_request):
        """Test that files are sent in wire format with the token."""
        mock_request.return_value = make_response(
            json={"success": True, "synced": ["a.css"], "errors": []}
        )
        change = FileChange("a.css", "body{}", "abc", Encoding.UTF8)

        client = SpwigClient(SHOP)
        result = client.sync_files("tok", [change])

        assert result["synced"] == ["a.css"]
        kwargs = mock_request.call_args.kwargs
        assert kwargs["json"] == {
            "files": [
                {
                    "path": "a.css",
                    "content": "body{}",
                    "checksum": "abc",
                    "encoding": "utf-8",
                }
            ]
        }
        assert kwargs["headers"][TOKEN_HEADER] == "tok"

    @patch("pyspwig.api.httpx.Client.request")
    def test_validate_theme(self, mock_request):
        """Test the validate endpoint is a GET."""
        mock_request.return_value = make_response(json={"is_valid": True})

        client = SpwigClient(SHOP)
        assert client.validate_theme("tok") == {"is_valid": True}
        assert mock_request.call_args.args[0] == "GET"
        assert mock_request.call_args.args[1].endswith("/api/theme-dev/validate/")

    @patch("pyspwig.api.httpx.Client.request")
    def test_delete_files(self, mock_request):
        """Test that deleted paths are posted."""
        mock_request.return_value = make_response(json={"success": True})

        client = SpwigClient(SHOP)
        client.delete_files("tok", ["old.css"])

        assert mock_request.call_args.kwargs["json"] == {"paths": ["old.css"]}

    @patch("pyspwig.api.httpx.Client.request")
    def test_disconnect(self, mock_request):
        """Test the disconnect endpoint."""
        mock_request.return_value = make_response(content=b"")

        client = SpwigClient(SHOP)
        assert client.disconnect("tok") == {}
        assert mock_request.call_args.args[1].endswith("/api/theme-dev/disconnect/")
