"""Tests for CLI HTTP client."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app_lifecycle.cli.client import APIClient, APIError


@pytest.fixture
def client():
    return APIClient(base_url="http://localhost:8009/", token="admin-token", timeout=5)


class TestAPIError:
    def test_api_error_message(self):
        error = APIError(404, "Application not found")
        assert str(error) == "[404] Application not found"
        assert error.status_code == 404
        assert error.details == {}


class TestAPIClient:
    def test_client_from_config(self):
        with patch("app_lifecycle.cli.client.get_config") as mock_config:
            mock_config.return_value = MagicMock(
                api_url="http://lifecycle:8009", api_token=None, api_timeout=30
            )
            client = APIClient()

        assert client.base_url == "http://lifecycle:8009"
        assert client.token is None
        assert "Authorization" not in client._get_headers()

    def test_headers_with_token(self, client):
        assert client.base_url == "http://localhost:8009"
        assert client._get_headers()["Authorization"] == "Bearer admin-token"

    def test_handle_success(self, client):
        response = httpx.Response(200, json={"success": True, "count": 0})

        assert client._handle_response(response) == {"success": True, "count": 0}

    def test_handle_error_envelope(self, client):
        response = httpx.Response(
            409,
            json={
                "success": False,
                "error": "You have already applied to this post.",
                "code": "ERR_2003",
                "correlation_id": "corr-1",
            },
        )

        with pytest.raises(APIError) as exc_info:
            client._handle_response(response)

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "You have already applied to this post."
        assert exc_info.value.details == {"code": "ERR_2003", "correlation_id": "corr-1"}

    def test_handle_non_json_error(self, client):
        response = httpx.Response(502, text="Bad Gateway")

        with pytest.raises(APIError) as exc_info:
            client._handle_response(response)

        assert exc_info.value.message == "Bad Gateway"


class TestEndpoints:
    def test_approve_withdrawal(self, client):
        with patch.object(client, "request", return_value={"success": True}) as mock_request:
            client.approve_withdrawal("abc")

        mock_request.assert_called_once_with(
            "POST", "/admin/withdrawal-requests/approve", json={"application_id": "abc"}
        )

    def test_decline_withdrawal_with_note(self, client):
        with patch.object(client, "request", return_value={}) as mock_request:
            client.decline_withdrawal("abc", "Course started")

        mock_request.assert_called_once_with(
            "POST",
            "/admin/withdrawal-requests/decline",
            json={"application_id": "abc", "admin_note": "Course started"},
        )

    def test_set_status(self, client):
        with patch.object(client, "request", return_value={}) as mock_request:
            client.set_status("abc", "approved")

        mock_request.assert_called_once_with(
            "PATCH", "/applications/status", json={"application_id": "abc", "status": "approved"}
        )

    def test_list_notifications_params(self, client):
        with patch.object(client, "request", return_value={}) as mock_request:
            client.list_notifications(status="pending", unread=True)

        mock_request.assert_called_once_with(
            "GET", "/admin/notifications", params={"status": "pending", "unread": "true"}
        )

    def test_request_goes_through_httpx(self, client):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"path": request.url.path, "auth": request.headers["authorization"]})
        )
        real_async_client = httpx.AsyncClient

        def make_client(**kwargs):
            return real_async_client(transport=transport, **kwargs)

        with patch("app_lifecycle.cli.client.httpx.AsyncClient", side_effect=make_client):
            data = client.health_live()

        assert data == {"path": "/health/live", "auth": "Bearer admin-token"}
