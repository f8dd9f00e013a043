"""HTTP client for CLI commands."""

import asyncio
from typing import Any

import httpx

from app_lifecycle.cli.config import get_config


class APIError(Exception):
    """API request error."""

    def __init__(self, status_code: int, message: str, details: dict | None = None):
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{status_code}] {message}")


class APIClient:
    """HTTP client for the Application Lifecycle API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: int | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.api_url).rstrip("/")
        self.token = token or config.api_token
        self.timeout = timeout or config.api_timeout

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Return the JSON body, raising APIError with the service's error message on failure."""
        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                raise APIError(response.status_code, response.text)
            message = error_data.get("error") or error_data.get("detail") or "Unknown error"
            details = {key: error_data[key] for key in ("code", "correlation_id") if error_data.get(key)}
            raise APIError(response.status_code, str(message), details)

        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            response = await client.request(
                method,
                path,
                headers=self._get_headers(),
                params=params,
                json=json,
            )
            return self._handle_response(response)

    def request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        """Make a synchronous HTTP request (runs async internally)."""
        return asyncio.run(self._request(method, path, params, json))

    # Health
    def health(self) -> dict[str, Any]:
        return self.request("GET", "/health")

    def health_live(self) -> dict[str, Any]:
        return self.request("GET", "/health/live")

    def health_ready(self) -> dict[str, Any]:
        return self.request("GET", "/health/ready")

    # Withdrawals
    def list_withdrawal_requests(self) -> dict[str, Any]:
        return self.request("GET", "/admin/withdrawal-requests")

    def approve_withdrawal(self, application_id: str) -> dict[str, Any]:
        return self.request(
            "POST", "/admin/withdrawal-requests/approve", json={"application_id": application_id}
        )

    def decline_withdrawal(self, application_id: str, admin_note: str | None = None) -> dict[str, Any]:
        body = {"application_id": application_id}
        if admin_note:
            body["admin_note"] = admin_note
        return self.request("POST", "/admin/withdrawal-requests/decline", json=body)

    # Applications
    def set_status(self, application_id: str, status: str) -> dict[str, Any]:
        return self.request(
            "PATCH", "/applications/status", json={"application_id": application_id, "status": status}
        )

    def post_applications(self, post_ref: str) -> dict[str, Any]:
        return self.request("GET", f"/posts/{post_ref}/applications")

    # Notifications
    def list_notifications(self, status: str | None = None, unread: bool | None = None) -> dict[str, Any]:
        params = {}
        if status:
            params["status"] = status
        if unread is not None:
            params["unread"] = str(unread).lower()
        return self.request("GET", "/admin/notifications", params=params)


_client: APIClient | None = None


def get_client() -> APIClient:
    """Get the global API client."""
    global _client
    if _client is None:
        _client = APIClient()
    return _client


def reset_client() -> None:
    """Reset the global client (useful for testing)."""
    global _client
    _client = None
