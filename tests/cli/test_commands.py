"""Tests for CLI commands."""

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from app_lifecycle.cli.client import APIError
from app_lifecycle.cli.main import app

runner = CliRunner()

APPLICATION = {
    "id": "665f1a2b3c4d5e6f7a8b9d01",
    "post_id": "665f1a2b3c4d5e6f7a8b9e01",
    "candidate_id": "665f1a2b3c4d5e6f7a8b9c01",
    "candidate_name": "Asha Rahman",
    "candidate_role": "teacher",
    "status": "withdrawal-requested",
    "status_before_withdrawal": "approved",
    "withdrawal_note": "Relocating",
    "applied_at": "2025-01-02T00:00:00",
    "withdrawal_requested_at": "2025-02-01T10:00:00",
}


@pytest.fixture
def mock_client():
    client = MagicMock()
    targets = ["health", "withdrawals", "applications", "notifications"]
    patches = [patch(f"app_lifecycle.cli.commands.{name}.get_client", return_value=client) for name in targets]
    for p in patches:
        p.start()
    yield client
    for p in patches:
        p.stop()


class TestHealthCommand:
    def test_health_command_success(self, mock_client):
        mock_client.health.return_value = {
            "status": "healthy",
            "timestamp": "2025-01-01T00:00:00Z",
            "dependencies": [{"name": "mongodb", "status": "healthy", "latency_ms": 1.2}],
        }

        result = runner.invoke(app, ["health"])

        assert result.exit_code == 0
        assert "healthy" in result.stdout

    def test_health_command_ready(self, mock_client):
        mock_client.health_ready.return_value = {"status": "ready", "checks": {"mongodb": "ready"}}

        result = runner.invoke(app, ["health", "--ready"])

        assert result.exit_code == 0

    def test_health_command_unhealthy(self, mock_client):
        mock_client.health.return_value = {"status": "unhealthy"}

        result = runner.invoke(app, ["health"])

        assert result.exit_code == 1

    def test_health_command_degraded(self, mock_client):
        mock_client.health.return_value = {
            "status": "degraded",
            "dependencies": [{"name": "redis", "status": "unhealthy", "latency_ms": None}],
        }

        result = runner.invoke(app, ["health"])

        assert result.exit_code == 2
        assert "degraded" in result.stdout

    def test_health_command_live_api_error(self, mock_client):
        mock_client.health_live.side_effect = APIError(503, "Service Unavailable")

        result = runner.invoke(app, ["health", "--live"])

        assert result.exit_code == 1


class TestWithdrawalCommands:
    def test_list(self, mock_client):
        mock_client.list_withdrawal_requests.return_value = {
            "count": 1,
            "requests": [{"application": APPLICATION, "post": {"post_id": "P-010125-00"}}],
        }

        result = runner.invoke(app, ["withdrawals", "list"])

        assert result.exit_code == 0
        mock_client.list_withdrawal_requests.assert_called_once_with()
        assert "Pending Withdrawal Requests" in result.stdout

    def test_list_json(self, mock_client):
        mock_client.list_withdrawal_requests.return_value = {"count": 0, "requests": []}

        result = runner.invoke(app, ["--output", "json", "withdrawals", "list"])

        assert result.exit_code == 0
        assert '"count": 0' in result.stdout

    def test_approve(self, mock_client):
        mock_client.approve_withdrawal.return_value = {
            "message": "Withdrawal request approved successfully",
            "application": {**APPLICATION, "status": "withdrawn"},
        }

        result = runner.invoke(app, ["withdrawals", "approve", APPLICATION["id"]])

        assert result.exit_code == 0
        mock_client.approve_withdrawal.assert_called_once_with(APPLICATION["id"])
        assert "approved successfully" in result.stdout

    def test_decline_with_note(self, mock_client):
        mock_client.decline_withdrawal.return_value = {
            "message": "Withdrawal request rejected. Application restored to approved status.",
            "application": {**APPLICATION, "status": "approved"},
        }

        result = runner.invoke(app, ["withdrawals", "decline", APPLICATION["id"], "--note", "Term started"])

        assert result.exit_code == 0
        mock_client.decline_withdrawal.assert_called_once_with(APPLICATION["id"], "Term started")

    def test_api_error_exits_1(self, mock_client):
        mock_client.approve_withdrawal.side_effect = APIError(
            400, "This application does not have a pending withdrawal request"
        )

        result = runner.invoke(app, ["withdrawals", "approve", APPLICATION["id"]])

        assert result.exit_code == 1


class TestApplicationCommands:
    def test_set_status(self, mock_client):
        mock_client.set_status.return_value = {
            "status": "approved",
            "auto_declined_count": 2,
            "application": {**APPLICATION, "status": "approved"},
        }

        result = runner.invoke(app, ["applications", "set-status", APPLICATION["id"], "approved"])

        assert result.exit_code == 0
        mock_client.set_status.assert_called_once_with(APPLICATION["id"], "approved")
        assert "auto-declined" in result.stdout

    def test_set_status_rejects_unknown_status(self, mock_client):
        result = runner.invoke(app, ["applications", "set-status", APPLICATION["id"], "withdrawn"])

        assert result.exit_code == 1
        mock_client.set_status.assert_not_called()

    def test_for_post(self, mock_client):
        mock_client.post_applications.return_value = {"count": 1, "applications": [APPLICATION]}

        result = runner.invoke(app, ["applications", "for-post", "P-010125-00"])

        assert result.exit_code == 0
        mock_client.post_applications.assert_called_once_with("P-010125-00")


class TestNotificationCommands:
    def test_list_unread_pending(self, mock_client):
        mock_client.list_notifications.return_value = {
            "count": 1,
            "notifications": [
                {
                    "id": "n1",
                    "type": "withdrawal-request",
                    "candidate_name": "Asha Rahman",
                    "status": "pending",
                    "read": False,
                    "created_at": "2025-02-01T10:00:00",
                }
            ],
        }

        result = runner.invoke(app, ["notifications", "list", "--status", "pending", "--unread"])

        assert result.exit_code == 0
        mock_client.list_notifications.assert_called_once_with(status="pending", unread=True)


class TestConfigCommands:
    def test_set_and_show(self, isolated_cli_config):
        result = runner.invoke(app, ["config", "set", "url", "http://lifecycle:8009"])
        assert result.exit_code == 0
        assert "APP_LIFECYCLE_API_URL=http://lifecycle:8009" in isolated_cli_config.read_text()

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "http://lifecycle:8009" in result.stdout

    def test_set_unknown_key(self):
        result = runner.invoke(app, ["config", "set", "colour", "blue"])

        assert result.exit_code == 1

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "app-lifecycle version" in result.stdout
