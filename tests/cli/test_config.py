"""Tests for CLI configuration."""

import os
from pathlib import Path
from unittest.mock import patch

from app_lifecycle.cli.config import (
    CLIConfig,
    get_config,
    get_config_dir,
    load_config,
    reset_config,
    save_config,
)


class TestCLIConfig:
    """Tests for CLIConfig class."""

    def test_default_values(self):
        config = CLIConfig()
        assert config.api_url == "http://localhost:8009"
        assert config.api_token is None
        assert config.api_timeout == 30
        assert config.output_format == "table"

    def test_from_environment(self):
        with patch.dict(
            os.environ,
            {
                "APP_LIFECYCLE_API_URL": "http://test:9000",
                "APP_LIFECYCLE_API_TOKEN": "test-token",
                "APP_LIFECYCLE_API_TIMEOUT": "60",
            },
        ):
            config = CLIConfig()
            assert config.api_url == "http://test:9000"
            assert config.api_token == "test-token"
            assert config.api_timeout == 60


class TestConfigDirectory:
    def test_get_config_dir_creates_directory(self, tmp_path):
        with patch("app_lifecycle.cli.config.Path.home", return_value=tmp_path):
            config_dir = get_config_dir()
            assert config_dir == tmp_path / ".config" / "app-lifecycle"
            assert config_dir.exists()


class TestSaveAndLoad:
    def test_save_config_writes_prefixed_key(self, isolated_cli_config: Path):
        save_config("api_url", "http://saved:8009")

        assert "APP_LIFECYCLE_API_URL=http://saved:8009" in isolated_cli_config.read_text()

    def test_save_config_keeps_other_keys(self, isolated_cli_config: Path):
        save_config("api_url", "http://saved:8009")
        save_config("api_timeout", "10")

        content = isolated_cli_config.read_text()
        assert "APP_LIFECYCLE_API_URL=http://saved:8009" in content
        assert "APP_LIFECYCLE_API_TIMEOUT=10" in content

    def test_load_config_reads_file(self):
        save_config("output_format", "json")

        assert load_config().output_format == "json"

    def test_environment_wins_over_file(self):
        save_config("api_url", "http://from-file:8009")

        with patch.dict(os.environ, {"APP_LIFECYCLE_API_URL": "http://from-env:8009"}):
            assert load_config().api_url == "http://from-env:8009"

    def test_get_config_is_cached_until_reset(self):
        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first
