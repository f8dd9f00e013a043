import os
from unittest.mock import patch

import pytest

from app_lifecycle.cli.client import reset_client
from app_lifecycle.cli.config import reset_config


@pytest.fixture(autouse=True)
def isolated_cli_config(tmp_path):
    """Keep CLI tests away from the real ~/.config and from each other's env changes."""
    config_file = tmp_path / "config.env"
    with patch("app_lifecycle.cli.config.get_config_file", return_value=config_file), patch.dict(os.environ):
        for key in [k for k in os.environ if k.startswith("APP_LIFECYCLE_")]:
            del os.environ[key]
        reset_config()
        reset_client()
        yield config_file
    reset_config()
    reset_client()
