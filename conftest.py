"""Pytest configuration and shared fixtures for the provider toolkit."""

# pylint: disable=wrong-import-position

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest


@pytest.fixture(autouse=True)
def mock_aws_env_file(tmp_path, monkeypatch):
    """Auto-use fixture that points AWS_ENV_FILE at a throwaway .env with mock credentials.

    Keeps a developer's real ~/.env out of every test that loads credentials
    or settings through python-dotenv.
    """
    env_file = tmp_path / ".env"
    env_file.write_text("AWS_ACCESS_KEY_ID=test_key\nAWS_SECRET_ACCESS_KEY=test_secret\n")
    monkeypatch.setenv("AWS_ENV_FILE", str(env_file))
    yield str(env_file)
