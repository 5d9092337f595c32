"""Pytest configuration and fixtures."""

import os

import pytest

# Settings are read at import time by the logging setup
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("SAGE_ENGINE_ENV", "test")


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["SAGE_ENGINE_ENV"] = "test"
