"""Shared pytest configuration and fixtures for keyrelay tests."""

import os

import pytest

from keyrelay.core.config import Config
from keyrelay.core.provider import ProviderRegistry, reset_provider_registry
from keyrelay.engine import reset_key_relay
from tests.fixtures.helpers import FakeClock

# Import HTTP mocking fixtures from fixtures module
pytest_plugins = ["tests.fixtures.mock_http"]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from real keys, real state files and shared singletons."""
    for key in list(os.environ):
        if key.endswith("_API_KEY") or key.startswith("KEYRELAY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("KEYRELAY_HOME", str(tmp_path / "home"))
    Config.reset_singleton()

    reset_provider_registry()
    reset_key_relay()
    yield
    reset_provider_registry()
    reset_key_relay()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return ProviderRegistry(clock=clock)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests touching the filesystem or several components"
    )
