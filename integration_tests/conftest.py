"""Pytest configuration for integration tests."""

import pytest

from fitcal.config import get_settings


# Mark all tests in this directory as integration tests
def pytest_collection_modifyitems(items):
    """Add integration marker to all tests in this directory."""
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """A scratch data directory used by both the CLI and the API."""
    path = tmp_path / "fitcal"
    monkeypatch.setenv("FITCAL_DATA_DIR", str(path))
    monkeypatch.setenv("FITCAL_DEFAULT_USER_ID", "cli-user")
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()
