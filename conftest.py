"""
Pytest configuration and fixtures for price trend monitor tests.
"""

import pytest
from hypothesis import settings, Verbosity
import os
import logging

# Configure Hypothesis for faster test runs
settings.register_profile("fast", max_examples=25, deadline=5000, verbosity=Verbosity.quiet)
settings.register_profile("thorough", max_examples=200, deadline=30000, verbosity=Verbosity.normal)

# Use fast profile by default
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "fast"))


@pytest.fixture
def temp_db_path(tmp_path):
    """Fresh database path for each test."""
    return str(tmp_path / "test_prices.db")


@pytest.fixture
def db_manager(temp_db_path):
    """Initialized SQLite manager on a fresh database."""
    from price_trend_monitor.data.sqlite_database import SQLiteDatabaseManager

    manager = SQLiteDatabaseManager(temp_db_path)
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def repository(db_manager):
    """Price repository on a fresh database."""
    from price_trend_monitor.data.repository import PriceRepository

    return PriceRepository(db_manager)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove PTM_* overrides so configuration tests start from defaults."""
    for key in ("PTM_DB_PATH", "PTM_LOG_LEVEL", "PTM_LOG_FILE", "PTM_OWNER"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def pytest_configure(config):
    """Configure pytest with custom settings."""
    logging.getLogger("price_trend_monitor").setLevel(logging.WARNING)
    logging.getLogger("hypothesis").setLevel(logging.WARNING)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        # Mark property-based tests
        if "property" in item.name.lower() or "properties" in item.fspath.basename:
            item.add_marker(pytest.mark.property)

        if "integration" in item.fspath.basename:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
