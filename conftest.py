"""
Root conftest.py for pytest configuration

Forces the test environment before any application module reads settings,
and applies package markers based on test location.
"""
import os
from pathlib import Path

import pytest

os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ.setdefault("LINKBAY_API_KEY", "test-api-key")
os.environ.setdefault("LINKBAY_API_URL", "https://core.test")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

PACKAGE_MARKERS = {"core", "pipeline", "plugins", "checkout", "gateway", "api"}


def pytest_collection_modifyitems(config, items):
    """Mark every test under tests/unit as unit, plus its package marker"""
    for item in items:
        parts = Path(str(item.fspath)).parts
        if "unit" in parts:
            item.add_marker(pytest.mark.unit)
            index = parts.index("unit")
            if index + 1 < len(parts) and parts[index + 1] in PACKAGE_MARKERS:
                item.add_marker(getattr(pytest.mark, parts[index + 1]))
