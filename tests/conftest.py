# tests/conftest.py
"""Shared fixtures for svg_sanitizer tests."""

import logging
import sys
from pathlib import Path

import pytest

# Add src (the package) and tests (shared fixtures) to the path so tests run
# without an editable install
for _path in (Path(__file__).parent.parent / "src", Path(__file__).parent):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from svg_sanitizer.types import SanitizationOptions  # noqa: E402
from svg_sanitizer.utils import LOGGER_NAME  # noqa: E402

# =============================================================================
# Options
# =============================================================================


@pytest.fixture
def default_options() -> SanitizationOptions:
    return SanitizationOptions()


@pytest.fixture
def uri_options() -> SanitizationOptions:
    return SanitizationOptions(allow_uris=True)


@pytest.fixture
def strict_options() -> SanitizationOptions:
    return SanitizationOptions(strict_property_whitelist=True)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def sanitizer_logs(caplog):
    """Capture the package logger at INFO and return the caplog fixture."""
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    return caplog
