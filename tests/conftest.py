"""Test configuration for pytest."""

import logging
import os
import pytest

from tests.helpers.image_factory import make_photo


@pytest.fixture(autouse=True, scope="session")
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    os.environ['PIXGUARD_LOG_LEVEL'] = 'WARNING'
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture
def photo():
    """A photo-like JPEG well above the size floor."""
    return make_photo(seed=1)


@pytest.fixture
def other_photo():
    """An unrelated photo-like JPEG."""
    return make_photo(seed=2)
