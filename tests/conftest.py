import os

# Must be set before the settings are first read
os.environ.setdefault("LEDGER_ENV", "testing")

import pytest

from config import configure_logging, get_settings
from repositories import reset_repositories

configure_logging(get_settings())


@pytest.fixture(autouse=True)
def reset_state():
    """Reset repositories before each test."""
    reset_repositories()
