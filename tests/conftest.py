"""
Shared pytest setup: alog configuration from the LOG_* environment and an
isolated descriptor pool fixture for descriptor tests
"""

# Standard
import os

# Third Party
from google.protobuf import descriptor_pool
import pytest

# First Party
import alog

# Global logging config
alog.configure(
    default_level=os.environ.get("LOG_LEVEL", "info"),
    filters=os.environ.get("LOG_FILTERS", ""),
    formatter="json" if os.environ.get("LOG_JSON", "").lower() == "true" else "pretty",
    thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
)


@pytest.fixture
def temp_dpool():
    """Fixture to isolate the descriptor pool used in each test"""
    yield descriptor_pool.DescriptorPool()
