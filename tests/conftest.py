"""
Global pytest configuration and fixtures for the QuickBooks sync test suite.
"""

from tests.fixtures.fake_db import *  # noqa: F403, F401
from tests.fixtures.qbo_fixtures import *  # noqa: F403, F401
