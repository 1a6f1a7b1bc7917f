import os
import tempfile

import pytest

# Set up test environment with temporary database before the package is imported
TEST_DB_PATH = tempfile.mkstemp(suffix='.db')[1]
os.environ['DB_PATH'] = TEST_DB_PATH
os.environ['EXTRACTOR_PROVIDER'] = 'mock'

from incident_scribe.core import config
from incident_scribe.core.db import init_db


@pytest.fixture
def fresh_db(tmp_path, monkeypatch):
    """Point the store at an empty database for one test."""
    monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "incidents.db"))
    init_db()
    return config.DB_PATH


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
