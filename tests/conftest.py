"""
Brief: Global pytest configuration and shared fixtures.

Inputs:
  - None

Outputs:
  - None
"""

import logging
import os
import signal
import sqlite3
import sys
from typing import Iterable

import pytest

# Ensure 'src' is on sys.path so 'hostsync' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from hostsync.config.config_schema import SyncConfig  # noqa: E402


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


def write_registry(path, values: Iterable[object]) -> str:
    """
    Brief: Create (or replace) a proxy_host table holding domain_names values.

    Inputs:
      - path: Database file path.
      - values: domain_names column values (JSON strings, or None).

    Outputs:
      - str: The database path.
    """
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("DROP TABLE IF EXISTS proxy_host")
        conn.execute(
            "CREATE TABLE proxy_host (id INTEGER PRIMARY KEY, domain_names TEXT, "
            "is_deleted INTEGER NOT NULL DEFAULT 0)"
        )
        conn.executemany(
            "INSERT INTO proxy_host (domain_names) VALUES (?)", [(v,) for v in values]
        )
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture
def registry_path(tmp_path):
    """
    Brief: A registry database with two proxy hosts.

    Inputs:
      - tmp_path: pytest temp directory

    Outputs:
      - str: Path to the database
    """
    return write_registry(
        tmp_path / "database.sqlite",
        ['["wiki","gitlab.example.org"]', '["wiki","nextcloud","mail.other.net"]'],
    )


@pytest.fixture
def make_config(tmp_path):
    """
    Brief: Factory building a SyncConfig rooted in tmp_path.

    Inputs:
      - tmp_path: pytest temp directory

    Outputs:
      - callable(**overrides) -> SyncConfig
    """

    def _make(**overrides) -> SyncConfig:
        values = {
            "target_address": "192.168.1.100",
            "domain_name": "hackerspace.lan",
            "external_domain": "example.org",
            "output_path": str(tmp_path / "hosts"),
            "registry_path": str(tmp_path / "database.sqlite"),
            "local_suffix": ".local",
            "debounce_seconds": 0.0,
            "poll_interval_seconds": 0.05,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make


class FakeClock:
    """Brief: Manually advanced monotonic clock for debounce tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """
    Brief: Provide a FakeClock starting at t=1000.

    Inputs:
      - None

    Outputs:
      - FakeClock
    """
    return FakeClock()


@pytest.fixture
def restore_root_logger():
    """
    Brief: Restore root logger handlers and level after init_logging() runs.

    Inputs:
      - None

    Outputs:
      - None
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
