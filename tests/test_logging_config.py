"""
Brief: Tests for hostsync.config.logging_config.init_logging and formatters.

Inputs:
  - None

Outputs:
  - None
"""

import logging
import re
from pathlib import Path

import pytest

from hostsync.config.logging_config import (
    BracketLevelFormatter,
    init_logging,
    level_from_name,
)


pytestmark = pytest.mark.usefixtures("restore_root_logger")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("WARN", logging.WARNING),
        ("warning", logging.WARNING),
        ("Error", logging.ERROR),
        ("crit", logging.CRITICAL),
        ("bogus", logging.INFO),
        (None, logging.INFO),
    ],
)
def test_level_from_name(name, expected):
    """Brief: Level names map case-insensitively with an INFO fallback."""
    assert level_from_name(name) == expected


def test_init_logging_adds_stderr_handler():
    """
    Brief: init_logging configures root logger with a stderr handler by default.

    Inputs:
      - cfg: minimal dict with level

    Outputs:
      - None: Asserts StreamHandler present and level applied
    """
    init_logging({"level": "debug"})
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(type(h) is logging.StreamHandler for h in root.handlers)


def test_init_logging_without_stderr_has_no_handlers():
    """Brief: stderr: false with no file leaves the root logger without handlers."""
    init_logging({"stderr": False})
    assert logging.getLogger().handlers == []


def test_init_logging_file_handler_writes(tmp_path):
    """
    Brief: init_logging creates parent directories and writes formatted entries.

    Inputs:
      - cfg: file path and level

    Outputs:
      - None: Asserts file created and contains tagged message
    """
    log_path = tmp_path / "logs" / "hostsync.log"
    init_logging({"level": "info", "stderr": False, "file": str(log_path)})
    logging.getLogger("hostsync.test").info("file message")
    logging.getLogger("hostsync.test").debug("hidden")
    for h in logging.getLogger().handlers:
        h.flush()

    content = Path(log_path).read_text()
    assert re.search(
        r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z \[info\] hostsync.test: file message$",
        content,
        re.M,
    )
    assert "hidden" not in content


def test_bracket_formatter_tags():
    """Brief: Each level gets its lowercase bracket tag."""
    fmt = BracketLevelFormatter(fmt="%(level_tag)s %(message)s")
    for level, tag in [
        (logging.DEBUG, "[debug]"),
        (logging.WARNING, "[warn]"),
        (logging.CRITICAL, "[crit]"),
        (5, "[lvl5]"),
    ]:
        record = logging.LogRecord("x", level, __file__, 1, "msg", None, None)
        assert fmt.format(record) == f"{tag} msg"

