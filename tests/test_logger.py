"""
Tests for logger setup: stderr handler, optional file handler, idempotent setup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from crc_dashboard.utils.logger import get_logger, setup_logger


@pytest.fixture
def logger_name(request: pytest.FixtureRequest) -> Iterator[str]:
    name = f"crc_dashboard_test.{request.node.name}"
    yield name
    log = logging.getLogger(name)
    for h in list(log.handlers):
        h.close()
        log.removeHandler(h)


def test_log_file_receives_records(logger_name: str, tmp_path: Path) -> None:
    """With a log file, records go to both stderr and the file."""
    path = tmp_path / "logs" / "crc.log"
    log = setup_logger(logger_name, level="DEBUG", log_file=path)
    assert len(log.handlers) == 2
    log.info("Lead %s converted", "l_1")
    for h in log.handlers:
        h.flush()
    text = path.read_text(encoding="utf-8")
    assert "| INFO |" in text
    assert "Lead l_1 converted" in text


def test_setup_is_idempotent(logger_name: str) -> None:
    first = setup_logger(logger_name, level=logging.WARNING)
    again = setup_logger(logger_name, level=logging.DEBUG)
    assert again is first
    assert len(first.handlers) == 1
    assert first.level == logging.WARNING
    assert get_logger(logger_name) is first
