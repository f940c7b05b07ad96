"""Tests for docguard logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from docguard.logging import configure_logging, get_logger


def test_log_file_receives_debug_without_verbose(tmp_path: Path, capsys) -> None:
    log_file = tmp_path / "docguard.log"
    logger = configure_logging(log_file=log_file)

    get_logger("orchestrator").debug("Total staged files: %d", 3)
    for handler in logger.handlers:
        handler.flush()

    assert "Total staged files: 3" in log_file.read_text(encoding="utf-8")
    assert capsys.readouterr().err == ""


def test_stderr_handler_stays_at_warning_without_verbose(tmp_path: Path) -> None:
    logger = configure_logging(log_file=tmp_path / "docguard.log")

    levels = sorted(handler.level for handler in logger.handlers)

    assert logger.level == logging.DEBUG
    assert levels == [logging.DEBUG, logging.WARNING]


def test_unopenable_log_file_keeps_stderr_only(tmp_path: Path, capsys) -> None:
    logger = configure_logging(log_file=tmp_path / "missing" / "docguard.log")

    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
    assert "Could not open log file" in capsys.readouterr().err


def test_verbose_enables_debug_on_stderr(capsys) -> None:
    configure_logging(verbose=True)

    get_logger("cli").debug("hello")

    assert "[docguard] DEBUG hello" in capsys.readouterr().err
