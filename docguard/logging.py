"""Logging utilities for docguard commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "docguard"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the docguard hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the docguard logger with stderr output and an optional file sink.

    The file sink always records DEBUG; stderr stays at WARNING unless verbose.
    A log file that cannot be opened is reported and skipped.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False

    # Hooks may invoke the CLI repeatedly in one interpreter (tests, wrappers).
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[docguard] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            logger.setLevel(level)
            logger.warning("Could not open log file %s: %s", log_file, exc)
            return logger
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
