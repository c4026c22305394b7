"""Logging utilities for media-transform."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


_LOGGER_SETUP = False
_ROOT_LOGGER_NAME = "media_transform"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Setup root logger with console and optional file handlers.

    Parameters
    ----------
    verbose: bool
        If True, set level to DEBUG; otherwise INFO.
    log_file: Optional[Path]
        If provided, add a file handler to write logs to this path.

    Returns
    -------
    logging.Logger
        Root logger instance.
    """
    global _LOGGER_SETUP

    root_logger = logging.getLogger(_ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Reconfiguring replaces handlers installed by an earlier call or by get_logger
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8", errors="backslashreplace")
        file_handler.setLevel(logging.DEBUG)  # File always gets DEBUG level
        file_handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.propagate = False
    _LOGGER_SETUP = True
    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger in the ``media_transform`` namespace.

    Module loggers are children of the package logger, so they pick up
    whatever handlers :func:`setup_logging` installs later. Before setup, the
    package logger gets a basic console handler so library use still prints.
    """
    if name is None or name == _ROOT_LOGGER_NAME:
        logger = logging.getLogger(_ROOT_LOGGER_NAME)
    elif name.startswith(_ROOT_LOGGER_NAME + "."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")

    if not _LOGGER_SETUP:
        root_logger = logging.getLogger(_ROOT_LOGGER_NAME)
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
            root_logger.addHandler(handler)
            root_logger.setLevel(logging.INFO)
            root_logger.propagate = False
    return logger
