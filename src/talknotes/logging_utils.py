"""Logging setup for the talknotes logger."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "talknotes"
LOG_FILENAME = "talknotes.log"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(module)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(module)s: %(message)s"

# Handlers installed here carry these names so a repeat call can find them.
_FILE_HANDLER = "talknotes-file"
_CONSOLE_HANDLER = "talknotes-console"


def _drop_handler(logger: logging.Logger, name: str) -> None:
    for handler in [h for h in logger.handlers if h.get_name() == name]:
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    log_dir: str,
    level: int = logging.INFO,
    console: bool = False,
) -> tuple[logging.Logger, str]:
    """Point the ``talknotes`` logger at ``<log_dir>/talknotes.log``.

    Safe to call more than once: the file handler is replaced when
    ``log_dir`` changes and never duplicated. ``console`` mirrors records
    to stderr, which the CLI turns on for ``--verbose``.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.abspath(os.path.join(log_dir, LOG_FILENAME))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    current = next(
        (h for h in logger.handlers if h.get_name() == _FILE_HANDLER), None
    )
    if current is None or current.baseFilename != log_path:
        _drop_handler(logger, _FILE_HANDLER)
        handler = RotatingFileHandler(
            log_path, maxBytes=1_000_000, backupCount=5, encoding="utf-8", delay=True
        )
        handler.set_name(_FILE_HANDLER)
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(handler)

    _drop_handler(logger, _CONSOLE_HANDLER)
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.set_name(_CONSOLE_HANDLER)
        stream.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(stream)

    return logger, log_path
