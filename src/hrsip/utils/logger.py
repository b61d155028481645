# src/hrsip/utils/logger.py
from __future__ import annotations

import logging
from typing import Optional

_LOGGER_NAME = "hrsip"
_CONSOLE_FORMAT = "%(levelname)-7s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(process)d - %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


def _reset_handlers(logger: logging.Logger) -> None:
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


def setup_logger(
    log_file: Optional[str] = "hrsip.log",
    console_level: int = logging.INFO,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the 'hrsip' logger tree.

    Console gets `console_level` and up in a short format. The log file, when
    given, gets everything at DEBUG with timestamps and the worker pid, since
    pool workers log through the same tree. Library warnings (pandas, scipy)
    are captured into the file via the 'py.warnings' logger.

    Later calls are no-ops unless `force` is set, in which case the existing
    handlers are closed and replaced.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if getattr(setup_logger, "_configured", False) and not force:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    _reset_handlers(logger)

    warn_logger = logging.getLogger("py.warnings")
    _reset_handlers(warn_logger)

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(ch)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)
        warn_logger.addHandler(fh)
        warn_logger.propagate = False
        logging.captureWarnings(True)
    else:
        warn_logger.propagate = True
        logging.captureWarnings(False)

    setup_logger._configured = True  # type: ignore[attr-defined]
    return logger
