"""Named console loggers for the intake pipeline, CLI and HTTP app.

Every module asks for its own logger (`get_logger("intake-mapper")`) and keeps
it as a module-level `LOG`. Mapper decisions are DEBUG, store and order
summaries INFO, fail-open loads WARNING.
"""

import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MARKER = "_order_intake_configured"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _level_from_env(value: Optional[str]) -> int:
    if not value:
        return logging.INFO
    return _LEVELS.get(value.upper().strip(), logging.INFO)


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return the intake logger called `name`, setting it up on first use.

    LOG_LEVEL picks the level (INFO by default); LOG_FILE, when set, gets a
    copy of every record. Records do not propagate to the root logger, so
    embedding apps (uvicorn) do not print them twice.
    """
    logger = logging.getLogger(name)
    if getattr(logger, _MARKER, False):
        return logger

    level = _level_from_env(os.environ.get("LOG_LEVEL"))
    logger.setLevel(level)
    _attach(logger, logging.StreamHandler(), level)

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level)
        except OSError:
            logger.warning("LOG_FILE %s could not be opened; logging to console only", log_file)

    logger.propagate = False
    setattr(logger, _MARKER, True)
    return logger
