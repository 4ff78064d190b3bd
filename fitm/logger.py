# fitm/logger.py
"""
Logging for the ``fitm`` logger hierarchy.

Level, log file and rotation come from FitmConfig (``log_level``,
``log_file``, ``log_max_bytes``, ``log_backup_count``, ``log_color``).
The log file defaults to ``<FITM_HOME>/fitm.log``.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import colorlog

from fitm.paths import get_log_file

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def resolve_level(name, quiet: bool = False) -> int:
    """Map a level name from config or CLI to a logging level; ``quiet`` caps at WARNING."""
    if quiet:
        return logging.WARNING
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _console_handler(level: int, use_color: bool) -> logging.Handler:
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    if use_color:
        ch.setFormatter(colorlog.ColoredFormatter(
            fmt="%(log_color)s[%(levelname)s]%(reset)s %(name)s - %(message)s",
            log_colors=LOG_COLORS,
        ))
    else:
        ch.setFormatter(logging.Formatter("[%(levelname)s] %(name)s - %(message)s"))
    return ch


def _file_handler(cfg, level: int) -> logging.Handler:
    log_file = os.path.expanduser(cfg.get("log_file") or str(get_log_file()))
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    fh = RotatingFileHandler(
        log_file,
        maxBytes=cfg.get("log_max_bytes", 5 * 1024 * 1024),
        backupCount=cfg.get("log_backup_count", 5)
    )
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    return fh


def setup_fitm_logger(cfg, log_to_console: bool = False, log_to_file: bool = True,
                      quiet: bool = False) -> logging.Logger:
    """(Re)configure the ``fitm`` logger from ``cfg``; stale handlers are dropped."""
    level = resolve_level(cfg.get("log_level", "INFO"), quiet)
    logger = logging.getLogger("fitm")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    if log_to_console:
        logger.addHandler(_console_handler(level, cfg.get("log_color", True)))
    if log_to_file:
        logger.addHandler(_file_handler(cfg, level))

    logger.debug("fitm logger configured at %s (file: %s)",
                 logging.getLevelName(level), log_to_file)
    return logger
