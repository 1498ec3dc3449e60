from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

ROOT_LOGGER = "hostwatch"
LOG_FILE = "hostwatch.log"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(log_dir: str = "logs", level: str = "INFO", *, console: bool = True) -> logging.Logger:
    """
    Configure the "hostwatch" logger tree once per process: a rotating file
    under `log_dir` and, optionally, bare messages on stderr. Calling it again
    only updates the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    logger.propagate = False

    has_file = any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    if not has_file:
        os.makedirs(log_dir, exist_ok=True)
        fh = RotatingFileHandler(os.path.join(log_dir, LOG_FILE), maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)

    has_console = any(type(h) is logging.StreamHandler for h in logger.handlers)
    if console and not has_console:
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(sh)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
