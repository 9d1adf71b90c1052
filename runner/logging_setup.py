"""
Logging setup for gmaps-crawler.

Every crawler module logs through a named logger (``gmaps_scroll``,
``gmaps_job_engine``, ...) with a console handler and a rotating file
``<log_dir>/<name>.log``.

Level and directory start from ``GMAPS_LOG_LEVEL`` / ``GMAPS_LOG_DIR``
(``.env`` is honoured) and are switched for every module logger at once
by ``configure_logging``, which the CLI calls with the crawler config.
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Optional, Set

from dotenv import load_dotenv


# Load environment
load_dotenv()

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUPS = 5

# Applied to loggers created without explicit settings
_defaults: Dict[str, str] = {
    "log_level": os.getenv("GMAPS_LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("GMAPS_LOG_DIR", "logs"),
}

# Names of the loggers owned by this module
_configured: Set[str] = set()


def _numeric_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def _handlers(name: str, level: int, log_dir: Path) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))

    log_dir.mkdir(parents=True, exist_ok=True)
    rotating = RotatingFileHandler(
        log_dir / f"{name}.log",
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
    )
    rotating.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    for handler in (console, rotating):
        handler.setLevel(level)
    return [console, rotating]


def setup_logging(
    name: str = "gmaps_crawler",
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Attach console and rotating file handlers to ``name``.

    Args:
        name: Logger name, also the log file stem
        log_level: Level name (default: current default, GMAPS_LOG_LEVEL or INFO)
        log_dir: Directory for ``<name>.log`` (default: GMAPS_LOG_DIR or logs/)

    Returns:
        Configured logger instance
    """
    log_level = log_level or _defaults["log_level"]
    log_dir = Path(log_dir or _defaults["log_dir"])
    level = _numeric_level(log_level)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Replace handlers from an earlier setup and release their files
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    for handler in _handlers(name, level, log_dir):
        logger.addHandler(handler)

    _configured.add(name)
    logger.debug(f"Logging initialized: level={log_level}, dir={log_dir}")

    return logger


def configure_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None):
    """
    Change level and/or directory for every crawler logger.

    Loggers created later pick up the same settings.
    """
    if log_level:
        _defaults["log_level"] = log_level
    if log_dir:
        _defaults["log_dir"] = log_dir

    for name in sorted(_configured):
        setup_logging(name)


def get_logger(name: str = "gmaps_crawler") -> logging.Logger:
    """Get a crawler logger, setting it up on first use."""
    logger = logging.getLogger(name)

    if name not in _configured:
        setup_logging(name)

    return logger
