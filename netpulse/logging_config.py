"""Logging setup for the NetPulse tray application."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def configure_logging(level: str | None = None, log_file: str | Path | None = None) -> None:
    """Configure the root logger for the whole process.

    Probe and command threads are named, so the thread column shows where a
    line came from. A tray app usually has no visible terminal; set
    NETPULSE_LOG_FILE to keep a size-rotated copy on disk.

    Environment Variables:
        NETPULSE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
        NETPULSE_LOG_FILE: Optional path of a rotating log file

    Examples:
        $ NETPULSE_LOG_LEVEL=DEBUG python -m netpulse
        $ NETPULSE_LOG_FILE=~/.cache/netpulse/netpulse.log python -m netpulse
    """
    log_level = parse_level(level or os.environ.get("NETPULSE_LOG_LEVEL"))

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    log_file = log_file or os.environ.get("NETPULSE_LOG_FILE")
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, file=%s",
        logging.getLevelName(log_level),
        log_file or "-",
    )
