"""Logging configuration for the auction watcher."""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Marks handlers installed here so a second call replaces rather than stacks them
_HANDLER_TAG = "_auction_watcher"


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None) -> Optional[Path]:
    """
    Configure logging for the application.

    Safe to call more than once: handlers from an earlier call are
    replaced, so a CLI run that reconfigures after loading its config
    does not log every line twice.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Defaults to LOG_LEVEL env var or INFO.
        log_dir: Directory for a daily log file, created if missing.
                 Without it, ./logs is used only if it already exists.

    Returns:
        Path of the log file, or None when logging to stdout only
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    for handler in [h for h in root_logger.handlers if getattr(h, _HANDLER_TAG, False)]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    _install(root_logger, console_handler)

    log_file = None
    directory = _resolve_log_dir(log_dir)
    if directory is not None:
        log_file = directory / f"auction_watcher_{datetime.now():%Y%m%d}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        _install(root_logger, file_handler)

    root_logger.setLevel(getattr(logging, level, logging.INFO))

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return log_file


def setup_logging_from_config(config: Dict[str, Any], verbose: bool = False) -> Optional[Path]:
    """Apply the logging section of a loaded config; verbose forces DEBUG."""
    logging_config = config.get("logging", {})
    level = "DEBUG" if verbose else logging_config.get("level")
    return setup_logging(level, logging_config.get("dir"))


def _resolve_log_dir(log_dir: Optional[str]) -> Optional[Path]:
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    # Only log to file when ./logs was created by the operator
    default = Path("./logs")
    return default if default.is_dir() else None


def _install(root_logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_TAG, True)
    root_logger.addHandler(handler)
