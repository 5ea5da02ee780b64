#!/usr/bin/env python3
"""
Logging configuration for the resource counter.

Features:
- Rich console formatting for development logs
- Rotating file handler when a log file is configured
- Quick debug mode activation via --debug, DEBUG=1 or RESCOUNT_DEBUG=1
- Integration with the application's configuration system
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from resourcecounter.config import LogLevel, ResourceCounterConfig


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
RICH_LOG_FORMAT = "[%(threadName)s] %(message)s"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
APP_NAME = "resourcecounter"

# Chatty SDK loggers, kept quiet unless debugging
SDK_LOGGERS = ("boto3", "botocore", "urllib3")

LOG_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def get_environment_log_level() -> Optional[int]:
    """
    Check for debug flags in environment variables.

    Supports:
    - DEBUG=1
    - RESCOUNT_DEBUG=1
    - RESCOUNT_LOGLEVEL=DEBUG (or other level names)

    Returns:
        Optional[int]: Logging level or None if not specified in environment
    """
    if os.environ.get("DEBUG") == "1" or os.environ.get("RESCOUNT_DEBUG") == "1":
        return logging.DEBUG

    log_level_str = os.environ.get("RESCOUNT_LOGLEVEL")
    if log_level_str:
        numeric_level = getattr(logging, log_level_str.upper(), None)
        if isinstance(numeric_level, int):
            return numeric_level

    return None


def get_console_handler(rich: bool = True) -> logging.Handler:
    """
    Get a console handler for logging.

    Args:
        rich: Whether to use Rich formatting
    """
    if rich:
        console = Console(color_system="auto", stderr=True)
        handler = RichHandler(
            console=console,
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_extra_lines=3,
        )
        handler.setFormatter(logging.Formatter(RICH_LOG_FORMAT))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    return handler


def get_file_handler(log_file: Path, max_bytes: int = MAX_LOG_SIZE, backup_count: int = LOG_BACKUP_COUNT) -> logging.Handler:
    """
    Get a rotating file handler for logging.

    Args:
        log_file: Path to the log file
        max_bytes: Maximum size of log file before rotating
        backup_count: Number of backup files to keep
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    return handler


def get_effective_log_level(config: Optional[ResourceCounterConfig] = None, debug: bool = False) -> int:
    """
    Determine the effective log level with priority:
    1. --debug flag
    2. Environment variables (DEBUG, RESCOUNT_DEBUG, RESCOUNT_LOGLEVEL)
    3. Configuration setting
    """
    if debug:
        return logging.DEBUG

    env_level = get_environment_log_level()
    if env_level is not None:
        return env_level

    if config is not None:
        return LOG_LEVEL_MAP.get(config.log_level, logging.INFO)

    return logging.INFO


def configure_logging(
    config: Optional[ResourceCounterConfig] = None,
    debug: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure application logging.

    Args:
        config: Application configuration (optional)
        debug: Force debug level, also for the AWS SDK loggers
        log_file: Override log file path
    """
    if config is None:
        config = ResourceCounterConfig()

    effective_level = get_effective_log_level(config, debug)
    effective_log_file = log_file or config.log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.addHandler(get_console_handler(rich=config.color_output))

    if effective_log_file:
        root_logger.addHandler(get_file_handler(Path(effective_log_file)))

    sdk_level = logging.DEBUG if effective_level == logging.DEBUG and debug else logging.WARNING
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    logger.debug(f"Logging configured at level {logging.getLevelName(effective_level)}")
    if effective_log_file:
        logger.debug(f"Logging to file: {effective_log_file}")


# Module-level logger for convenience
logger = logging.getLogger(APP_NAME)
