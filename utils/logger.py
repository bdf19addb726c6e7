"""
============================================================================
DEADMAN RELAY - LOGGING UTILITY
============================================================================
loguru-based logging with a console sink, an optional rotating file sink
and a separate error-only file.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import sys
import time
from functools import wraps
from typing import Optional

from loguru import logger

from config.settings import Settings, get_settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{function}:{line} - {message}"

# Records emitted before setup_logging() still need a component value.
logger.configure(extra={"component": "app"})


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: Optional[Settings] = None, level: Optional[str] = None) -> None:
    """
    Configure logging sinks from the logging settings.

    Args:
        settings: Application settings (defaults to the cached instance)
        level: Override for the configured level (e.g. from the CLI)
    """
    settings = settings or get_settings()
    log_settings = settings.logging
    log_level = (level or log_settings.level.value).upper()

    # Remove default loguru handler
    logger.remove()

    if log_settings.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=log_settings.console_colored,
            backtrace=True,
            diagnose=False,
        )

    if log_settings.file_enabled:
        log_settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=log_settings.file_rotation,
            retention=log_settings.file_retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

        # Error log file (separate file for errors)
        log_settings.error_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_settings.error_file_path,
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logger.info("Logging system initialized")
    logger.info(f"Log level: {log_level}")
    logger.info(f"File logging: {log_settings.file_enabled}")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance bound to a component name.

    Args:
        name: Component name shown in every record

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(component=name)
    return logger


# ============================================================================
# LOG DECORATORS
# ============================================================================

def log_execution_time(func):
    """
    Decorator to log how long a coroutine took.

    Args:
        func: Coroutine function to decorate

    Returns:
        Decorated function
    """

    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        start_time = time.monotonic()
        try:
            result = await func(*args, **kwargs)
            logger.debug(
                f"Function {func.__name__} executed in {time.monotonic() - start_time:.4f} seconds"
            )
            return result
        except Exception as e:
            logger.error(
                f"Function {func.__name__} failed after {time.monotonic() - start_time:.4f} seconds: {e}"
            )
            raise

    return async_wrapper
