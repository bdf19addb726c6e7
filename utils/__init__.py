"""
Utilities Package for Deadman Relay

Logging setup and shared helpers.
"""

from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger, log_execution_time, setup_logging

__all__ = [
    "StringHelper",
    "TimeHelper",
    "get_logger",
    "log_execution_time",
    "setup_logging",
]
