"""Console logging (labeled prefixes) and the JSON Lines error log."""

from .error_log import ErrorLogBuffer
from .init import LabeledFormatter, get_logger, log_summary, reset_logging, setup_logging

__all__ = [
    "ErrorLogBuffer",
    "LabeledFormatter",
    "get_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
]
