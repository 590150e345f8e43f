"""
logging_config.py — Centralized Logging Configuration for the Order Intake Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to the console and,
when configured, to a file.

Features:
    • Combined console and optional file logging output
    • Process ID tagging for multi-worker visibility
    • Standardized log format for all modules
    • Reduced verbosity for external dependencies (SQLAlchemy, PIL, multipart)
"""

import logging
import sys

NOISY_LOGGERS = ("sqlalchemy.engine", "PIL", "multipart")


def setup_logging(log_file=None, level="INFO"):
    """
    Configures the global logging system for the application.

    The configuration includes:
        - Log level: taken from `level` (INFO by default)
        - Log format: timestamp, log level, process ID, logger name and message
        - Output destinations:
            1. Console (stdout): real-time logs, container compatible
            2. File: `log_file`, if one is given
        - Reduced verbosity for third-party libraries

    Args:
        log_file (str | None): Path of the persistent log file. Falsy disables it.
        level (str): Name of the root log level.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger instance for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
