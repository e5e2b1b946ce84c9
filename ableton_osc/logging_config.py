"""
Centralized Logging Configuration for the AbletonOSC client

Library modules only create loggers (``logging.getLogger(__name__)``); the
command-line entry point calls setup_logging() once.

Usage:
    from ableton_osc.logging_config import setup_logging
    setup_logging()

    # Then in any module:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Your message here")
"""

import logging
import os
from logging.handlers import RotatingFileHandler

ROOT_LOGGER_NAME = "ableton_osc"


def setup_logging(log_file="logs/ableton_osc.log", console_level=logging.INFO, file_level=logging.DEBUG):
    """
    Configure logging for the ableton_osc package.

    Args:
        log_file: Path to the log file (default: logs/ableton_osc.log)
        console_level: Log level for console output (default: INFO)
        file_level: Log level for file output (default: DEBUG)

    Returns:
        logging.Logger: The package root logger
    """
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    log_format = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # File Handler: rotates at 10MB, keeps 5 backups
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(log_format)
    root_logger.addHandler(file_handler)

    # Console Handler goes to stderr so JSON on stdout stays clean
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    root_logger.debug("Logging initialized: file=%s console=%s file_level=%s",
                      os.path.abspath(log_file),
                      logging.getLevelName(console_level),
                      logging.getLevelName(file_level))

    return root_logger

