"""Logging configuration for the lesson generation pipeline."""

import logging
import sys
from datetime import datetime

import config

LOGGER_NAME = "lessongen"


def setup_logger(
    name: str = LOGGER_NAME,
    log_file: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Set up and return a configured logger.

    Args:
        name: Logger name
        log_file: Optional specific log file name. If None, generates timestamp-based name.
        level: Logging level

    Returns:
        Configured logger instance
    """
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"lesson_{timestamp}.log"

    log_path = config.LOGS_DIR / log_file

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter("%(message)s")

    # File handler - captures everything
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    # Console handler - for user-facing output
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    logger.info(f"Log file: {log_path}")

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get an existing logger by name.

    Module loggers are children of the pipeline logger, so they share its handlers.

    Args:
        name: Logger name, either the pipeline name or a dotted child like "lessongen.client"

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
