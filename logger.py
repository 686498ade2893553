"""Logging configuration for Tally.

Sets up logging to both a dated log file and the console.
"""

import logging
from datetime import date
from typing import Optional
from config import Config

LOGGER_NAME = "tally"


def setup_logging(config: Config, console: bool = True) -> logging.Logger:
    """Set up application logging with file and console handlers.

    Args:
        config: Application configuration containing log settings.
        console: Whether to also echo log records to the console.

    Returns:
        Configured logger instance.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level)

    # setup_logging may run more than once per process (tests, nested CLI calls)
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_file_path = config.log_dir / f"tally-{date.today().isoformat()}.log"
    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
        logger.addHandler(console_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the application logger, or one of its children.

    Args:
        name: Optional child name, e.g. "llm" gives the "tally.llm" logger.

    Returns:
        The tally logger instance.
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
