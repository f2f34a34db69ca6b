"""
Logging configuration for perps entry points.

Library modules only create module-level loggers; runners call
setup_logging() once to attach handlers to the "perps" logger.

Usage:
    from perps.logging_setup import setup_logging

    log_file = setup_logging(logging.INFO, log_dir="logs", name="roll")
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%H:%M:%S'

PACKAGE_LOGGER = 'perps'


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    name: Optional[str] = None,
) -> Optional[Path]:
    """
    Configure console (and optional file) logging for the perps package.

    Calling again replaces the handlers from the previous call.

    Args:
        level: Logging level for the package logger
        log_dir: Directory for a timestamped log file; console only if None
        name: Log file prefix (default: "perps")

    Returns:
        Path of the log file, or None when logging to console only
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_dir is None:
        return None

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime('%Y-%m-%dT%H-%M-%S')
    log_file = log_dir / f'{name or PACKAGE_LOGGER}_{stamp}.log'

    # File gets full dates, the console only times
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)
    return log_file
