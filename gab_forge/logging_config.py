"""Logging configuration for gab-forge.

Configures the root logger to write to stdout. Library modules only call
``logging.getLogger(__name__)``; the CLI and web entry points call
``setup_logging`` once.
"""

import logging
import sys

from gab_forge.config import VERBOSE_ENV, env_flag

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger to output to stdout.

    Args:
        verbose: If True, sets log level to DEBUG for verbose output
    """
    logger = logging.getLogger()

    log_level = logging.DEBUG if (verbose or env_flag(VERBOSE_ENV)) else logging.WARNING
    logger.setLevel(log_level)

    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    logging.debug("Logging initialized with VERBOSE mode (DEBUG level)")