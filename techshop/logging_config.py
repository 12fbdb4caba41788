"""
logging_config.py - logging setup for the TechShop service.

All modules log through `get_logger(__name__)`; `setup_logging()` is called
once when the application starts.
"""

import logging
import sys

from techshop.config import LOG_LEVEL, SQL_ECHO


def setup_logging(level: str = LOG_LEVEL):
    """
    Configures the root logger.

    Messages go to stdout as
    `timestamp - level - logger - message`. SQLAlchemy's engine logger is kept
    at WARNING unless SQL echo was requested.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not SQL_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name):
    return logging.getLogger(name)
