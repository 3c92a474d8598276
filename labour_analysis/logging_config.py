"""Logging configuration for the labour analysis dashboard."""
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(level: str = "INFO"):
    """Attach a single stdout handler to the labour-analysis loggers."""
    logger = logging.getLogger("labour-analysis")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.handlers = [handler]
    logger.propagate = False
    return logger
