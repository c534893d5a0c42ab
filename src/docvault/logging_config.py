"""Logging setup for the docvault package logger"""

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER = "docvault"


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach one stream handler to the package logger. Safe to call repeatedly."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    if not any(getattr(h, "_docvault", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._docvault = True
        logger.addHandler(handler)
    return logger
