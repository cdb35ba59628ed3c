"""Logging setup.

Application modules log through the uvicorn error logger so that app and
server lines share one handler and format.
"""

import logging

LOGGER_NAME = "uvicorn.error"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "info") -> logging.Logger:
    """Apply the configured level to the service logger.

    Adds a stream handler when nothing (e.g. uvicorn) has configured one yet.
    """
    logging.basicConfig(format=LOG_FORMAT)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
