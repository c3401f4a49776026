'''
Application logger. Every module logs through the single `log` instance below.
'''
import logging
import sys

from .config import settings

LOG_FORMAT = '%(asctime)s - %(module)s - %(levelname)s - %(message)s'


def setup_logger(name: str = 'SS-backend', level: str = settings.LOG_LEVEL) -> logging.Logger:
    """
    Configures the named logger once: stdout handler, LOG_LEVEL from the settings.
    Calling it again only adjusts the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger

log = setup_logger()
