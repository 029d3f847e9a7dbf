import logging
import sys
from app.core.config import settings

# httpx logs every outbound email and SMS request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging():
    """
    Configure the "doctorsewa" logger shared by services, middleware and the
    email/SMS senders. The level comes from LOG_LEVEL.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("doctorsewa")
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))

    if not logger.handlers:
        logger.addHandler(handler)
    logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger

logger = setup_logging()
