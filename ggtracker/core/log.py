import logging
from typing import Optional

from .config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_HANDLER_NAME = "ggtracker-stream"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger once and set its level."""
    logger = logging.getLogger("ggtracker")
    resolved = (level or LOG_LEVEL or "INFO").upper()
    logger.setLevel(getattr(logging, resolved, logging.INFO))
    if not any(getattr(handler, "name", None) == _HANDLER_NAME for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    return logger
