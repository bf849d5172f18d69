"""Logging setup shared by the API and the worker."""

import logging
from typing import Optional

from app.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] {process} %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(process: str = "api", settings: Optional[Settings] = None) -> logging.Logger:
    """
    Attach handlers to the "app" logger: stderr always, plus settings.log_file when set.
    `process` tags every line so API and worker output can share one file.
    Calling again replaces the handlers.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT.format(process=process), datefmt=DATE_FORMAT)

    logger = logging.getLogger("app")
    logger.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    handlers = [logging.StreamHandler()]
    log_file = settings.log_file.strip()
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            logger.warning("Could not open log file %s: %s", log_file, e)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.debug("Logging configured for %s (file=%s)", process, log_file or "-")
    return logger
