"""Logging setup: console output plus rotating error and combined logs."""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

_HANDLER_MARK = "_ipa_handler"


def configure_logging(log_dir: Optional[str] = None, level: str = "INFO") -> None:
    """Attach the application's handlers to the root logger.

    Calling this again replaces the handlers it installed earlier, so app
    factories can run more than once in one process (tests do).
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers = [logging.StreamHandler()]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        error_handler = RotatingFileHandler(
            os.path.join(log_dir, "error.log"), maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, "combined.log"), maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)
