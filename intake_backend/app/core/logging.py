"""Logging setup for the intake service.

Modules log through named children of the ``intake`` logger
(``intake.storage``, ``intake.files``, ...).  Startup attaches a console
handler and, when ``LOG_FILE`` is set, a file handler writing one JSON
object per line.
"""
import json
import logging
from datetime import datetime, timezone

from .config import Settings

_HANDLER_TAG = "_intake_handler"


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(app_settings: Settings) -> logging.Logger:
    """Attach handlers to the ``intake`` logger, replacing ones added earlier."""
    logger = logging.getLogger("intake")
    logger.setLevel(app_settings.LOG_LEVEL.upper())

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    setattr(console, _HANDLER_TAG, True)
    logger.addHandler(console)

    if app_settings.LOG_FILE:
        file_handler = logging.FileHandler(app_settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(JsonLineFormatter())
        setattr(file_handler, _HANDLER_TAG, True)
        logger.addHandler(file_handler)

    return logger
