"""File logger for the service.

Attaches a lazily opened file handler `{LOG_PATH}/{LOG_FILE}` to the package
logger so that every `logging.getLogger(__name__)` inside `surveydesk` writes
there.
"""
import os
from logging import FileHandler, Formatter, getLogger, INFO, DEBUG
from surveydesk.core.config import Settings

PACKAGE_LOGGER = "surveydesk"


def setup_logging(settings: Settings):
    os.makedirs(settings.LOG_PATH, exist_ok=True)
    log_path = os.path.join(settings.LOG_PATH, settings.LOG_FILE)

    logger = getLogger(PACKAGE_LOGGER)
    logger.setLevel(DEBUG if settings.DEBUG else INFO)

    for handler in logger.handlers:
        if isinstance(handler, FileHandler) and handler.baseFilename == os.path.abspath(log_path):
            return logger

    handler = FileHandler(log_path, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    return logger
