import logging
from logging.config import dictConfig

from app.core.config import settings


def configure_logging() -> None:
    """
    Configure console logging for the API, the Celery worker and tests.

    Ledger diagnostics are emitted through the module loggers, so the level set
    here decides whether stock warnings reach the console.
    """
    level = settings.LOG_LEVEL.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
    logging.getLogger(__name__).info("Logging configured", extra={"level": level})
