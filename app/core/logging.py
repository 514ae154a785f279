"""Logging configuration."""

import logging
import logging.config

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    Console output is always enabled. When ``LOG_DIR`` is set, all records are
    also written to a daily-rotated ``all/application.log`` (14 days kept) and
    errors to ``error/error.log`` (30 days kept).
    """
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    }

    if settings.LOG_DIR is not None:
        for name in ("all", "error"):
            (settings.LOG_DIR / name).mkdir(parents=True, exist_ok=True)
        handlers["file_all"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "filename": str(settings.LOG_DIR / "all" / "application.log"),
            "when": "midnight",
            "backupCount": 14,
            "encoding": "utf-8",
        }
        handlers["file_error"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "level": "ERROR",
            "filename": str(settings.LOG_DIR / "error" / "error.log"),
            "when": "midnight",
            "backupCount": 30,
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": handlers,
            "root": {"level": settings.LOG_LEVEL.upper(), "handlers": list(handlers)},
        }
    )
    logging.getLogger("app").info("Logging configured at level %s", settings.LOG_LEVEL)
