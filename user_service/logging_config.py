"""
Logging setup for the service.

Every module logs through logging.getLogger(__name__); this module only
decides where those records go. configure_logging() is called once by
create_app() with the active Settings.
"""

import logging
import logging.config

from user_service.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "user_service": {
                "handlers": ["console"],
                "level": settings.log_level,
                "propagate": False,
            },
        },
    })
