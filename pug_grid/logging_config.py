import logging
import logging.config
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Union[int, str] = "INFO") -> None:
    """Install a console handler on the ``pug_grid`` logger tree."""
    if isinstance(level, int):
        level = logging.getLevelName(level)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": level,
                    "stream": sys.stdout,
                },
            },
            "loggers": {
                "pug_grid": {
                    "handlers": ["console"],
                    "level": level,
                    "propagate": False,
                },
                "openai": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )
