"""Console logging for the scorecard service and batch scripts."""

import logging
from logging.config import dictConfig
from typing import Optional

from .config import Settings, get_settings

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
SCORECARD_LOGGER = "scorecard"


def configure_logging(settings: Optional[Settings] = None, *, verbose: Optional[bool] = None) -> None:
    """Install the console handler and set levels for the ``scorecard.*`` loggers.

    The root level comes from ``SCORECARD_LOG_LEVEL``. Verbose runs (from
    settings, or ``verbose`` when a CLI flag overrides it) drop the
    ``scorecard`` hierarchy to DEBUG so per-record aggregation is visible.
    """
    settings = settings or get_settings()
    level = settings.log_level.upper()
    if verbose is None:
        verbose = settings.verbose

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                SCORECARD_LOGGER: {
                    "level": "DEBUG" if verbose else level,
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if settings.debug_http:
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
