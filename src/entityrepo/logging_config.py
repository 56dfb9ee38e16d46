import logging
import logging.config

from entityrepo.config import config


def setup_logging(level: str | None = None) -> None:
    """
    Configure console logging for the entityrepo loggers.

    Args:
        level: Overrides the configured LOG_LEVEL when given
    """
    log_level = (level or config.log_level).upper()

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "entityrepo": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "psycopg": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)
