"""Logging configuration for the console service.

One stdout handler on the root logger; module loggers
(``logging.getLogger(__name__)``) propagate to it. The ``portfolio_admin``
logger follows ``AppConfig.log_level`` and uvicorn shares the handler.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"


def _dict_config(level: str) -> dict:
    uvicorn = {"level": "INFO", "handlers": ["stdout"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"console": {"format": LOG_FORMAT}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["stdout"]},
        "loggers": {
            "portfolio_admin": {"level": level},
            "uvicorn": uvicorn,
            "uvicorn.error": uvicorn,
            "uvicorn.access": uvicorn,
            # passlib probes optional backends noisily at import
            "passlib": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Install the console logging config once; later calls only retune the level.

    Test runners and reloaders install their own root handlers, in which case
    no handler is added.
    """
    resolved = (level or "INFO").upper()
    if not logging.getLogger().handlers:
        dictConfig(_dict_config(resolved))
    logging.getLogger("portfolio_admin").setLevel(resolved)
