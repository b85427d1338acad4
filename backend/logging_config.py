"""Centralized logging configuration."""

import logging

from config import settings

# Third-party loggers that drown out job summaries at INFO
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "yfinance",
    "peewee",
)


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the API process and job runs.

    Sets the root logger level from ``level`` (the CLI's ``--verbose``) or
    settings.LOG_LEVEL, and suppresses noisy third-party loggers to WARNING.
    Timestamps carry the date because batch runs are read back from
    nightly logs.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=getattr(logging, level_name),
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
