"""Logging setup for the API process and the maintenance scripts."""

import logging
import sys

from fleet_rbac.core.config import get_settings

# Driver and client loggers that are chatty at DEBUG.
_QUIET_LOGGERS = ("aiosqlite", "asyncio", "redis")


def setup_logging() -> None:
    """Configure root logging to stdout.

    Level is settings.log_level when set, else DEBUG in debug mode and INFO
    otherwise. SQL statements are only logged with DATABASE_ECHO.
    """
    settings = get_settings()
    if settings.log_level:
        log_level = logging.getLevelName(settings.log_level.upper())
    else:
        log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
