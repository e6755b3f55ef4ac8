"""
Logging setup for the attendance finalization backend
"""
import logging
import sys
from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers and the level they are capped at
_QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "alembic": logging.INFO,
}


def setup_logging() -> None:
    """
    Configure the root logger from settings.LOG_LEVEL.

    SQL statements are only echoed when LOG_LEVEL is DEBUG, since the
    finalize and unlock paths issue bulk updates that are useful to trace
    when diagnosing lock waits.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    sql_level = logging.INFO if log_level == logging.DEBUG else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, env=%s, tz=%s",
        settings.LOG_LEVEL, settings.APP_ENV, settings.OPERATOR_TZ,
    )
