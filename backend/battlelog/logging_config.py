import logging
import os
import sys


LOG_FORMAT = "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"

# SQL_ECHO=1 时打印 SQL；否则 sqlalchemy 只报 WARNING 以上
_SQL_LOGGER = "sqlalchemy.engine"


def _level_from_env(default: str = "INFO") -> int:
    name = os.getenv("LOG_LEVEL", default).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level=None) -> logging.Logger:
    """Route every logger to stdout for the API process and the batch jobs.

    Safe to call more than once: the startup hook and the CLIs both call it.
    """
    if level is None:
        level = _level_from_env()
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)

    sql_level = logging.INFO if os.getenv("SQL_ECHO") == "1" else logging.WARNING
    logging.getLogger(_SQL_LOGGER).setLevel(sql_level)
    return logging.getLogger("backend.battlelog")
