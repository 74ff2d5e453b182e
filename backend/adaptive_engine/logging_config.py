import logging
import os
from logging.config import dictConfig
from typing import Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in {"1", "true", "yes"}


def configure_logging(
    level: Optional[str] = None,
    *,
    debug_http: Optional[bool] = None,
    debug_sql: Optional[bool] = None,
) -> None:
    """Configure root and library loggers; arguments override ADAPTIVE_* environment flags."""
    root_level = (level or os.getenv("ADAPTIVE_LOG_LEVEL", "INFO")).upper()
    http_level = "DEBUG" if (_flag("ADAPTIVE_DEBUG_HTTP") if debug_http is None else debug_http) else "WARNING"
    sql_level = "INFO" if (_flag("ADAPTIVE_DEBUG_SQL") if debug_sql is None else debug_sql) else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": DEFAULT_LOG_FORMAT}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "loggers": {
                "httpx": {"level": http_level},
                "httpcore": {"level": http_level},
                "sqlalchemy.engine": {"level": sql_level},
                "adaptive.telemetry": {"level": os.getenv("ADAPTIVE_TELEMETRY_LOG_LEVEL", "INFO").upper()},
            },
            "root": {"handlers": ["default"], "level": root_level},
        }
    )
    logging.getLogger(__name__).debug(
        "Logging configured (root=%s, httpx=%s, sqlalchemy=%s)", root_level, http_level, sql_level
    )
