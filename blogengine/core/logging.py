"""
Logging setup for the API service and the command-line scripts.

Development runs get readable console lines; production runs emit one JSON
object per line with the service name attached as a field, which is what the
hosting platform's log explorer indexes.
"""
import logging
import logging.config
import sys
from typing import Any, Dict, Optional

from .settings import get_settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = {
    "uvicorn": "INFO",
    "uvicorn.access": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "anthropic": "WARNING",
}


def _json_formatter(service_name: Optional[str]) -> Dict[str, Any]:
    formatter: Dict[str, Any] = {
        "()": "pythonjsonlogger.json.JsonFormatter",
        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
        "datefmt": DATE_FORMAT,
        "rename_fields": {"asctime": "timestamp", "levelname": "level"},
    }
    if service_name:
        formatter["static_fields"] = {"service": service_name}
    return formatter


def _console_formatter(service_name: Optional[str]) -> Dict[str, Any]:
    prefix = f"[{service_name}] " if service_name else ""
    return {
        "format": f"%(asctime)s {prefix}[%(levelname)s] %(name)s: %(message)s",
        "datefmt": DATE_FORMAT,
    }


def get_logging_config(service_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the dictConfig mapping for the current settings.

    Args:
        service_name: Label attached to every record (``blog-engine``, ``migrations``)
    """
    settings = get_settings()
    formatter = "json" if settings.environment == "production" else "console"

    loggers = {
        "blogengine": {"level": settings.log_level, "handlers": ["stdout"], "propagate": False},
    }
    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"level": level, "handlers": ["stdout"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": _json_formatter(service_name),
            "console": _console_formatter(service_name),
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": formatter,
                "stream": sys.stdout,
            },
        },
        "loggers": loggers,
        "root": {"level": settings.log_level, "handlers": ["stdout"]},
    }


def setup_logging(service_name: Optional[str] = None) -> None:
    logging.config.dictConfig(get_logging_config(service_name))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
