import importlib.util
import logging
import time
from logging.config import dictConfig
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from proximity.config import Settings

# ---------------------------------------------------
# Colorlog Availability Check
# ---------------------------------------------------
COLORLOG_AVAILABLE = importlib.util.find_spec("colorlog") is not None

# Engine loggers that share the app log level
APP_LOGGERS = (
    "engine",
    "store",
    "database",
    "region_monitor",
    "geofence_provider",
    "notifications",
    "notifications.dispatcher",
    "push",
    "lifecycle",
    "routes",
    "main",
)


# ---------------------------------------------------
# Logging Configuration
# ---------------------------------------------------
def build_logging_config(settings: Settings) -> Dict[str, Any]:
    log_level = settings.log_level.upper()
    formatters: Dict[str, Any] = {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    }
    if COLORLOG_AVAILABLE:
        formatters["color"] = {
            "()": "colorlog.ColoredFormatter",
            "format": "%(log_color)s%(asctime)s %(levelname)s [%(name)s] %(message)s",
            "log_colors": {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        }

    loggers: Dict[str, Any] = {
        # Silence uvicorn and scheduler noise in console
        "uvicorn": {"level": "WARNING"},
        "uvicorn.error": {"level": "WARNING"},
        "uvicorn.access": {"level": "WARNING"},
        "apscheduler": {"level": "WARNING"},
        "httpx": {"level": "WARNING"},
        "sqlalchemy.engine": {"level": "WARNING"},
        "request": {"level": "INFO"},
    }
    for name in APP_LOGGERS:
        loggers[name] = {"level": log_level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            # Console handler (only output target)
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "color" if COLORLOG_AVAILABLE else "default",
                "level": settings.console_log_level.upper(),
            },
        },
        "loggers": loggers,
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


# ---------------------------------------------------
# Initialize Logging
# ---------------------------------------------------
def init_logging(settings: Settings) -> None:
    dictConfig(build_logging_config(settings))


# ---------------------------------------------------
# Request Logging Middleware
# ---------------------------------------------------
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        logger = logging.getLogger("request")
        start_time = time.time()

        response = await call_next(request)

        duration = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} "
            f"→ {response.status_code} ({duration:.2f} ms)"
        )
        return response
