import logging
import logging.config
import asyncio
import structlog

from app.core.config import settings

HEALTH_ENDPOINTS = ("/health", "/live")

# Chatty third-party loggers pinned to WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "google", "urllib3", "supabase", "pdfminer")


def configure_logging() -> None:
    """Configure structlog and the standard logging tree from settings."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if settings.LOG_FORMAT == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.LOG_FORMAT == "json":
        formatter_class = "pythonjsonlogger.jsonlogger.JsonFormatter"
        format_string = "%(asctime)s %(name)s %(levelname)s %(message)s"
    else:
        formatter_class = "logging.Formatter"
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    loggers = {
        "": {
            "level": settings.LOG_LEVEL,
            "handlers": ["default"],
            "propagate": False,
        },
        "uvicorn.error": {
            "level": "INFO",
            "handlers": ["default"],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["access"],
            "propagate": False,
        },
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {
            "level": "WARNING",
            "handlers": ["default"],
            "propagate": False,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "health_check_filter": {
                    "()": "app.core.logging.HealthCheckFilter",
                },
            },
            "formatters": {
                "default": {
                    "class": formatter_class,
                    "format": format_string,
                },
                "access": {
                    "class": formatter_class,
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                },
            },
            "handlers": {
                "default": {
                    "formatter": "default",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                },
                "access": {
                    "formatter": "access",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "filters": ["health_check_filter"],
                },
            },
            "loggers": loggers,
        }
    )

    if not settings.DEBUG:
        logging.getLogger("asyncio").setLevel(logging.WARNING)


class RequestLoggingMiddleware:
    """ASGI middleware logging request start and completion."""

    def __init__(self, app):
        self.app = app
        self.logger = structlog.get_logger("request")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        is_health_check = scope["path"] in HEALTH_ENDPOINTS

        request_info = {
            "method": scope["method"],
            "path": scope["path"],
            "query_string": scope.get("query_string", b"").decode(),
        }
        for key, value in scope.get("headers", []):
            if key.lower() == b"content-type" and b"multipart/form-data" in value:
                request_info["is_file_upload"] = True
            elif key.lower() == b"content-length":
                request_info["content_length"] = value.decode()

        if not is_health_check:
            self.logger.info("Request started", **request_info)

        start_time = asyncio.get_running_loop().time()
        status_code = None

        async def send_wrapper(message):
            nonlocal status_code

            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                if not is_health_check:
                    duration = asyncio.get_running_loop().time() - start_time
                    self.logger.info(
                        "Request completed",
                        method=request_info["method"],
                        path=request_info["path"],
                        status_code=status_code,
                        duration=round(duration, 4),
                    )

            await send(message)

        await self.app(scope, receive, send_wrapper)


class HealthCheckFilter(logging.Filter):
    """Filter out health check requests from uvicorn access logs."""

    def filter(self, record):
        message = record.getMessage()
        return not any(endpoint in message for endpoint in HEALTH_ENDPOINTS)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def setup_request_logging(app):
    """Setup request logging middleware."""
    if settings.DEBUG:
        app.add_middleware(RequestLoggingMiddleware)


def get_api_logger() -> structlog.BoundLogger:
    """Get API logger."""
    return get_logger("api")


def get_db_logger() -> structlog.BoundLogger:
    """Get database logger."""
    return get_logger("database")


def get_auth_logger() -> structlog.BoundLogger:
    """Get authentication logger."""
    return get_logger("auth")


def get_service_logger(service_name: str) -> structlog.BoundLogger:
    """Get service-specific logger."""
    return get_logger(f"service.{service_name}")
