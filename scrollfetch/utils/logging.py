"""Structured logging setup."""

import logging
import sys
import time
import uuid
from typing import Any, cast

import structlog

from scrollfetch.config import settings

# Paths polled by orchestrators; logged at debug level only.
QUIET_PATHS = frozenset({"/health"})


def setup_logging(level: str | None = None, debug: bool | None = None) -> None:
    """Configure structured logging for the application."""
    level = level or settings.log_level
    debug = settings.debug if debug is None else debug
    log_level = getattr(logging, level.upper(), logging.INFO)

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
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # The CDP socket logs every frame at debug level
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def job_logger(url: str, name: str = "scrollfetch.job") -> structlog.stdlib.BoundLogger:
    """Logger bound to a fresh job id and the job's URL.

    Passed down to every pipeline step so that one job's events can be
    correlated when several jobs run side by side.
    """
    return get_logger(name).bind(job_id=uuid.uuid4().hex[:12], url=url)


class AccessLogMiddleware:
    """Middleware to log HTTP requests with status and duration."""

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("access")

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.monotonic()
        status_code = 0

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            path = scope.get("path", "-")
            log = self.logger.debug if path in QUIET_PATHS else self.logger.info
            log(
                "request",
                method=scope.get("method", "-"),
                path=path,
                status=status_code,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
