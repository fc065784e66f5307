"""Session acquisition with bounded retries."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from scrollfetch.browser.base import RemoteBrowser
from scrollfetch.browser.session import BrowserSession
from scrollfetch.config import settings
from scrollfetch.errors import BrowserConnectionError
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

ConnectFactory = Callable[[str], Awaitable[RemoteBrowser]]
SleepFunc = Callable[[float], Awaitable[None]]


class SessionConnector:
    """Opens sessions against a remote browser host.

    Attempts are numbered from 1. After failed attempt ``n`` the connector waits
    ``base_delay * 2 ** (n - 1)`` seconds before trying again.
    """

    def __init__(
        self,
        connect: ConnectFactory | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._connect = connect or BrowserSession.connect
        self._sleep = sleep

    async def acquire(
        self,
        endpoint: str | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> RemoteBrowser:
        """
        Connect to the browser host, retrying with exponential backoff.

        Args:
            endpoint: Browser host address, defaults to the configured one
            max_retries: Number of attempts
            base_delay: Backoff base in seconds

        Returns:
            A live session

        Raises:
            BrowserConnectionError: When every attempt failed
        """
        endpoint = endpoint or settings.browser_ws_endpoint
        max_retries = max_retries if max_retries is not None else settings.connect_max_retries
        base_delay = base_delay if base_delay is not None else settings.connect_base_delay
        log = log or logger

        last_error: Exception | None = None
        for attempt in range(1, max_retries + 1):
            log.info("Attempting browser connection", attempt=attempt, max_retries=max_retries)
            try:
                session = await self._connect(endpoint)
                if session.is_connected():
                    log.info("Browser connection established", attempt=attempt)
                    return session

                try:
                    await session.disconnect()
                except Exception as e:
                    log.debug("Error dropping stale session", error=str(e))
                raise BrowserConnectionError("Browser connected but not ready")

            except Exception as e:
                last_error = e
                log.warning("Connection attempt failed", attempt=attempt, error=str(e))

                if attempt < max_retries:
                    delay = base_delay * 2 ** (attempt - 1)
                    log.info("Retrying browser connection", delay=delay)
                    await self._sleep(delay)

        message = str(last_error) if last_error else "no attempts made"
        raise BrowserConnectionError(
            f"Failed to connect after {max_retries} attempts: {message}"
        ) from last_error
