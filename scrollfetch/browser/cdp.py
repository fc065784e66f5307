"""Chrome DevTools Protocol (CDP) client."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import websockets
from websockets import ClientConnection

from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[dict[str, Any], str | None], None]


class CDPError(Exception):
    """CDP protocol error."""

    pass


class CDPConnectionClosed(CDPError):
    """The websocket to the browser went away."""

    pass


async def resolve_ws_endpoint(endpoint: str, timeout: float = 10.0) -> str:
    """
    Turn a configured endpoint into a browser websocket URL.

    ``ws://`` and ``wss://`` endpoints are returned unchanged. HTTP endpoints
    are resolved through the DevTools ``/json/version`` document.

    Args:
        endpoint: Configured browser host address
        timeout: HTTP timeout in seconds

    Returns:
        Browser-level websocket URL
    """
    if endpoint.startswith(("ws://", "wss://")):
        return endpoint

    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.get(f"{endpoint.rstrip('/')}/json/version")
        except httpx.HTTPError as e:
            raise CDPError(f"DevTools endpoint unreachable: {e}") from e

    if response.status_code != 200:
        raise CDPError(f"DevTools endpoint returned HTTP {response.status_code}")

    ws_url = response.json().get("webSocketDebuggerUrl")
    if not ws_url:
        raise CDPError("DevTools endpoint did not report a webSocketDebuggerUrl")
    return str(ws_url)


class CDPClient:
    """Client for a browser-level Chrome DevTools Protocol connection.

    Page targets are driven through flat sessions: commands carry a
    ``sessionId`` and events are dispatched with the session they belong to.
    """

    def __init__(self, command_timeout: float = 30.0) -> None:
        self.command_timeout = command_timeout
        self._ws: ClientConnection | None = None
        self._message_id = 0
        self._pending_responses: dict[int, asyncio.Future[Any]] = {}
        self._receive_task: asyncio.Task[None] | None = None
        self._handlers: dict[str, list[EventHandler]] = {}
        self._close_callbacks: list[Callable[[], None]] = []
        self._closed = False

    @property
    def is_open(self) -> bool:
        """Whether the websocket is connected and not closed."""
        return self._ws is not None and not self._closed

    async def connect(self, ws_url: str, timeout: float = 30.0) -> None:
        """
        Open the websocket to the browser.

        Args:
            ws_url: Browser websocket URL
            timeout: Connection timeout in seconds
        """
        logger.debug("Connecting to browser WebSocket", url=ws_url)

        try:
            self._ws = await asyncio.wait_for(
                websockets.connect(ws_url, max_size=256 * 1024 * 1024),
                timeout=timeout,
            )
        except TimeoutError as e:
            raise CDPError(f"Timeout connecting to {ws_url} after {timeout}s") from e
        except (OSError, websockets.InvalidURI, websockets.InvalidHandshake) as e:
            raise CDPError(f"Failed to connect to {ws_url}: {e}") from e

        self._closed = False
        self._receive_task = asyncio.create_task(self._receive_messages())
        logger.info("CDP connected", url=ws_url)

    async def disconnect(self) -> None:
        """Close the websocket without closing the remote browser."""
        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._ws:
            await self._ws.close()
            self._ws = None

        self._mark_closed()
        logger.debug("CDP disconnected")

    def on(self, method: str, handler: EventHandler) -> None:
        """Register a handler for a CDP event."""
        self._handlers.setdefault(method, []).append(handler)

    def off(self, method: str, handler: EventHandler) -> None:
        """Remove a previously registered event handler."""
        handlers = self._handlers.get(method, [])
        if handler in handlers:
            handlers.remove(handler)

    def on_close(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the connection closes."""
        self._close_callbacks.append(callback)

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True

        for future in self._pending_responses.values():
            if not future.done():
                future.set_exception(CDPConnectionClosed("Browser connection closed"))
        self._pending_responses.clear()

        for callback in self._close_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("Error in close callback", error=str(e))

    def _dispatch(self, method: str, params: dict[str, Any], session_id: str | None) -> None:
        for handler in list(self._handlers.get(method, [])):
            try:
                handler(params, session_id)
            except Exception as e:
                logger.error("Error in CDP event handler", method=method, error=str(e))

    async def _receive_messages(self) -> None:
        """Background task to receive WebSocket messages."""
        if not self._ws:
            return

        try:
            async for message in self._ws:
                data = json.loads(message)

                # Handle response to our command
                if "id" in data:
                    msg_id = data["id"]
                    future = self._pending_responses.pop(msg_id, None)
                    if future is None or future.done():
                        continue
                    if "error" in data:
                        error_msg = data["error"].get("message", "Unknown error")
                        future.set_exception(CDPError(error_msg))
                    else:
                        future.set_result(data.get("result", {}))

                elif "method" in data:
                    self._dispatch(data["method"], data.get("params", {}), data.get("sessionId"))

        except websockets.ConnectionClosed:
            logger.debug("WebSocket connection closed")
        except Exception as e:
            logger.error("Error receiving CDP messages", error=str(e))
        finally:
            self._mark_closed()

    async def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send a CDP command and wait for response.

        Args:
            method: CDP method name (e.g., "Page.navigate")
            params: Method parameters
            session_id: Flat session of the target the command is for
            timeout: Response timeout, defaults to the client's command timeout

        Returns:
            Command result
        """
        if not self.is_open or self._ws is None:
            raise CDPConnectionClosed("Not connected to DevTools")

        self._message_id += 1
        msg_id = self._message_id

        message: dict[str, Any] = {
            "id": msg_id,
            "method": method,
            "params": params or {},
        }
        if session_id:
            message["sessionId"] = session_id

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending_responses[msg_id] = future

        try:
            await self._ws.send(json.dumps(message))
        except websockets.ConnectionClosed as e:
            self._pending_responses.pop(msg_id, None)
            self._mark_closed()
            raise CDPConnectionClosed(f"Connection closed while sending {method}") from e
        logger.debug("CDP command sent", method=method, id=msg_id)

        try:
            return await asyncio.wait_for(future, timeout=timeout or self.command_timeout)
        except TimeoutError as e:
            self._pending_responses.pop(msg_id, None)
            raise CDPError(f"Timeout waiting for response to {method}") from e
