"""Page target driven over a flat CDP session."""

import asyncio
import json
import time
from typing import Any

from scrollfetch.browser.cdp import CDPClient, CDPConnectionClosed, CDPError
from scrollfetch.errors import DetachedSessionError, NavigationError
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

# Wait conditions accepted by navigate(), mapped to the in-flight request
# ceiling for the network-idle variants.
NETWORK_IDLE_LIMITS = {"networkidle0": 0, "networkidle2": 2}
READY_STATES = {
    "domcontentloaded": ("interactive", "complete"),
    "load": ("complete",),
}

_DETACH_MARKERS = (
    "no session with given id",
    "session with given id not found",
    "target closed",
)


class CDPPage:
    """One page target of a remote browser.

    The page turns closed when its target is detached or destroyed, or when the
    browser connection drops. From then on every command raises
    ``DetachedSessionError``.
    """

    def __init__(
        self,
        client: CDPClient,
        target_id: str,
        session_id: str,
        network_idle_time: float = 0.5,
        poll_interval: float = 0.1,
    ) -> None:
        self.client = client
        self.target_id = target_id
        self.session_id = session_id
        self.network_idle_time = network_idle_time
        self.poll_interval = poll_interval
        self._closed = False
        self._inflight: set[str] = set()

        client.on("Target.detachedFromTarget", self._on_detached)
        client.on("Target.targetDestroyed", self._on_target_gone)
        client.on("Target.targetCrashed", self._on_target_gone)
        client.on("Inspector.detached", self._on_inspector_detached)
        client.on("Network.requestWillBeSent", self._on_request_started)
        client.on("Network.loadingFinished", self._on_request_done)
        client.on("Network.loadingFailed", self._on_request_done)
        client.on_close(self._mark_closed)

    # -- event handlers -------------------------------------------------

    def _on_detached(self, params: dict[str, Any], session_id: str | None) -> None:
        if params.get("sessionId") == self.session_id or params.get("targetId") == self.target_id:
            self._mark_closed()

    def _on_target_gone(self, params: dict[str, Any], session_id: str | None) -> None:
        if params.get("targetId") == self.target_id:
            self._mark_closed()

    def _on_inspector_detached(self, params: dict[str, Any], session_id: str | None) -> None:
        if session_id == self.session_id:
            self._mark_closed()

    def _on_request_started(self, params: dict[str, Any], session_id: str | None) -> None:
        if session_id == self.session_id and "requestId" in params:
            self._inflight.add(params["requestId"])

    def _on_request_done(self, params: dict[str, Any], session_id: str | None) -> None:
        if session_id == self.session_id:
            self._inflight.discard(params.get("requestId", ""))

    def _mark_closed(self) -> None:
        if not self._closed:
            self._closed = True
            logger.debug("Page target closed", target_id=self.target_id)

    # -- commands -------------------------------------------------------

    def is_closed(self) -> bool:
        """Whether the page can no longer be driven."""
        return self._closed or not self.client.is_open

    async def _send(
        self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None
    ) -> Any:
        if self.is_closed():
            raise DetachedSessionError(f"Page closed before {method}")
        try:
            return await self.client.send(method, params, session_id=self.session_id, timeout=timeout)
        except CDPConnectionClosed as e:
            self._mark_closed()
            raise DetachedSessionError(str(e)) from e
        except CDPError as e:
            if self.is_closed() or any(m in str(e).lower() for m in _DETACH_MARKERS):
                self._mark_closed()
                raise DetachedSessionError(str(e)) from e
            raise

    async def enable(self) -> None:
        """Enable the domains navigation waits depend on."""
        await self._send("Page.enable")
        await self._send("Network.enable")

    async def navigate(self, url: str, wait_until: str = "load", timeout: float = 30.0) -> None:
        """
        Navigate to a URL and wait for the given condition.

        Args:
            url: URL to navigate to
            wait_until: "load", "domcontentloaded", "networkidle0" or "networkidle2"
            timeout: Maximum time for the whole navigation in seconds
        """
        if wait_until not in READY_STATES and wait_until not in NETWORK_IDLE_LIMITS:
            raise ValueError(f"Unsupported wait condition: {wait_until}")

        logger.info("Navigating to URL", url=url, wait_until=wait_until)
        try:
            await asyncio.wait_for(self._navigate(url, wait_until), timeout=timeout)
        except TimeoutError as e:
            raise NavigationError(f"Navigation to {url} timed out after {timeout}s") from e

    async def _navigate(self, url: str, wait_until: str) -> None:
        self._inflight.clear()
        result = await self._send("Page.navigate", {"url": url})
        error_text = result.get("errorText")
        if error_text:
            raise NavigationError(f"Navigation to {url} failed: {error_text}")

        if wait_until in READY_STATES:
            await self._wait_for_ready_state(READY_STATES[wait_until])
        else:
            await self._wait_for_ready_state(READY_STATES["domcontentloaded"])
            await self._wait_for_network_idle(NETWORK_IDLE_LIMITS[wait_until])

        logger.debug("Page loaded", url=url)

    async def _wait_for_ready_state(self, states: tuple[str, ...]) -> None:
        while True:
            try:
                state = await self.evaluate("() => document.readyState")
                if state in states:
                    return
            except CDPError:
                # Context swapped mid-navigation
                pass
            await asyncio.sleep(self.poll_interval)

    async def _wait_for_network_idle(self, max_inflight: int) -> None:
        idle_since: float | None = None
        while True:
            if self.is_closed():
                raise DetachedSessionError("Page closed while waiting for network idle")
            now = time.monotonic()
            if len(self._inflight) <= max_inflight:
                if idle_since is None:
                    idle_since = now
                elif now - idle_since >= self.network_idle_time:
                    return
            else:
                idle_since = None
            await asyncio.sleep(self.poll_interval)

    async def evaluate(self, function_source: str, *args: Any) -> Any:
        """
        Call a JavaScript function in the page and return its JSON result.

        Args:
            function_source: Source of a JS function expression
            *args: JSON-serializable arguments passed to the function

        Returns:
            The function's return value, deserialized from JSON
        """
        call_args = ", ".join(json.dumps(arg) for arg in args)
        expression = f"({function_source})({call_args})"
        result = await self._send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        details = result.get("exceptionDetails")
        if details:
            exception = details.get("exception", {})
            raise CDPError(f"Evaluation failed: {exception.get('description') or details.get('text')}")
        return result.get("result", {}).get("value")

    async def set_viewport(self, width: int, height: int) -> None:
        """Emulate a desktop viewport of the given size."""
        await self._send(
            "Emulation.setDeviceMetricsOverride",
            {"width": width, "height": height, "deviceScaleFactor": 1, "mobile": False},
        )

    async def set_user_agent(self, user_agent: str) -> None:
        """Override the user agent for every request of this page."""
        await self._send("Network.setUserAgentOverride", {"userAgent": user_agent})

    async def content(self) -> str:
        """Serialized markup of the whole document, doctype included."""
        document = await self._send("DOM.getDocument", {"depth": 0})
        node_id = document.get("root", {}).get("nodeId")
        result = await self._send("DOM.getOuterHTML", {"nodeId": node_id})
        html: str = result.get("outerHTML", "")
        return html

    async def close(self) -> None:
        """Close the page target. Safe to call on an already closed page."""
        if self.is_closed():
            return
        try:
            await self.client.send("Target.closeTarget", {"targetId": self.target_id})
        finally:
            self._mark_closed()
            self._detach_handlers()

    def discard(self) -> None:
        """Forget the page locally without contacting the browser."""
        self._mark_closed()
        self._detach_handlers()

    def _detach_handlers(self) -> None:
        self.client.off("Target.detachedFromTarget", self._on_detached)
        self.client.off("Target.targetDestroyed", self._on_target_gone)
        self.client.off("Target.targetCrashed", self._on_target_gone)
        self.client.off("Inspector.detached", self._on_inspector_detached)
        self.client.off("Network.requestWillBeSent", self._on_request_started)
        self.client.off("Network.loadingFinished", self._on_request_done)
        self.client.off("Network.loadingFailed", self._on_request_done)
