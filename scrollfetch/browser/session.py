"""Browser session over a remote DevTools endpoint."""

from scrollfetch.browser.cdp import CDPClient, resolve_ws_endpoint
from scrollfetch.browser.page import CDPPage
from scrollfetch.config import settings
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserSession:
    """Manages one CDP connection to a shared remote browser.

    The remote browser outlives the session: ``disconnect`` only drops the
    websocket and never sends ``Browser.close``.
    """

    def __init__(self, endpoint: str, client: CDPClient | None = None) -> None:
        self._endpoint = endpoint
        self.client = client or CDPClient(command_timeout=settings.cdp_command_timeout)
        self.client.on_close(self._on_disconnected)
        self._disconnecting = False

    @classmethod
    async def connect(cls, endpoint: str, timeout: float | None = None) -> "BrowserSession":
        """
        Open a session against the browser host at ``endpoint``.

        Args:
            endpoint: ws(s):// browser URL or http(s):// DevTools address
            timeout: Connection timeout in seconds

        Returns:
            Connected BrowserSession
        """
        timeout = timeout if timeout is not None else settings.connect_timeout
        ws_url = await resolve_ws_endpoint(endpoint, timeout=timeout)
        session = cls(endpoint)
        await session.client.connect(ws_url, timeout=timeout)
        return session

    @property
    def endpoint(self) -> str:
        """Configured address of the browser host."""
        return self._endpoint

    def is_connected(self) -> bool:
        """Whether the control channel is still usable."""
        return self.client.is_open

    def _on_disconnected(self) -> None:
        if not self._disconnecting:
            logger.warning("Browser connection lost during operation", endpoint=self._endpoint)

    async def new_page(self) -> CDPPage:
        """Create a blank page target and attach to it."""
        result = await self.client.send("Target.createTarget", {"url": "about:blank"})
        target_id: str = result.get("targetId", "")
        page: CDPPage | None = None
        try:
            attached = await self.client.send(
                "Target.attachToTarget", {"targetId": target_id, "flatten": True}
            )
            page = CDPPage(
                self.client,
                target_id=target_id,
                session_id=attached.get("sessionId", ""),
                network_idle_time=settings.network_idle_time,
            )
            await page.enable()
        except Exception as e:
            logger.warning("Page setup failed, closing target", target_id=target_id, error=str(e))
            await self._close_target(target_id)
            if page is not None:
                page.discard()
            raise
        logger.debug("Created page target", target_id=target_id)
        return page

    async def _close_target(self, target_id: str) -> None:
        """Close a target that never became a usable page. Never raises."""
        if not target_id:
            return
        try:
            await self.client.send("Target.closeTarget", {"targetId": target_id})
        except Exception as e:
            logger.warning("Could not close page target", target_id=target_id, error=str(e))

    async def disconnect(self) -> None:
        """Drop the connection, leaving the remote browser running."""
        self._disconnecting = True
        await self.client.disconnect()
        logger.debug("Browser session disconnected", endpoint=self._endpoint)
