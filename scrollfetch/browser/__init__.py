"""Remote browser access."""

from scrollfetch.browser.base import RemoteBrowser, RemotePage
from scrollfetch.browser.cdp import CDPClient, CDPConnectionClosed, CDPError, resolve_ws_endpoint
from scrollfetch.browser.connector import SessionConnector
from scrollfetch.browser.page import CDPPage
from scrollfetch.browser.session import BrowserSession

__all__ = [
    "RemoteBrowser",
    "RemotePage",
    "CDPClient",
    "CDPConnectionClosed",
    "CDPError",
    "resolve_ws_endpoint",
    "SessionConnector",
    "CDPPage",
    "BrowserSession",
]
