"""Remote browser capability surface used by the scrape pipeline.

The pipeline never holds references into the page. Everything it needs from the
remote browser goes through these two protocols, and every value coming back
from the page is JSON.
"""

from typing import Any, Protocol


class RemotePage(Protocol):
    """One navigation context inside a remote browser session."""

    def is_closed(self) -> bool: ...

    async def navigate(self, url: str, wait_until: str, timeout: float) -> None: ...

    async def evaluate(self, function_source: str, *args: Any) -> Any: ...

    async def set_viewport(self, width: int, height: int) -> None: ...

    async def set_user_agent(self, user_agent: str) -> None: ...

    async def content(self) -> str: ...

    async def close(self) -> None: ...


class RemoteBrowser(Protocol):
    """An open control channel to one remote browser."""

    @property
    def endpoint(self) -> str: ...

    def is_connected(self) -> bool: ...

    async def new_page(self) -> RemotePage: ...

    async def disconnect(self) -> None: ...
