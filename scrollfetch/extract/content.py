"""Final document retrieval with fallbacks."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from scrollfetch.browser.base import RemotePage
from scrollfetch.config import settings
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

PAGE_CLOSED_HTML = "<html><body><!-- Page closed before content extraction --></body></html>"
EXTRACTION_FAILED_HTML = (
    "<html><body><!-- Content extraction failed after retries --></body></html>"
)

_OUTER_HTML_JS = "() => document.documentElement.outerHTML"


def is_placeholder(html: str) -> bool:
    """Whether ``html`` is one of the degraded-result sentinels."""
    return html in (PAGE_CLOSED_HTML, EXTRACTION_FAILED_HTML)


async def extract_page_content(
    page: RemotePage,
    max_retries: int | None = None,
    min_length: int | None = None,
    sleep: SleepFunc = asyncio.sleep,
    log: structlog.stdlib.BoundLogger | None = None,
) -> str:
    """
    Retrieve the rendered document, degrading to a placeholder instead of failing.

    Each attempt first asks for the serialized document, then for the root
    element's markup. A result must be longer than ``min_length`` to count;
    shorter output is treated like a blank or error page.

    Args:
        page: Page to read
        max_retries: Number of attempts
        min_length: Minimum plausible document length
        sleep: Backoff timer

    Returns:
        The document markup or one of the placeholder documents
    """
    max_retries = max_retries if max_retries is not None else settings.extraction_max_retries
    min_length = min_length if min_length is not None else settings.min_content_length
    log = log or logger

    for attempt in range(1, max_retries + 1):
        if page.is_closed():
            log.warning("Page closed before content extraction")
            return PAGE_CLOSED_HTML

        try:
            log.debug("Content extraction attempt", attempt=attempt, max_retries=max_retries)
            html = await page.content()
            if html and len(html) > min_length:
                log.info("Content extracted", length=len(html))
                return html

            log.debug("Document too short, trying root element markup", length=len(html or ""))
            alt_html = await page.evaluate(_OUTER_HTML_JS)
            if isinstance(alt_html, str) and len(alt_html) > min_length:
                log.info("Alternative content extracted", length=len(alt_html))
                return alt_html

            log.warning("Content extraction attempt failed", attempt=attempt, error="content too short or empty")
        except Exception as e:
            log.warning("Content extraction attempt failed", attempt=attempt, error=str(e))
            if page.is_closed():
                return PAGE_CLOSED_HTML

        if attempt < max_retries:
            await sleep(1.0 * attempt)

    log.error("All content extraction attempts failed", attempts=max_retries)
    return EXTRACTION_FAILED_HTML
