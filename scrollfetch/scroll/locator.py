"""Scroll target detection.

The element with the most scroll slack (``scrollHeight - clientHeight``) is
marked with an attribute so later steps can re-resolve it by selector. Nothing
here holds a reference into the page.
"""

import uuid
from dataclasses import dataclass

import structlog

from scrollfetch.browser.base import RemotePage
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

MARKER_ATTRIBUTE = "data-scrape-scroll"


@dataclass(frozen=True)
class ScrollTarget:
    """Locator for the marked scroll container."""

    attribute: str = MARKER_ATTRIBUTE
    value: str = "1"

    @property
    def selector(self) -> str:
        return f'[{self.attribute}="{self.value}"]'


DEFAULT_TARGET = ScrollTarget()


def new_scroll_target() -> ScrollTarget:
    """Locator with a value unique to one job, so concurrent jobs never share a marker."""
    return ScrollTarget(value=uuid.uuid4().hex[:12])


_LOCATE_JS = """(attr, value) => {
  try {
    const nodes = Array.from(document.querySelectorAll('body, html, *'));
    let best = document.scrollingElement || document.body;
    let bestDelta = (best.scrollHeight || 0) - (best.clientHeight || 0);
    for (const n of nodes) {
      const delta = (n.scrollHeight || 0) - (n.clientHeight || 0);
      if (delta > bestDelta) {
        best = n;
        bestDelta = delta;
      }
    }
    best.setAttribute(attr, value);
    return {tag: best.tagName.toLowerCase(), slack: bestDelta};
  } catch (e) {
    return null;
  }
}"""

_CLEAR_JS = """(selector, attr) => {
  const el = document.querySelector(selector);
  if (el) el.removeAttribute(attr);
  return !!el;
}"""


async def locate_scroll_target(
    page: RemotePage,
    target: ScrollTarget | None = None,
    log: structlog.stdlib.BoundLogger | None = None,
) -> ScrollTarget:
    """Mark the most scrollable element of ``page``. Never raises.

    The returned locator is usable even when nothing got marked: an unmatched
    selector resolves to the document's scrolling element.
    """
    log = log or logger
    target = target or new_scroll_target()
    if page.is_closed():
        return target

    try:
        found = await page.evaluate(_LOCATE_JS, target.attribute, target.value)
    except Exception as e:
        log.warning("Scroll target detection failed, using document root", error=str(e))
        return target

    if found:
        log.info("Scroll target located", tag=found.get("tag"), slack=found.get("slack"))
    return target


async def clear_scroll_target(
    page: RemotePage,
    target: ScrollTarget,
    log: structlog.stdlib.BoundLogger | None = None,
) -> None:
    """Remove the marker attribute, best effort."""
    if page.is_closed():
        return
    try:
        await page.evaluate(_CLEAR_JS, target.selector, target.attribute)
    except Exception as e:
        (log or logger).debug("Could not remove scroll marker", error=str(e))
