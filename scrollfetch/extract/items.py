"""Selector-based projection of repeated items."""

import structlog

from scrollfetch.browser.base import RemotePage
from scrollfetch.models import ExtractedItem, ItemSelectors
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

_ITEMS_JS = """(itemSel, titleSel, linkSel) => {
  const text = (el) => (el && el.textContent ? el.textContent.trim() : null);
  return Array.from(document.querySelectorAll(itemSel)).map((item) => {
    const titleEl = titleSel ? item.querySelector(titleSel) : item;
    let linkEl = linkSel ? item.querySelector(linkSel) : null;
    if (!linkSel) linkEl = item.matches('a[href]') ? item : item.querySelector('a[href]');
    return {
      title: text(titleEl),
      link: linkEl && linkEl.href ? linkEl.href : null,
    };
  });
}"""


async def extract_items(
    page: RemotePage,
    selectors: ItemSelectors,
    log: structlog.stdlib.BoundLogger | None = None,
) -> list[ExtractedItem]:
    """Project every ``selectors.item`` match into a title/link pair.

    Links come back absolute (the element's resolved ``href``). A closed page or a
    failing evaluation yields an empty list.
    """
    log = log or logger
    if page.is_closed():
        return []

    try:
        raw = await page.evaluate(_ITEMS_JS, selectors.item, selectors.title, selectors.link)
    except Exception as e:
        log.warning("Item extraction failed", selector=selectors.item, error=str(e))
        return []

    items = [ExtractedItem(**entry) for entry in raw or [] if isinstance(entry, dict)]
    log.info("Items extracted", selector=selectors.item, count=len(items))
    return items
