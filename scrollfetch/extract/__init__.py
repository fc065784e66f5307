"""Content extraction."""

from scrollfetch.extract.content import (
    EXTRACTION_FAILED_HTML,
    PAGE_CLOSED_HTML,
    extract_page_content,
    is_placeholder,
)
from scrollfetch.extract.items import extract_items

__all__ = [
    "EXTRACTION_FAILED_HTML",
    "PAGE_CLOSED_HTML",
    "extract_page_content",
    "is_placeholder",
    "extract_items",
]
