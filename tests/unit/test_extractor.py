"""Tests for content extraction fallbacks."""

from scrollfetch.errors import DetachedSessionError
from scrollfetch.extract import (
    EXTRACTION_FAILED_HTML,
    PAGE_CLOSED_HTML,
    extract_items,
    extract_page_content,
    is_placeholder,
)
from scrollfetch.models import ItemSelectors
from tests.fakes import LONG_HTML, FakeClock, FakePage

ALT_HTML = "<html><body>" + "<div>alternative</div>" * 10 + "</body></html>"


async def test_primary_document_returned() -> None:
    """A long enough document is returned directly."""
    clock = FakeClock()
    page = FakePage(html=[LONG_HTML])

    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == LONG_HTML
    assert page.alt_calls == 0
    assert clock.sleeps == []


async def test_secondary_used_when_primary_too_short() -> None:
    """Root element markup backs up a short document."""
    clock = FakeClock()
    page = FakePage(html=["<html></html>"], alt_html=[ALT_HTML])

    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == ALT_HTML
    assert page.content_calls == 1
    assert page.alt_calls == 1


async def test_both_methods_short_returns_failure_placeholder() -> None:
    """Short output on every attempt degrades instead of raising."""
    clock = FakeClock()
    page = FakePage(html=[""], alt_html=["<html/>"])

    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == EXTRACTION_FAILED_HTML
    assert is_placeholder(html)
    assert page.content_calls == 3
    assert page.alt_calls == 3
    assert clock.sleeps == [1.0, 2.0]


async def test_length_must_exceed_minimum() -> None:
    """Markup exactly at the minimum length is rejected."""
    clock = FakeClock()
    exact = "x" * 100
    page = FakePage(html=[exact], alt_html=[exact])

    html = await extract_page_content(page, max_retries=1, min_length=100, sleep=clock.sleep)

    assert html == EXTRACTION_FAILED_HTML


async def test_error_then_success_on_retry() -> None:
    """A failed attempt is retried after a backoff."""
    clock = FakeClock()
    page = FakePage(html=[RuntimeError("Timeout waiting for response"), LONG_HTML])

    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == LONG_HTML
    assert clock.sleeps == [1.0]


async def test_closed_page_returns_placeholder_without_retry() -> None:
    """A closed page yields the closed placeholder at once."""
    clock = FakeClock()
    page = FakePage(closed=True)

    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == PAGE_CLOSED_HTML
    assert page.content_calls == 0
    assert clock.sleeps == []


async def test_page_closing_during_extraction() -> None:
    """A page that closes mid-read yields the closed placeholder."""
    clock = FakeClock()
    page = FakePage()

    async def closing_content() -> str:
        page.closed = True
        raise DetachedSessionError("Target closed")

    page.content = closing_content  # type: ignore[method-assign]
    html = await extract_page_content(page, max_retries=3, min_length=100, sleep=clock.sleep)

    assert html == PAGE_CLOSED_HTML
    assert clock.sleeps == []


async def test_extract_items_projection() -> None:
    """Selector matches become title and link items."""
    page = FakePage(
        items=[
            {"title": "First post", "link": "https://example.com/p/1"},
            {"title": "Second post", "link": None},
        ]
    )

    items = await extract_items(page, ItemSelectors(item="article", title="h2", link="a"))

    assert [item.title for item in items] == ["First post", "Second post"]
    assert items[0].link == "https://example.com/p/1"
    assert items[1].link is None


async def test_extract_items_degrades_to_empty() -> None:
    """Item extraction errors give an empty list."""
    selectors = ItemSelectors(item="article")

    assert await extract_items(FakePage(closed=True), selectors) == []

    page = FakePage()

    async def broken(*args: object) -> None:
        raise RuntimeError("SyntaxError: not a valid selector")

    page.evaluate = broken  # type: ignore[method-assign]
    assert await extract_items(page, selectors) == []
