"""Scrape job lifecycle."""

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from scrollfetch.browser.base import RemoteBrowser, RemotePage
from scrollfetch.browser.connector import SessionConnector
from scrollfetch.config import settings
from scrollfetch.errors import (
    BrowserConnectionError,
    DetachedSessionError,
    JobError,
    JobTimeoutError,
    JobValidationError,
    ScrapeError,
)
from scrollfetch.extract import extract_items, extract_page_content
from scrollfetch.models import (
    DetectionState,
    ExtractedItem,
    ScrapeMeta,
    ScrapeRequest,
    ScrapeResult,
)
from scrollfetch.scroll import (
    ConvergenceDetector,
    DetectionOutcome,
    ScrollTarget,
    clear_scroll_target,
    get_metric,
    locate_scroll_target,
)
from scrollfetch.utils.logging import job_logger

Clock = Callable[[], float]
SleepFunc = Callable[[float], Awaitable[None]]


class JobRunner:
    """Runs one scrape job from connect to cleanup.

    Steps run strictly in order. The page and the session are released in a
    ``finally`` block on every path, and release errors are only logged.
    """

    def __init__(
        self,
        connector: SessionConnector | None = None,
        clock: Clock = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.connector = connector or SessionConnector()
        self._clock = clock
        self._sleep = sleep

    async def run(self, request: ScrapeRequest) -> ScrapeResult:
        """
        Materialize ``request.url`` and return its final document.

        Args:
            request: Job parameters

        Returns:
            ScrapeResult with the document and convergence metadata

        Raises:
            JobValidationError: URL missing
            BrowserConnectionError: No session could be obtained
            NavigationError: The URL did not load
            JobTimeoutError: Detection overran the job deadline
            JobError: Any other failure
        """
        url = (request.url or "").strip()
        if not url:
            raise JobValidationError('Missing "url" in request body')

        log = job_logger(url, __name__)
        start = self._clock()
        deadline = start + request.timeout_ms / 1000

        browser: RemoteBrowser | None = None
        page: RemotePage | None = None
        log.info("Starting scrape job", settings=request.effective_settings())

        try:
            browser = await self.connector.acquire(log=log)
            if not browser.is_connected():
                raise BrowserConnectionError("Browser connection lost immediately after connect")

            page = await browser.new_page()

            try:
                outcome = await self._load_and_scroll(browser, page, url, request, deadline, log)
            except DetachedSessionError as e:
                log.warning("Page detached mid-job, continuing with degraded content", error=str(e))
                outcome = DetectionOutcome(state=DetectionState.DETACHED, attempts=0)

            if not outcome.stable:
                log.warning("Scrolling did not reach stability", outcome=outcome.state.value)

            if not page.is_closed():
                log.debug("Waiting for final page rendering", delay=settings.settle_delay)
                await self._sleep(settings.settle_delay)

            html = await extract_page_content(page, sleep=self._sleep, log=log)
            items: list[ExtractedItem] | None = None
            if request.selectors is not None:
                items = await extract_items(page, request.selectors, log=log)

        except ScrapeError as e:
            log.error("Scrape job failed", error=e.message)
            raise
        except Exception as e:
            log.error("Scrape job failed", error=str(e))
            raise JobError(str(e) or type(e).__name__) from e
        finally:
            await self._release(page, browser, log)

        took = int((self._clock() - start) * 1000)
        log.info("Scrape job completed", took=took, stable=outcome.stable, length=len(html))
        return ScrapeResult(
            meta=ScrapeMeta(
                took=took,
                stable=outcome.stable,
                outcome=outcome.state,
                attempts=outcome.attempts,
                settings=request.effective_settings(),
            ),
            html=html,
            items=items,
        )

    async def _load_and_scroll(
        self,
        browser: RemoteBrowser,
        page: RemotePage,
        url: str,
        request: ScrapeRequest,
        deadline: float,
        log: structlog.stdlib.BoundLogger,
    ) -> DetectionOutcome:
        await page.set_viewport(request.viewport.width, request.viewport.height)
        await page.set_user_agent(settings.user_agent)
        await page.navigate(
            url,
            wait_until=settings.navigation_wait_until,
            timeout=settings.navigation_timeout,
        )

        if not browser.is_connected():
            raise BrowserConnectionError("Browser connection lost before scroll detection")
        target = await locate_scroll_target(page, log=log)

        outcome = await self._race_detector(page, target, request, deadline, log)
        await clear_scroll_target(page, target, log=log)
        return outcome

    async def _race_detector(
        self,
        page: RemotePage,
        target: ScrollTarget,
        request: ScrapeRequest,
        deadline: float,
        log: structlog.stdlib.BoundLogger,
    ) -> DetectionOutcome:
        remaining = max(0.0, deadline - self._clock())
        detector = ConvergenceDetector(
            metric=get_metric(request.growth_metric),
            clock=self._clock,
            sleep=self._sleep,
            log=log,
        )
        task = asyncio.create_task(
            detector.detect(
                page,
                target,
                max_attempts=request.max_scrolls,
                timeout=remaining,
                idle=request.effective_idle_ms / 1000,
                poll_interval=request.check_interval_ms / 1000,
                attempt_window=request.scroll_delay_ms / 1000,
            )
        )

        done, _ = await asyncio.wait({task}, timeout=remaining + settings.detector_grace_seconds)
        if task not in done:
            # Local cancellation only; a remote command in flight keeps running.
            task.cancel()
            raise JobTimeoutError(f"Scrolling did not finish within {request.timeout_ms}ms")
        return task.result()

    async def _release(
        self,
        page: RemotePage | None,
        browser: RemoteBrowser | None,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Close the page, then drop the session. Never raises."""
        if page is not None:
            try:
                if not page.is_closed():
                    await page.close()
            except Exception as e:
                log.warning("Error closing page", error=str(e))

        if browser is not None:
            try:
                await browser.disconnect()
            except Exception as e:
                log.warning("Error disconnecting browser", error=str(e))


# Global job runner instance
job_runner = JobRunner()


def get_job_runner() -> JobRunner:
    """FastAPI dependency returning the shared runner."""
    return job_runner
