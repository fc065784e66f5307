"""Convergence detection for lazily loading pages.

No event announces that an arbitrary page has finished loading. The detector
scrolls the target to its end, then watches a growth metric. A page counts as
converged once the metric stays unchanged for a continuous idle window. Any
change restarts the window. Attempt count and overall deadline are independent
bounds; whichever is hit first ends detection with a non-stable outcome.

States::

    SCROLLING -> OBSERVING -> (SCROLLING ...) -> STABLE
                                              | EXHAUSTED
                                              | TIMED_OUT
                                              | DETACHED
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from scrollfetch.browser.base import RemotePage
from scrollfetch.models import DetectionState
from scrollfetch.scroll.locator import ScrollTarget
from scrollfetch.scroll.metrics import RESOLVE_TARGET_JS, GrowthMetric, NodeCountMetric
from scrollfetch.utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]
SleepFunc = Callable[[float], Awaitable[None]]

_SCROLL_JS = f"""(sel) => {{
  const el = {RESOLVE_TARGET_JS};
  if (el === document.scrollingElement || el === document.body || el === document.documentElement) {{
    window.scrollTo({{top: el.scrollHeight, behavior: 'auto'}});
  }} else {{
    el.scrollTop = el.scrollHeight;
  }}
  return true;
}}"""


@dataclass
class ConvergenceState:
    """Mutable bookkeeping for one detection run."""

    phase: DetectionState = DetectionState.SCROLLING
    last_value: int | None = None
    stable_since: float | None = None
    attempts: int = 0


@dataclass(frozen=True)
class DetectionOutcome:
    """Terminal state of a detection run."""

    state: DetectionState
    attempts: int
    last_value: int | None = None

    @property
    def stable(self) -> bool:
        return self.state is DetectionState.STABLE


class ConvergenceDetector:
    """Scroll-and-observe loop parameterized by a growth metric."""

    def __init__(
        self,
        metric: GrowthMetric | None = None,
        clock: Clock = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.metric = metric or NodeCountMetric()
        self._clock = clock
        self._sleep = sleep
        self._log = log or logger

    async def detect(
        self,
        page: RemotePage,
        target: ScrollTarget,
        max_attempts: int,
        timeout: float,
        idle: float,
        poll_interval: float,
        attempt_window: float | None = None,
    ) -> DetectionOutcome:
        """
        Scroll until the growth metric is quiet for ``idle`` seconds.

        Args:
            page: Page to drive
            target: Marked scroll container
            max_attempts: Maximum number of scroll commands
            timeout: Overall budget in seconds
            idle: Continuous quiet period that counts as converged
            poll_interval: Seconds between metric readings
            attempt_window: How long to observe after each scroll before
                scrolling again; the whole remaining budget when None

        Returns:
            DetectionOutcome with the terminal state
        """
        state = ConvergenceState()
        deadline = self._clock() + timeout

        while state.attempts < max_attempts:
            if self._clock() >= deadline:
                return self._finish(state, DetectionState.TIMED_OUT)
            if page.is_closed():
                return self._finish(state, DetectionState.DETACHED)

            state.phase = DetectionState.SCROLLING
            state.attempts += 1
            try:
                await page.evaluate(_SCROLL_JS, target.selector)
            except Exception as e:
                self._log.warning("Scroll command failed, stopping", error=str(e))
                return self._finish(state, DetectionState.DETACHED)

            if state.last_value is None:
                state.last_value = await self.metric.measure(page, target)

            state.phase = DetectionState.OBSERVING
            window = max(attempt_window, poll_interval) if attempt_window is not None else timeout
            window_end = min(deadline, self._clock() + window)
            while self._clock() < window_end:
                await self._sleep(min(poll_interval, deadline - self._clock()))

                # A reading taken at or past the deadline never counts.
                if self._clock() >= deadline:
                    return self._finish(state, DetectionState.TIMED_OUT)
                if page.is_closed():
                    self._log.warning("Page closed during stability check, stopping")
                    return self._finish(state, DetectionState.DETACHED)

                value = await self.metric.measure(page, target)
                now = self._clock()
                if value is None:
                    if page.is_closed():
                        return self._finish(state, DetectionState.DETACHED)
                    continue

                if value == state.last_value:
                    if state.stable_since is None:
                        state.stable_since = now
                    if now - state.stable_since >= idle:
                        return self._finish(state, DetectionState.STABLE)
                else:
                    state.last_value = value
                    state.stable_since = None

            self._log.debug(
                "Scroll attempt finished without stability",
                attempt=state.attempts,
                value=state.last_value,
            )

        if self._clock() >= deadline:
            return self._finish(state, DetectionState.TIMED_OUT)
        return self._finish(state, DetectionState.EXHAUSTED)

    def _finish(self, state: ConvergenceState, terminal: DetectionState) -> DetectionOutcome:
        state.phase = terminal
        self._log.info(
            "Convergence detection finished",
            outcome=terminal.value,
            attempts=state.attempts,
            metric=self.metric.name,
            value=state.last_value,
        )
        return DetectionOutcome(state=terminal, attempts=state.attempts, last_value=state.last_value)


async def detect_convergence(
    page: RemotePage,
    target: ScrollTarget,
    max_attempts: int = 40,
    timeout: float = 120.0,
    idle: float = 1.0,
    poll_interval: float = 0.5,
    attempt_window: float | None = None,
    metric: GrowthMetric | None = None,
) -> bool:
    """Run a detector with default collaborators and report stability."""
    detector = ConvergenceDetector(metric=metric)
    outcome = await detector.detect(
        page,
        target,
        max_attempts=max_attempts,
        timeout=timeout,
        idle=idle,
        poll_interval=poll_interval,
        attempt_window=attempt_window,
    )
    return outcome.stable
