"""Tests for the convergence detector."""

import pytest

from scrollfetch.models import DetectionState
from scrollfetch.scroll.detector import ConvergenceDetector, detect_convergence
from scrollfetch.scroll.locator import DEFAULT_TARGET
from scrollfetch.scroll.metrics import HeightMetric
from tests.fakes import FakeClock, FakePage


def _detector(clock: FakeClock, **kwargs: object) -> ConvergenceDetector:
    return ConvergenceDetector(clock=clock, sleep=clock.sleep, **kwargs)  # type: ignore[arg-type]


async def test_feed_settles_on_second_attempt() -> None:
    """Readings 100, 140, 140 with a short idle window converge on scroll two."""
    clock = FakeClock()
    page = FakePage(metrics=[100, 140, 140])

    outcome = await _detector(clock).detect(
        page,
        DEFAULT_TARGET,
        max_attempts=3,
        timeout=60.0,
        idle=0.5,
        poll_interval=1.0,
        attempt_window=2.0,
    )

    assert outcome.stable
    assert outcome.state is DetectionState.STABLE
    assert outcome.attempts == 2
    assert page.scrolls == 2
    assert outcome.last_value == 140


async def test_stable_no_earlier_than_idle_after_last_change() -> None:
    """Growth stops during attempt two; success comes within one more attempt."""
    clock = FakeClock()
    page = FakePage(metrics=[10, 20, 30, 40, 50])

    outcome = await _detector(clock).detect(
        page,
        DEFAULT_TARGET,
        max_attempts=10,
        timeout=60.0,
        idle=1.0,
        poll_interval=1.0,
        attempt_window=3.0,
    )

    assert outcome.stable
    assert outcome.attempts <= 3
    # The last change was read at t=4.
    assert clock.now - 4.0 >= 1.0


async def test_growth_resets_idle_window() -> None:
    """A change in the middle of a quiet period restarts the idle clock."""
    clock = FakeClock()
    page = FakePage(metrics=[5, 5, 5, 6, 6, 6, 6])

    outcome = await _detector(clock).detect(
        page,
        DEFAULT_TARGET,
        max_attempts=1,
        timeout=60.0,
        idle=2.0,
        poll_interval=1.0,
    )

    assert outcome.stable
    # Quiet from t=1, broken at t=3, quiet again from t=4, confirmed at t=6.
    assert clock.now == 6.0


async def test_shrink_counts_as_change() -> None:
    """A shrinking metric restarts the idle window."""
    clock = FakeClock()
    page = FakePage(metrics=[100, 90, 90, 90, 90])

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=1, timeout=60.0, idle=1.5, poll_interval=1.0
    )

    assert outcome.stable
    assert clock.now == 4.0


async def test_never_stable_stops_at_max_attempts() -> None:
    """Constant growth ends after the last attempt."""
    clock = FakeClock()
    page = FakePage(metrics=list(range(1000)))

    outcome = await _detector(clock).detect(
        page,
        DEFAULT_TARGET,
        max_attempts=3,
        timeout=100.0,
        idle=0.5,
        poll_interval=1.0,
        attempt_window=2.0,
    )

    assert not outcome.stable
    assert outcome.state is DetectionState.EXHAUSTED
    assert outcome.attempts == 3
    assert page.scrolls == 3
    assert clock.now == 6.0


async def test_never_stable_stops_at_deadline() -> None:
    """Constant growth ends at the overall deadline."""
    clock = FakeClock()
    page = FakePage(metrics=list(range(1000)))

    outcome = await _detector(clock).detect(
        page,
        DEFAULT_TARGET,
        max_attempts=100,
        timeout=5.0,
        idle=0.5,
        poll_interval=1.0,
        attempt_window=2.0,
    )

    assert not outcome.stable
    assert outcome.state is DetectionState.TIMED_OUT
    assert outcome.attempts == 3
    assert clock.now == 5.0


async def test_without_attempt_window_deadline_governs() -> None:
    """With no per-attempt window one scroll is observed until the deadline."""
    clock = FakeClock()
    page = FakePage(metrics=list(range(1000)))

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=40, timeout=4.0, idle=0.5, poll_interval=1.0
    )

    assert outcome.state is DetectionState.TIMED_OUT
    assert page.scrolls == 1


async def test_page_closed_mid_observation() -> None:
    """A closed page ends detection at once, without further readings."""
    clock = FakeClock()
    page = FakePage(metrics=[10], close_after_reads=2)

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=5, timeout=60.0, idle=10.0, poll_interval=1.0
    )

    assert not outcome.stable
    assert outcome.state is DetectionState.DETACHED
    assert page.metric_reads == 2


async def test_closed_before_first_scroll() -> None:
    """A page closed up front is detached without scrolling."""
    clock = FakeClock()
    page = FakePage(closed=True)

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=5, timeout=60.0, idle=1.0, poll_interval=1.0
    )

    assert outcome.state is DetectionState.DETACHED
    assert outcome.attempts == 0
    assert page.scripts == []


async def test_scroll_failure_is_detached() -> None:
    """A failed scroll command ends detection as detached."""
    clock = FakeClock()
    page = FakePage(scroll_error=RuntimeError("Frame detached"))

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=5, timeout=60.0, idle=1.0, poll_interval=1.0
    )

    assert outcome.state is DetectionState.DETACHED
    assert outcome.attempts == 1


async def test_unreadable_metric_is_skipped() -> None:
    """A failed reading on a live page is neither growth nor quiet."""
    clock = FakeClock()
    page = FakePage(metrics=[100, None, 100, 100])

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=1, timeout=60.0, idle=1.0, poll_interval=1.0
    )

    assert outcome.stable
    assert clock.now == 3.0


async def test_height_metric_drives_detection() -> None:
    """The height metric can replace the node count."""
    clock = FakeClock()
    page = FakePage(metrics=[900, 1800, 1800, 1800])

    outcome = await _detector(clock, metric=HeightMetric()).detect(
        page, DEFAULT_TARGET, max_attempts=2, timeout=60.0, idle=1.0, poll_interval=1.0
    )

    assert outcome.stable
    assert HeightMetric.script in page.scripts


@pytest.mark.parametrize("max_attempts", [1, 2])
async def test_detect_convergence_wrapper(max_attempts: int) -> None:
    """The convenience wrapper reports stability as a bool."""
    page = FakePage(metrics=[42])

    stable = await detect_convergence(
        page,
        DEFAULT_TARGET,
        max_attempts=max_attempts,
        timeout=5.0,
        idle=0.02,
        poll_interval=0.01,
    )

    assert stable is True


async def test_long_poll_interval_is_cut_at_deadline() -> None:
    """A poll interval longer than the budget still stops at the deadline."""
    clock = FakeClock()
    page = FakePage(metrics=[10, 10, 10])

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=5, timeout=1.0, idle=0.0, poll_interval=5.0
    )

    assert outcome.state is DetectionState.TIMED_OUT
    assert not outcome.stable
    assert clock.now == 1.0
    assert clock.sleeps == [1.0]
    # Only the baseline reading taken right after the scroll.
    assert page.metric_reads == 1


async def test_quiet_reading_at_deadline_is_not_stable() -> None:
    """Stability confirmed exactly when the budget runs out is a timeout."""
    clock = FakeClock()
    page = FakePage(metrics=[7])

    outcome = await _detector(clock).detect(
        page, DEFAULT_TARGET, max_attempts=1, timeout=2.0, idle=1.0, poll_interval=1.0
    )

    assert outcome.state is DetectionState.TIMED_OUT
    assert clock.now == 2.0
