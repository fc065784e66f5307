"""Scroll target detection and convergence."""

from scrollfetch.scroll.detector import (
    ConvergenceDetector,
    ConvergenceState,
    DetectionOutcome,
    detect_convergence,
)
from scrollfetch.scroll.locator import (
    DEFAULT_TARGET,
    ScrollTarget,
    clear_scroll_target,
    locate_scroll_target,
    new_scroll_target,
)
from scrollfetch.scroll.metrics import GrowthMetric, HeightMetric, NodeCountMetric, get_metric

__all__ = [
    "ConvergenceDetector",
    "ConvergenceState",
    "DetectionOutcome",
    "detect_convergence",
    "DEFAULT_TARGET",
    "ScrollTarget",
    "clear_scroll_target",
    "locate_scroll_target",
    "new_scroll_target",
    "GrowthMetric",
    "HeightMetric",
    "NodeCountMetric",
    "get_metric",
]
