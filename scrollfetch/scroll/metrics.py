"""Growth signals watched by the convergence detector."""

from typing import Protocol

from scrollfetch.browser.base import RemotePage
from scrollfetch.models import GrowthMetricName
from scrollfetch.scroll.locator import ScrollTarget

# Resolves the marked element, falling back to the document's scrolling root.
RESOLVE_TARGET_JS = (
    "document.querySelector(sel) || document.scrollingElement || document.body"
)


class GrowthMetric(Protocol):
    """A scalar that grows while the page keeps loading content."""

    name: str

    async def measure(self, page: RemotePage, target: ScrollTarget) -> int | None:
        """Current value, or None when the page could not be read."""
        ...


class _ScriptMetric:
    name = ""
    script = ""

    async def measure(self, page: RemotePage, target: ScrollTarget) -> int | None:
        if page.is_closed():
            return None
        try:
            value = await page.evaluate(self.script, target.selector)
        except Exception:
            return None
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return int(value)


class NodeCountMetric(_ScriptMetric):
    """Number of elements under the scroll target."""

    name = GrowthMetricName.NODES.value
    script = f"(sel) => {{ const el = {RESOLVE_TARGET_JS}; return el.querySelectorAll('*').length; }}"


class HeightMetric(_ScriptMetric):
    """Scrollable height of the scroll target in pixels."""

    name = GrowthMetricName.HEIGHT.value
    script = f"(sel) => {{ const el = {RESOLVE_TARGET_JS}; return el.scrollHeight; }}"


_METRICS: dict[str, type[_ScriptMetric]] = {
    GrowthMetricName.NODES.value: NodeCountMetric,
    GrowthMetricName.HEIGHT.value: HeightMetric,
}


def get_metric(name: str | GrowthMetricName) -> GrowthMetric:
    """Build the metric registered under ``name``."""
    key = name.value if isinstance(name, GrowthMetricName) else name
    try:
        return _METRICS[key]()
    except KeyError:
        raise ValueError(f"Unknown growth metric: {key}") from None
