"""Scrape job request, settings and result models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scrollfetch.config import settings


class GrowthMetricName(str, Enum):
    """Signals the convergence detector can watch."""

    NODES = "nodes"
    HEIGHT = "height"


class DetectionState(str, Enum):
    """States of the convergence detector."""

    SCROLLING = "scrolling"
    OBSERVING = "observing"
    STABLE = "stable"
    EXHAUSTED = "exhausted"
    TIMED_OUT = "timed_out"
    DETACHED = "detached"


class _CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase names of the public API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Viewport(_CamelModel):
    """Browser viewport size in CSS pixels."""

    width: int = Field(default_factory=lambda: settings.default_viewport_width, gt=0)
    height: int = Field(default_factory=lambda: settings.default_viewport_height, gt=0)


class ItemSelectors(_CamelModel):
    """Selectors for projecting repeated items into title/link pairs."""

    item: str = Field(..., min_length=1, description="Selector matching each item")
    title: str | None = Field(default=None, description="Title selector inside an item")
    link: str | None = Field(default=None, description="Link selector inside an item")


class ScrapeRequest(_CamelModel):
    """Job parameters accepted by ``POST /scrape``.

    ``url`` is optional at the schema level so that a missing URL is reported
    as a client error by the job runner rather than as a schema error.
    """

    url: str | None = Field(default=None, description="Page to materialize")
    max_scrolls: int = Field(
        default_factory=lambda: settings.default_max_scrolls,
        ge=1,
        description="Maximum scroll attempts",
    )
    scroll_delay_ms: int = Field(
        default_factory=lambda: settings.default_scroll_delay_ms,
        ge=0,
        description="Observation window after each scroll",
    )
    stability_idle_ms: int | None = Field(
        default=None,
        ge=0,
        description="Continuous quiet period that counts as converged",
    )
    check_interval_ms: int = Field(
        default_factory=lambda: settings.default_check_interval_ms,
        gt=0,
        description="Poll interval while observing",
    )
    timeout_ms: int = Field(
        default_factory=lambda: settings.default_timeout_ms,
        gt=0,
        description="Overall job timeout",
    )
    viewport: Viewport = Field(default_factory=Viewport)
    growth_metric: GrowthMetricName = Field(
        default_factory=lambda: GrowthMetricName(settings.default_growth_metric)
    )
    selectors: ItemSelectors | None = None

    @property
    def effective_idle_ms(self) -> int:
        """Idle window, derived from the scroll delay when not given."""
        if self.stability_idle_ms:
            return self.stability_idle_ms
        return max(500, min(2000, self.scroll_delay_ms or 800))

    def effective_settings(self) -> dict[str, Any]:
        """Settings echoed back in the response metadata."""
        return {
            "maxScrolls": self.max_scrolls,
            "scrollDelayMs": self.scroll_delay_ms,
            "timeoutMs": self.timeout_ms,
            "stabilityIdleMs": self.effective_idle_ms,
            "checkIntervalMs": self.check_interval_ms,
            "growthMetric": self.growth_metric.value,
            "viewport": {"width": self.viewport.width, "height": self.viewport.height},
        }


class ExtractedItem(BaseModel):
    """One item projected from the page by ``ItemSelectors``."""

    title: str | None = None
    link: str | None = None


class ScrapeMeta(BaseModel):
    """Timing and convergence metadata of a finished job."""

    took: int = Field(..., description="Elapsed time in milliseconds")
    stable: bool
    outcome: DetectionState
    attempts: int = 0
    settings: dict[str, Any] = Field(default_factory=dict)


class ScrapeResult(BaseModel):
    """Final document of a job plus its metadata."""

    meta: ScrapeMeta
    html: str
    items: list[ExtractedItem] | None = None
