"""Data models for scrollfetch."""

from scrollfetch.models.scrape import (
    DetectionState,
    ExtractedItem,
    GrowthMetricName,
    ItemSelectors,
    ScrapeMeta,
    ScrapeRequest,
    ScrapeResult,
    Viewport,
)

__all__ = [
    "DetectionState",
    "ExtractedItem",
    "GrowthMetricName",
    "ItemSelectors",
    "ScrapeMeta",
    "ScrapeRequest",
    "ScrapeResult",
    "Viewport",
]
