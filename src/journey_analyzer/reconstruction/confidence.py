from __future__ import annotations
from typing import Sequence, Tuple
from .journey import EngagementMetrics

# (minimum value, points) from highest tier down; the last entry is the floor
EVENT_COUNT_TIERS: Tuple[Tuple[float, int], ...] = ((20, 25), (10, 20), (5, 15), (0, 5))
DWELL_TIERS: Tuple[Tuple[float, int], ...] = ((180, 25), (60, 15), (30, 10), (0, 5))
SCROLL_TIERS: Tuple[Tuple[float, int], ...] = ((75, 20), (50, 15), (25, 10), (0, 5))
UNIQUE_PAGE_TIERS: Tuple[Tuple[float, int], ...] = ((4, 15), (2, 10), (0, 5))
SECTION_TIERS: Tuple[Tuple[float, int], ...] = ((2, 15), (1, 10), (0, 5))


def _tier(value: float, tiers: Sequence[Tuple[float, int]]) -> int:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return tiers[-1][1]


def calculate_confidence(event_count: int, metrics: EngagementMetrics) -> int:
    """Reliability of the classification itself (0-100), not of the visitor's intent."""
    if event_count <= 0:
        return 0
    score = (
        _tier(event_count, EVENT_COUNT_TIERS)
        + _tier(metrics.dwell_seconds, DWELL_TIERS)
        + _tier(metrics.max_scroll_pct, SCROLL_TIERS)
        + _tier(metrics.unique_pages, UNIQUE_PAGE_TIERS)
        + _tier(metrics.section_count, SECTION_TIERS)
    )
    return max(0, min(100, score))
