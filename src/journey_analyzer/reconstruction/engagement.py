from __future__ import annotations
from typing import Sequence
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.validation.events import TrackedEvent
from .journey import EngagementMetrics


def calculate_engagement_metrics(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> EngagementMetrics:
    """Engagement facets of a sorted event list.

    Dwell time is estimated from heartbeat count, not measured.
    """
    max_scroll = 0
    heartbeats = 0
    sections = 0
    pages = set()
    for e in events:
        if e.event_type == "scroll_depth":
            depth = e.metadata.depth or 0
            if depth > max_scroll:
                max_scroll = depth
        elif e.event_type == "heartbeat":
            heartbeats += 1
        elif e.event_type == "section_view":
            sections += 1
        elif e.event_type == "page_view" and e.page_url is not None:
            pages.add(e.page_url)
    return EngagementMetrics(
        max_scroll_pct=max_scroll,
        dwell_seconds=heartbeats * config.heartbeat_interval_seconds,
        unique_pages=len(pages),
        section_count=sections,
        total_events=len(events),
    )
