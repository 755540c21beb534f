from __future__ import annotations
from typing import Dict, List, Optional, Sequence
from journey_analyzer.validation.events import TrackedEvent
from .journey import Loop, PageVisit


def page_views(events: Sequence[TrackedEvent]) -> List[TrackedEvent]:
    return [e for e in events if e.event_type == "page_view"]


def build_page_sequence(events: Sequence[TrackedEvent]) -> List[PageVisit]:
    """Ordered page views of an already sorted event list."""
    return [PageVisit(url=e.page_url, timestamp=e.occurred_at) for e in page_views(events)]


def detect_loops(sequence: Sequence[PageVisit]) -> List[Loop]:
    """URLs visited more than once, in the order they first became a loop.

    A URL is reported on its second visit; later visits update the count in place.
    """
    counts: Dict[Optional[str], int] = {}
    loops: Dict[Optional[str], Loop] = {}
    for page in sequence:
        counts[page.url] = counts.get(page.url, 0) + 1
        if counts[page.url] == 2:
            loops[page.url] = Loop(url=page.url, visit_count=2)
        elif counts[page.url] > 2:
            loops[page.url].visit_count = counts[page.url]
    return list(loops.values())
