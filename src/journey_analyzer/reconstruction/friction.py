from __future__ import annotations
from typing import List, Optional, Sequence, Tuple
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.validation.events import TrackedEvent
from .journey import FrictionReport, FrictionSeverity, FrictionSignal, Loop
from .ordering import seconds_between
from .sequence import page_views


def detect_confusion_patterns(events: Sequence[TrackedEvent]) -> List[Tuple[Optional[str], Optional[str]]]:
    """A->B->A page triads, one entry per unordered page pair."""
    urls = [e.page_url for e in page_views(events)]
    patterns = []
    seen = set()
    for a, b, c in zip(urls, urls[1:], urls[2:]):
        if a != c or a == b:
            continue
        key = tuple(sorted((a or "", b or "")))
        if key in seen:
            continue
        seen.add(key)
        patterns.append((a, b))
    return patterns


def count_rapid_page_changes(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> int:
    views = page_views(events)
    return sum(
        1 for prev, cur in zip(views, views[1:])
        if seconds_between(prev, cur) < config.rapid_navigation_seconds
    )


def detect_friction(
    events: Sequence[TrackedEvent],
    loops: Sequence[Loop],
    config: Heuristics = DEFAULT_HEURISTICS,
) -> FrictionReport:
    signals: List[FrictionSignal] = []

    rage_clicks = sum(1 for e in events if e.event_type == "rage_click")
    if rage_clicks:
        signals.append(FrictionSignal("rage_clicks", rage_clicks))

    exit_intents = sum(1 for e in events if e.event_type == "exit_intent")
    if exit_intents:
        signals.append(FrictionSignal("exit_intent", exit_intents))

    confusion = detect_confusion_patterns(events)
    if confusion:
        signals.append(FrictionSignal("confusion_loops", len(confusion), tuple(confusion)))

    if loops:
        signals.append(FrictionSignal("page_revisits", len(loops)))

    rapid = count_rapid_page_changes(events, config)
    if rapid >= config.rapid_navigation_min_count:
        signals.append(FrictionSignal("rapid_navigation", rapid))

    if len(signals) >= 3:
        severity = FrictionSeverity.HIGH
    elif len(signals) >= 2:
        severity = FrictionSeverity.MEDIUM
    else:
        severity = FrictionSeverity.LOW

    return FrictionReport(
        detected=len(signals) >= 2 or rage_clicks > 0,
        signals=tuple(signals),
        severity=severity,
    )
