"""Session-level behavioural bot signals.

Modelled on analytics-style bot filtering: very short or engagement-free sessions,
navigation faster than a human can read, alphabetical crawling, missing heartbeats and
machine-regular event timing.
"""
from __future__ import annotations
from typing import List, Sequence
from urllib.parse import urlsplit
import numpy as np
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.validation.events import TrackedEvent
from .user_agent import SignalResult

ENGAGEMENT_EVENT_TYPES = frozenset({
    "scroll_depth", "section_view", "element_hover", "cta_click", "form_field_focus", "form_field_blur",
})
PAGE_EVENT_TYPES = ("page_view", "pixel_view")
SEQUENTIAL_MIN_URLS = 5
SEQUENTIAL_MATCH_RATIO = 0.8


def _path(url: str) -> str:
    parts = urlsplit(url)
    return parts.path if parts.scheme and parts.netloc else url


def is_sequential_crawl(urls: Sequence[str]) -> bool:
    """True when most visited paths already sit in alphabetical order."""
    if len(urls) < SEQUENTIAL_MIN_URLS:
        return False
    paths = [_path(u) for u in urls]
    ordered = sorted(paths)
    matches = sum(1 for a, b in zip(paths, ordered) if a == b)
    return matches / len(paths) >= SEQUENTIAL_MATCH_RATIO


def _millis(a: TrackedEvent, b: TrackedEvent) -> float:
    return (b.occurred_at - a.occurred_at).total_seconds() * 1000


def _infer_bot_type(signals: List[str]) -> str:
    if "sequential_crawling" in signals or "high_crawl_rate" in signals:
        return "scraper"
    if "uniform_timing" in signals or "impossibly_fast_navigation" in signals:
        return "automation"
    if "single_event_bounce" in signals or "very_short_session_no_engagement" in signals:
        return "bounce_bot"
    if "no_scroll_activity" in signals or "page_views_no_engagement" in signals:
        return "low_engagement"
    return "unknown"


def analyse_journey_behaviour(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> SignalResult:
    """Behaviour score of a sorted session (unweighted, capped at 100)."""
    if not events:
        return SignalResult()

    signals: List[str] = []
    score = 0
    duration = (events[-1].occurred_at - events[0].occurred_at).total_seconds() if len(events) >= 2 else 0

    pages = [e for e in events if e.event_type in PAGE_EVENT_TYPES]
    scrolls = sum(1 for e in events if e.event_type == "scroll_depth")
    clicks = sum(1 for e in events if "click" in e.event_type)
    heartbeats = sum(1 for e in events if e.event_type == "heartbeat")
    engagement = sum(1 for e in events if e.event_type in ENGAGEMENT_EVENT_TYPES)

    # Session duration
    if len(events) == 1:
        signals.append("single_event_bounce")
        score += 40
    if 0 < duration < 10 and engagement == 0:
        signals.append("very_short_session_no_engagement")
        score += 35
    if 0 < duration < 30 and scrolls == 0:
        signals.append("short_session_no_scroll")
        score += 25
    if 10 <= duration < 60 and engagement == 0:
        signals.append("medium_session_no_engagement")
        score += 20
    if duration < 105 and scrolls == 0 and clicks == 0:
        signals.append("below_quality_threshold")
        score += 15

    # Engagement
    if len(events) > 2 and scrolls == 0:
        signals.append("no_scroll_activity")
        score += 20
    if pages and clicks == 0 and duration > 30:
        signals.append("no_click_activity")
        score += 10
    if len(pages) >= 2 and engagement == 0:
        signals.append("page_views_no_engagement")
        score += 25

    # Navigation
    if len(pages) >= 2:
        super_fast = 0
        for prev, cur in zip(pages, pages[1:]):
            gap = _millis(prev, cur)
            if gap < 500:
                super_fast += 1
            if gap < 100:
                score += 15  # definitely scripted
        if super_fast >= 2:
            signals.append("impossibly_fast_navigation")
            score += 25

    urls = [e.page_url for e in pages if e.page_url]
    if is_sequential_crawl(urls):
        signals.append("sequential_crawling")
        score += 20

    if duration > 120 and heartbeats == 0:
        signals.append("no_heartbeats_long_session")
        score += 20

    if len(events) >= 5:
        intervals = np.array([_millis(a, b) for a, b in zip(events, events[1:])], dtype=float)
        if intervals.std() < 100 and intervals.mean() < 2000:
            signals.append("uniform_timing")
            score += 25

    minutes = duration / 60 or 1
    if len(pages) / minutes > config.crawl_rate_pages_per_minute:
        signals.append("high_crawl_rate")
        score += 20

    is_bot = score >= config.behaviour_bot_threshold
    return SignalResult(is_bot, min(score, 100), signals, _infer_bot_type(signals) if is_bot else None)
