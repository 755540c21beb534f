"""Weighted bot verdicts for single events and whole journeys.

Signal families are independently weighted so one noisy signal cannot flip the
verdict on its own; deterministic proof (a known bot user agent, a honeypot hit)
short-circuits to a high or maximal score.
"""
from __future__ import annotations
import math
from typing import Iterable, List, Optional, Sequence
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.reconstruction.journey import BotVerdict
from journey_analyzer.validation.events import EventMetadata, TrackedEvent
from .behaviour import analyse_journey_behaviour
from .client_signals import (
    analyse_client_indicators,
    analyse_fingerprint,
    analyse_honeypot,
    analyse_js_challenge,
    analyse_mouse_patterns,
    analyse_scroll_patterns,
)
from .user_agent import GOOD_BOT_TYPES, analyse_ip, analyse_user_agent


def _bounded(total: float) -> int:
    return max(0, min(100, int(math.floor(total + 0.5))))


def _unique(signals: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(signals))


def detect_bot_for_event(
    user_agent: Optional[str],
    ip_address: Optional[str],
    metadata: Optional[EventMetadata] = None,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> BotVerdict:
    """Score one event in isolation (used for pixel-only captures)."""
    honeypot = analyse_honeypot(metadata)
    if honeypot.is_bot:
        return BotVerdict(True, 100, honeypot.bot_type, tuple(honeypot.signals))

    w = config.event_weights
    signals: List[str] = []
    total = 0.0
    detected_type = None

    ua = analyse_user_agent(user_agent)
    signals.extend(ua.signals)
    total += ua.confidence * w.user_agent
    detected_type = ua.bot_type

    ip = analyse_ip(ip_address)
    signals.extend(ip.signals)
    if ip.is_bot:
        total += w.datacenter_flat

    for result, weight, implies_automation in (
        (analyse_client_indicators(metadata), w.client_indicators, True),
        (analyse_fingerprint(metadata), w.fingerprint, True),
        (analyse_mouse_patterns(metadata), w.mouse, True),
        (analyse_scroll_patterns(metadata), w.scroll, False),
        (analyse_js_challenge(metadata), w.js_challenge, True),
    ):
        signals.extend(result.signals)
        total += result.confidence * weight
        if implies_automation and result.is_bot and not detected_type:
            detected_type = "automation"

    score = _bounded(total)
    is_bot = score >= config.bot_threshold or (ua.is_bot and ua.confidence >= config.ua_override_confidence)
    return BotVerdict(is_bot, score, (detected_type or "unknown") if is_bot else None, _unique(signals))


def calculate_journey_bot_score(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> BotVerdict:
    """Score a whole sorted session; an empty session scores 0."""
    if not events:
        return BotVerdict()

    for e in events:
        honeypot = analyse_honeypot(e.metadata)
        if honeypot.is_bot:
            return BotVerdict(True, 100, honeypot.bot_type, tuple(honeypot.signals))

    w = config.journey_weights
    signals: List[str] = []
    total = 0.0
    detected_type = None

    source = next((e for e in events if e.event_type == "page_view"), events[0])
    ua = analyse_user_agent(source.user_agent)
    signals.extend(ua.signals)
    total += ua.confidence * w.user_agent
    detected_type = ua.bot_type

    ip = analyse_ip(source.ip_address)
    signals.extend(ip.signals)
    if ip.is_bot:
        total += w.datacenter_flat

    behaviour = analyse_journey_behaviour(events, config)
    signals.extend(behaviour.signals)
    total += behaviour.confidence * w.behaviour
    if behaviour.bot_type and not detected_type:
        detected_type = behaviour.bot_type

    # only the first event that carries client indicators counts
    reporting = next((e for e in events if e.metadata.bot_indicators is not None), None)
    if reporting is not None:
        client = analyse_client_indicators(reporting.metadata)
        signals.extend(client.signals)
        total += client.confidence * w.client_indicators
        if client.is_bot and not detected_type:
            detected_type = "automation"

    score = _bounded(total)

    if detected_type in GOOD_BOT_TYPES:
        return BotVerdict(True, max(score, config.good_bot_floor), detected_type, _unique(signals))

    types = {e.event_type for e in events}
    if "pixel_view" in types and "page_view" not in types:
        # the tracking script never ran; real browsers execute it
        signals.append("pixel_only_no_js")
        return BotVerdict(True, max(score, config.pixel_only_floor), detected_type or "no_javascript", _unique(signals))

    is_bot = score >= config.bot_threshold or (ua.is_bot and ua.confidence >= config.ua_override_confidence)
    return BotVerdict(is_bot, score, (detected_type or "unknown") if is_bot else None, _unique(signals))
