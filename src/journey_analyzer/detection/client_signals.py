"""Analysers for client-reported automation indicators and behaviour summaries.

Each analyser reads the typed event metadata and returns a ``SignalResult`` whose
confidence is an unweighted 0-100 sub-score; weighting happens in ``scoring``.
"""
from __future__ import annotations
from typing import Optional
from journey_analyzer.validation.events import EventMetadata, Fingerprint, MousePatterns, ScrollPatterns
from .user_agent import SignalResult

SUB_SCORE_BOT_THRESHOLD = 40
SUSPICIOUS_RESOLUTIONS = frozenset({"800x600", "1024x768", "0x0", "1x1"})
SOFTWARE_RENDERERS = ("SwiftShader", "llvmpipe")


def _result(score: float, signals: list[str], threshold: int = SUB_SCORE_BOT_THRESHOLD) -> SignalResult:
    return SignalResult(score >= threshold, min(score, 100), signals)


def _gt(value: Optional[float], limit: float) -> bool:
    return value is not None and value > limit


def _lt(value: Optional[float], limit: float) -> bool:
    return value is not None and value < limit


def analyse_client_indicators(metadata: Optional[EventMetadata]) -> SignalResult:
    indicators = metadata.bot_indicators if metadata else None
    if indicators is None:
        return SignalResult()

    signals = []
    score = 0
    if indicators.webdriver is True:
        signals.append("webdriver_detected")
        score += 40
    if indicators.automation_controlled is True:
        signals.append("automation_controlled")
        score += 40
    if indicators.plugins == 0:
        signals.append("no_plugins")
        score += 10
    if indicators.languages is False or (
        isinstance(indicators.languages, (int, float)) and not isinstance(indicators.languages, bool)
        and indicators.languages == 0
    ):
        signals.append("no_languages")
        score += 15
    if indicators.notification_permission == "denied" and indicators.permission_timestamp == 0:
        signals.append("suspicious_permissions")
        score += 10
    # Low weight: some touch laptops report this legitimately
    if indicators.touch_support is True and indicators.device_type == "desktop":
        signals.append("touch_inconsistency")
        score += 5
    return _result(score, signals)


def _fingerprint_of(metadata: Optional[EventMetadata]) -> Optional[Fingerprint]:
    if metadata is None:
        return None
    if metadata.bot_indicators and metadata.bot_indicators.fingerprint:
        return metadata.bot_indicators.fingerprint
    return metadata.fingerprint


def analyse_fingerprint(metadata: Optional[EventMetadata]) -> SignalResult:
    fp = _fingerprint_of(metadata)
    if fp is None:
        return SignalResult()

    signals = []
    score = 0
    if fp.canvas_suspicious:
        signals.append("canvas_suspicious")
        score += 25
    if fp.canvas_error:
        signals.append("canvas_error")
        score += 15
    if fp.webgl_suspicious:
        signals.append("webgl_suspicious")
        score += 30
    if fp.webgl_missing:
        signals.append("webgl_missing")
        score += 20
    if fp.webgl_error:
        signals.append("webgl_error")
        score += 15
    # headless Chrome renders through a software rasteriser
    if fp.webgl_renderer and any(r in fp.webgl_renderer for r in SOFTWARE_RENDERERS):
        signals.append("software_renderer")
        score += 35
    if fp.webgl and not fp.webgl_vendor and not fp.webgl_renderer:
        signals.append("missing_webgl_info")
        score += 15
    if fp.screen_res in SUSPICIOUS_RESOLUTIONS:
        signals.append("suspicious_resolution")
        score += 20
    if not fp.platform:
        signals.append("missing_platform")
        score += 15
    return _result(score, signals)


def _mouse_of(metadata: Optional[EventMetadata]) -> Optional[MousePatterns]:
    if metadata is None:
        return None
    if metadata.bot_indicators and metadata.bot_indicators.mouse_patterns:
        return metadata.bot_indicators.mouse_patterns
    return metadata.mouse_analysis


def analyse_mouse_patterns(metadata: Optional[EventMetadata]) -> SignalResult:
    mouse = _mouse_of(metadata)
    if mouse is None:
        return SignalResult()

    signals = []
    score = 0
    if mouse.no_movement or mouse.total_movements == 0:
        signals.append("no_mouse_movement")
        score += 30
    if mouse.too_straight or _gt(mouse.straight_line_ratio, 0.9):
        signals.append("mouse_too_straight")
        score += 25
    # timing uniformity needs enough movements to mean anything
    if (mouse.uniform_timing or _lt(mouse.timing_variance, 10)) and _gt(mouse.total_movements, 5):
        signals.append("mouse_uniform_timing")
        score += 20
    if _gt(mouse.max_speed, 50):
        signals.append("mouse_too_fast")
        score += 15
    if mouse.total_distance == 0 and _gt(mouse.total_clicks, 0):
        signals.append("mouse_teleport")
        score += 35
    if _lt(mouse.total_movements, 3) and _gt(mouse.total_clicks, 5):
        signals.append("clicks_without_movement")
        score += 25
    return _result(score, signals)


def _scroll_of(metadata: Optional[EventMetadata]) -> Optional[ScrollPatterns]:
    if metadata is None:
        return None
    if metadata.bot_indicators and metadata.bot_indicators.scroll_patterns:
        return metadata.bot_indicators.scroll_patterns
    return metadata.scroll_analysis


def analyse_scroll_patterns(metadata: Optional[EventMetadata]) -> SignalResult:
    scroll = _scroll_of(metadata)
    if scroll is None:
        return SignalResult()

    signals = []
    score = 0
    if scroll.no_scroll or scroll.total_scrolls == 0:
        signals.append("no_scroll")
        score += 20
    if (scroll.too_uniform or _lt(scroll.timing_variance, 5)) and _gt(scroll.total_scrolls, 5):
        signals.append("scroll_too_uniform")
        score += 25
    if (scroll.no_direction_change or scroll.direction_changes == 0) and _gt(scroll.total_scrolls, 5):
        signals.append("scroll_one_direction")
        score += 15
    if _gt(scroll.max_speed, 100):
        signals.append("scroll_too_fast")
        score += 20
    if _gt(scroll.uniform_count, 10):
        signals.append("scroll_programmatic")
        score += 30
    return _result(score, signals)


def analyse_honeypot(metadata: Optional[EventMetadata]) -> SignalResult:
    """An interaction with an element invisible to humans is proof of automation."""
    indicators = metadata.bot_indicators if metadata else None
    if indicators is None or indicators.honeypot_clicked is not True:
        return SignalResult()
    return SignalResult(True, 100, ["honeypot_triggered"], "scraper")


def analyse_js_challenge(metadata: Optional[EventMetadata]) -> SignalResult:
    indicators = metadata.bot_indicators if metadata else None
    if indicators is None:
        return SignalResult()

    signals = []
    score = 0
    if indicators.js_challenge_passed is False:
        signals.append("js_challenge_failed")
        score += 30
        failures = indicators.js_challenge_failures
        if failures is None and indicators.js_challenge is not None:
            failures = indicators.js_challenge.failures
        failures = failures or ()
        signals.extend(f"js_fail:{f}" for f in failures)
        score += min(len(failures) * 10, 40)
    if indicators.timing_anomaly is True:
        signals.append("timing_anomaly")
        score += 25
    return _result(score, signals)
