"""Entry intent, final outcome, intent strength and time-to-action.

Outcome rules are evaluated over the whole sorted session in precedence order
(real submit, real form start, meaningful click, any click) and each rule picks the
*last* matching event of its kind. A real submit always wins over clicks, however far
apart in time they are.
"""
from __future__ import annotations
from typing import List, Optional, Sequence
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.validation.events import CLICK_EVENT_TYPES, TrackedEvent
from .engagement import calculate_engagement_metrics
from .forms import classify_form_abandonment
from .journey import EngagementMetrics, Outcome, OutcomeResult, Strength
from .ordering import seconds_between

ACTION_EVENT_TYPES = CLICK_EVENT_TYPES + ("form_start", "form_submit")

HIGH_INTENT_CLICKS = frozenset({
    "book_visit", "enquire", "apply", "prospectus", "demo", "contact", "calculate", "download", "external",
})

# (keywords, intent) checked in order against the entry page URL
URL_INTENT_KEYWORDS = (
    (("admissions", "apply"), "admissions"),
    (("visit", "open-day"), "visit"),
    (("prospectus",), "prospectus"),
    (("contact", "enquire"), "enquire"),
)


def determine_initial_intent(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> str:
    url_intent = None
    first_view = next((e for e in events if e.event_type == "page_view"), None)
    if first_view is not None:
        url = (first_view.page_url or "").lower()
        for keywords, intent in URL_INTENT_KEYWORDS:
            if any(k in url for k in keywords):
                url_intent = intent
                break
    # an early click states intent more reliably than the landing URL
    for e in events[: config.early_event_window]:
        if e.is_click and e.intent_type:
            return e.intent_type
    return url_intent or "browsing"


def _looks_like_search_page(url: Optional[str], config: Heuristics) -> bool:
    lowered = (url or "").lower()
    return any(marker in lowered for marker in config.search_url_markers)


def real_form_submits(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> List[TrackedEvent]:
    """Form submits that were not really a site-search box being submitted."""
    real = []
    for i, e in enumerate(events):
        if e.event_type != "form_submit":
            continue
        following = events[i + 1:]
        is_search = False
        for later in following:
            if seconds_between(e, later) > config.search_exclusion_seconds:
                break
            if later.event_type == "site_search":
                is_search = True
                break
        if not is_search:
            next_view = next((later for later in following if later.event_type == "page_view"), None)
            is_search = next_view is not None and _looks_like_search_page(next_view.page_url, config)
        if not is_search:
            real.append(e)
    return real


def real_form_starts(events: Sequence[TrackedEvent]) -> List[TrackedEvent]:
    if any(e.event_type == "site_search" for e in events):
        return []
    real = []
    for e in events:
        if e.event_type != "form_start":
            continue
        label = " ".join(filter(None, (e.metadata.form_id, e.metadata.form_label, e.cta_label))).lower()
        if "search" in label:
            continue
        real.append(e)
    return real


def determine_outcome(events: Sequence[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> OutcomeResult:
    submits = real_form_submits(events, config)
    if submits:
        last = submits[-1]
        if last.intent_type == "book_visit":
            return OutcomeResult(Outcome.VISIT_BOOKED, "visit_booked", last.intent_type)
        if last.intent_type in ("enquire", "apply"):
            return OutcomeResult(Outcome.ENQUIRY_SUBMITTED, "enquiry_submitted", last.intent_type)
        return OutcomeResult(Outcome.ENQUIRY_SUBMITTED, "form_submitted", last.intent_type)

    if real_form_starts(events):
        return OutcomeResult(classify_form_abandonment(events), "form_abandoned")

    clicks = [e for e in events if e.is_click]
    meaningful = [c for c in clicks if c.intent_type in HIGH_INTENT_CLICKS]
    if meaningful:
        return OutcomeResult(Outcome.ENGAGED, "click_high_intent", meaningful[-1].intent_type)
    if clicks:
        return OutcomeResult(Outcome.ENGAGED, "click_low_intent", clicks[-1].intent_type)

    return OutcomeResult(Outcome.NO_ACTION, "no_action")


def calculate_time_to_action(events: Sequence[TrackedEvent]) -> Optional[int]:
    """Whole seconds from the first event to the first action event, or ``None``."""
    if not events:
        return None
    first_action = next((e for e in events if e.event_type in ACTION_EVENT_TYPES), None)
    if first_action is None:
        return None
    return int(round(seconds_between(events[0], first_action)))


def _time_to_action_points(seconds: Optional[int]) -> int:
    if seconds is None:
        return 0
    if seconds < 10:
        return -2  # too fast, likely accidental
    if seconds < 30:
        return 0
    if seconds < 120:
        return 2
    if seconds < 300:
        return 3
    return 1  # very long, possibly distracted


def calculate_intent_strength(
    events: Sequence[TrackedEvent],
    time_to_action: Optional[int],
    metrics: Optional[EngagementMetrics] = None,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Strength:
    m = metrics or calculate_engagement_metrics(events, config)
    score = _time_to_action_points(time_to_action)

    if m.max_scroll_pct >= 75:
        score += 2
    elif m.max_scroll_pct >= 50:
        score += 1

    if m.section_count >= 3:
        score += 2
    elif m.section_count >= 1:
        score += 1

    if m.dwell_seconds >= 180:
        score += 2
    elif m.dwell_seconds >= 60:
        score += 1

    if m.unique_pages >= 4:
        score += 2
    elif m.unique_pages >= 2:
        score += 1

    if m.total_events >= 15:
        score += 1

    if score >= 7:
        return Strength.HIGH
    if score >= 3:
        return Strength.MEDIUM
    return Strength.LOW
