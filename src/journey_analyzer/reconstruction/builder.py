"""Merge the independent facets of one session into a single ``Journey``.

``reconstruct_journey`` is a pure function of its event list: shuffling the input
does not change the result, and two runs over the same events are identical.
"""
from __future__ import annotations
import math
from collections import Counter
from typing import Iterable, Optional, Sequence
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.detection.scoring import calculate_journey_bot_score
from journey_analyzer.validation.events import TrackedEvent
from .confidence import calculate_confidence
from .engagement import calculate_engagement_metrics
from .friction import detect_friction
from .journey import Journey
from .ordering import seconds_between, sort_events
from .outcome import (
    calculate_intent_strength,
    calculate_time_to_action,
    determine_initial_intent,
    determine_outcome,
)
from .sequence import build_page_sequence, detect_loops


def _first_present(values: Iterable):
    return next((v for v in values if v is not None), None)


def primary_ip(events: Sequence[TrackedEvent]) -> Optional[str]:
    """Most frequent IP; ties go to the one seen first."""
    counts = Counter(e.ip_address for e in events if e.ip_address)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def meaningful_event_count(events: Sequence[TrackedEvent]) -> int:
    """Event count with heartbeats capped at one per elapsed minute of the session."""
    if not events:
        return 0
    heartbeats = sum(1 for e in events if e.event_type == "heartbeat")
    minutes = max(1, math.ceil(seconds_between(events[0], events[-1]) / 60))
    return len(events) - heartbeats + min(heartbeats, minutes)


def reconstruct_journey(
    events: Iterable[TrackedEvent],
    journey_id: Optional[str] = None,
    *,
    visit_number: int = 1,
    cap_heartbeats: bool = False,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Optional[Journey]:
    """Build a Journey from one session's events, or ``None`` if nothing can be ordered."""
    ordered = sort_events(events)
    if not ordered:
        return None

    first, last = ordered[0], ordered[-1]
    sequence = build_page_sequence(ordered)
    loops = detect_loops(sequence)
    metrics = calculate_engagement_metrics(ordered, config)
    time_to_action = calculate_time_to_action(ordered)
    outcome = determine_outcome(ordered, config)
    strength = calculate_intent_strength(ordered, time_to_action, metrics, config)
    event_count = meaningful_event_count(ordered) if cap_heartbeats else len(ordered)

    return Journey(
        journey_id=journey_id or first.session_id,
        visitor_id=_first_present(e.visitor_id for e in ordered),
        visit_number=visit_number,
        first_seen=first.occurred_at,
        last_seen=last.occurred_at,
        entry_page=sequence[0].url if sequence else None,
        entry_referrer=first.referrer,
        initial_intent=determine_initial_intent(ordered, config),
        page_sequence=sequence,
        event_count=event_count,
        outcome=outcome.outcome,
        outcome_detail={
            "raw": outcome.raw,
            "intent_type": outcome.intent_type,
            "strength": strength.value,
        },
        time_to_action=time_to_action,
        loops=loops,
        friction=detect_friction(ordered, loops, config),
        confidence=calculate_confidence(event_count, metrics),
        engagement_metrics=metrics,
        bot=calculate_journey_bot_score(ordered, config),
        site_id=_first_present(e.site_id for e in ordered),
        primary_ip_address=primary_ip(ordered),
    )
