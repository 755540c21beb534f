"""Time-gap session splitting for a single IP address."""
from __future__ import annotations
from typing import Iterable, List, Set
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.reconstruction.builder import reconstruct_journey
from journey_analyzer.reconstruction.journey import Journey
from journey_analyzer.reconstruction.ordering import seconds_between, sort_events
from journey_analyzer.validation.events import TrackedEvent


def split_sessions(events: Iterable[TrackedEvent], config: Heuristics = DEFAULT_HEURISTICS) -> List[List[TrackedEvent]]:
    """Sort and cut the events wherever the gap to the previous event exceeds the session gap."""
    gap = config.session_gap_minutes * 60
    sessions: List[List[TrackedEvent]] = []
    current: List[TrackedEvent] = []
    for event in sort_events(events):
        if current and seconds_between(current[-1], event) > gap:
            sessions.append(current)
            current = []
        current.append(event)
    if current:
        sessions.append(current)
    return sessions


def claim_journey_id(base: str, visit_number: int, claimed: Set[str]) -> str:
    """Primary id for a session; ids already emitted in this run get a ``_p<n>`` suffix."""
    if base not in claimed:
        claimed.add(base)
        return base
    n = visit_number
    candidate = f"{base}_p{n}"
    while candidate in claimed:
        n += 1
        candidate = f"{base}_p{n}"
    claimed.add(candidate)
    return candidate


def consolidate_ip_events(
    events: Iterable[TrackedEvent],
    claimed: Set[str] | None = None,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> List[Journey]:
    """One Journey per gap-separated session of a single IP, numbered by visit."""
    claimed = set() if claimed is None else claimed
    journeys: List[Journey] = []
    for visit_number, session in enumerate(split_sessions(events, config), start=1):
        journey_id = claim_journey_id(session[0].session_id, visit_number, claimed)
        journey = reconstruct_journey(
            session,
            journey_id,
            visit_number=visit_number,
            cap_heartbeats=True,
            config=config,
        )
        if journey is not None:
            journeys.append(journey)
    return journeys
