from __future__ import annotations
import logging
from typing import Iterable, List
from journey_analyzer.validation.events import TrackedEvent

logger = logging.getLogger(__name__)


def _order_key(e: TrackedEvent):
    # Store ids break timestamp ties; numeric ids first, then text ids, then none
    if e.id is None:
        return (e.occurred_at, 2, 0, "")
    if isinstance(e.id, (int, float)):
        return (e.occurred_at, 0, e.id, "")
    return (e.occurred_at, 1, 0, str(e.id))


def sort_events(events: Iterable[TrackedEvent]) -> List[TrackedEvent]:
    """Return events ascending by ``occurred_at`` then store ``id``; never trust upstream ordering.

    The sort is stable, so events tying on both keep their input order. Events
    without a usable timestamp cannot be ordered and are left out.
    """
    timed = []
    dropped = 0
    for e in events:
        if e.occurred_at is None:
            dropped += 1
            continue
        timed.append(e)
    if dropped:
        logger.warning("Excluded %d event(s) without a usable timestamp", dropped)
    return sorted(timed, key=_order_key)


def seconds_between(earlier: TrackedEvent, later: TrackedEvent) -> float:
    return (later.occurred_at - earlier.occurred_at).total_seconds()
