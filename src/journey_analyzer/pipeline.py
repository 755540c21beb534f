"""Store-driven entry points: rebuild sessions by id and look journeys up with their events."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, Optional
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.reconstruction.builder import reconstruct_journey
from journey_analyzer.reconstruction.journey import Journey
from journey_analyzer.reconstruction.ordering import sort_events
from journey_analyzer.storage.base import EventStore, JourneyStore

logger = logging.getLogger(__name__)


def reconstruct_session(
    event_store: EventStore,
    journey_store: JourneyStore,
    session_id: str,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Optional[Journey]:
    """Rebuild and upsert one session; ``None`` when it has no orderable events."""
    journey = reconstruct_journey(event_store.list_events_for_session(session_id), session_id, config=config)
    if journey is None:
        logger.warning("Session %s has no orderable events; skipped", session_id)
        return None
    journey_store.upsert_journey(journey)
    return journey


def rebuild_sessions(
    event_store: EventStore,
    journey_store: JourneyStore,
    session_ids: Iterable[str],
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Dict[str, Any]:
    """Rebuild each session independently; the summary also carries the rebuilt ``journeys``."""
    processed = 0
    rebuilt = []
    errors = []
    for session_id in session_ids:
        processed += 1
        try:
            journey = reconstruct_session(event_store, journey_store, session_id, config)
        except Exception as exc:  # skip and continue; the next scheduled run retries
            logger.warning("Failed to rebuild journey %s: %s", session_id, exc)
            errors.append({"journey_id": session_id, "error": str(exc)})
            continue
        if journey is not None:
            rebuilt.append(journey)
    logger.info("Rebuilt %d of %d journeys (%d errors)", len(rebuilt), processed, len(errors))
    return {
        "status": "ok" if not errors else "partial",
        "processed": processed,
        "updated": len(rebuilt),
        "errors": errors,
        "journeys": rebuilt,
    }


def get_journey_with_events(
    event_store: EventStore,
    session_id: str,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Optional[Dict[str, Any]]:
    """Reconstructed journey plus its chronologically sorted events, for drill-down views."""
    events = sort_events(event_store.list_events_for_session(session_id))
    journey = reconstruct_journey(events, session_id, config=config)
    if journey is None:
        return None
    return {
        "journey": journey.to_dict(),
        "events": [e.model_dump(mode="json", exclude_none=True) for e in events],
    }
