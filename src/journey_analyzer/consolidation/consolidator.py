"""Full re-segmentation of the event log by IP address.

Every IP's events are gathered across all recorded session ids, split on 30-minute
gaps and rebuilt as one journey per session. Session ids folded into another session
are deleted afterwards, unless an IP failed, in which case the next full run removes
them. Journeys no IP-bearing event can be attributed to are deleted as well.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Set
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics
from journey_analyzer.storage.base import EventStore, JourneyStore
from .sessions import consolidate_ip_events

logger = logging.getLogger(__name__)


def consolidate_sessions(
    event_store: EventStore,
    journey_store: JourneyStore,
    site_id: Optional[int] = None,
    config: Heuristics = DEFAULT_HEURISTICS,
) -> Dict[str, Any]:
    claimed: Set[str] = set()
    folded: Set[str] = set()
    errors: List[Dict[str, str]] = []
    ips = event_store.list_all_ips(site_id)
    emitted = 0
    bots = 0

    for ip in ips:
        try:
            events = event_store.list_events_for_ip(ip, site_id)
            journeys = consolidate_ip_events(events, claimed, config)
            for journey in journeys:
                journey_store.upsert_journey(journey)
            emitted += len(journeys)
            bots += sum(1 for j in journeys if j.bot.is_bot)
            folded.update(e.session_id for e in events)
        except Exception as exc:  # one IP must not abort the run
            logger.warning("Consolidation failed for IP %s: %s", ip, exc)
            errors.append({"ip": ip, "error": str(exc)})

    # A failed IP never claimed its ids, so any of them could look folded
    duplicates_deleted = 0
    if errors:
        logger.warning("Duplicate cleanup deferred: %d IP(s) failed", len(errors))
    else:
        duplicates_deleted = journey_store.delete_journeys_by_ids(folded - claimed)
    orphans = journey_store.list_journeys_with_no_ip(site_id)
    orphans_deleted = journey_store.delete_journeys_by_ids(orphans)

    logger.info(
        "Consolidated %d IPs into %d sessions (%d bots); deleted %d duplicates and %d orphans",
        len(ips), emitted, bots, duplicates_deleted, orphans_deleted,
    )
    return {
        "status": "ok" if not errors else "partial",
        "ips": len(ips),
        "sessions": emitted,
        "bots": bots,
        "duplicates_deleted": duplicates_deleted,
        "orphans_deleted": orphans_deleted,
        "errors": errors,
    }
