"""SQLAlchemy-backed event and journey stores."""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import and_, delete, exists, select
from sqlalchemy.orm import Session
from journey_analyzer.models.tables import Journey as JourneyRow, JourneyEvent
from journey_analyzer.reconstruction.journey import Journey
from journey_analyzer.validation.events import (
    SCHEMA_VERSION,
    TrackedEvent,
    is_known_event_type,
    is_known_intent_type,
    parse_event,
)
from .base import EventStore, JourneyStore

logger = logging.getLogger(__name__)

JOURNEY_COLUMNS = (
    "visitor_id", "visit_number", "first_seen", "last_seen", "entry_page", "entry_referrer",
    "initial_intent", "page_sequence", "event_count", "outcome", "outcome_detail", "time_to_action",
    "loops", "friction", "confidence", "engagement_metrics", "is_bot", "bot_score", "bot_type",
    "bot_signals", "site_id", "primary_ip_address",
)


def _row_to_payload(row: JourneyEvent) -> dict:
    return {
        "id": row.id,
        "session_id": row.journey_id,
        "visitor_id": row.visitor_id,
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "event_type": row.event_type,
        "page_url": row.page_url,
        "referrer": row.referrer,
        "intent_type": row.intent_type,
        "cta_label": row.cta_label,
        "device_type": row.device_type,
        "occurred_at": row.occurred_at,
        "site_id": row.site_id,
        "metadata": row.event_metadata or {},
    }


def journey_values(journey: Journey) -> Dict[str, Any]:
    """Column values for a journey row (timestamps as datetimes, facets as JSON)."""
    data = journey.to_dict()
    data["first_seen"] = journey.first_seen
    data["last_seen"] = journey.last_seen
    return {k: data[k] for k in JOURNEY_COLUMNS}


class SqlEventStore(EventStore):
    def __init__(self, session: Session):
        self.session = session

    def _parse(self, rows: Iterable[JourneyEvent]) -> List[TrackedEvent]:
        events = []
        for row in rows:
            event, error = parse_event(_row_to_payload(row))
            if event is None:
                logger.warning("Skipping unreadable event %s: %s", row.id, error)
                continue
            if not is_known_event_type(event.event_type):
                logger.debug("Event %s has event type %r outside vocabulary %s", row.id, event.event_type, SCHEMA_VERSION)
            if event.intent_type is not None and not is_known_intent_type(event.intent_type):
                logger.debug("Event %s has intent type %r outside vocabulary %s", row.id, event.intent_type, SCHEMA_VERSION)
            events.append(event)
        return events

    def list_events_for_session(self, session_id: str) -> List[TrackedEvent]:
        q = select(JourneyEvent).where(JourneyEvent.journey_id == session_id).order_by(JourneyEvent.occurred_at, JourneyEvent.id)
        return self._parse(self.session.scalars(q))

    def list_events_for_ip(self, ip_address: str, site_id: Optional[int] = None) -> List[TrackedEvent]:
        q = select(JourneyEvent).where(JourneyEvent.ip_address == ip_address)
        if site_id is not None:
            q = q.where(JourneyEvent.site_id == site_id)
        q = q.order_by(JourneyEvent.occurred_at, JourneyEvent.id)
        return self._parse(self.session.scalars(q))

    def list_all_ips(self, site_id: Optional[int] = None) -> List[str]:
        q = select(JourneyEvent.ip_address).where(JourneyEvent.ip_address.is_not(None)).distinct()
        if site_id is not None:
            q = q.where(JourneyEvent.site_id == site_id)
        return sorted(ip for ip in self.session.scalars(q) if ip)

    def list_unique_session_ids(self, since: Optional[datetime] = None) -> List[str]:
        q = select(JourneyEvent.journey_id).distinct()
        if since is not None:
            q = q.where(JourneyEvent.occurred_at >= since)
        return sorted(self.session.scalars(q))


class SqlJourneyStore(JourneyStore):
    def __init__(self, session: Session):
        self.session = session

    def upsert_journey(self, journey: Journey) -> None:
        values = journey_values(journey)
        try:
            row = self.session.get(JourneyRow, journey.journey_id)
            if row is None:
                self.session.add(JourneyRow(journey_id=journey.journey_id, **values))
            else:
                for key, value in values.items():
                    setattr(row, key, value)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def delete_journeys_by_ids(self, journey_ids: Iterable[str]) -> int:
        ids = sorted(set(journey_ids))
        if not ids:
            return 0
        try:
            res = self.session.execute(delete(JourneyRow).where(JourneyRow.journey_id.in_(ids)))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return res.rowcount or 0

    def list_journeys_with_no_ip(self, site_id: Optional[int] = None) -> List[str]:
        """Journeys no IP-bearing event can be attributed to.

        Journeys minted by consolidation (``<id>_p<n>``) have no events under their own id
        but always carry a primary IP, so they are never reported here.
        """
        has_ip_event = exists().where(and_(
            JourneyEvent.journey_id == JourneyRow.journey_id,
            JourneyEvent.ip_address.is_not(None),
        ))
        q = select(JourneyRow.journey_id).where(~has_ip_event, JourneyRow.primary_ip_address.is_(None))
        if site_id is not None:
            q = q.where(JourneyRow.site_id == site_id)
        return sorted(self.session.scalars(q))

    def get_journey(self, journey_id: str) -> Optional[Dict[str, Any]]:
        row = self.session.get(JourneyRow, journey_id)
        if row is None:
            return None
        data = {"journey_id": row.journey_id}
        data.update({k: getattr(row, k) for k in JOURNEY_COLUMNS})
        return data

    def list_journeys(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        site_id: Optional[int] = None,
        include_bots: bool = True,
    ) -> List[Dict[str, Any]]:
        q = select(JourneyRow.journey_id)
        if since is not None:
            q = q.where(JourneyRow.first_seen >= since)
        if until is not None:
            q = q.where(JourneyRow.first_seen <= until)
        if site_id is not None:
            q = q.where(JourneyRow.site_id == site_id)
        if not include_bots:
            q = q.where(JourneyRow.is_bot.is_(False))
        q = q.order_by(JourneyRow.first_seen, JourneyRow.journey_id)
        return [self.get_journey(jid) for jid in self.session.scalars(q)]
