from __future__ import annotations
import logging
from datetime import datetime, timedelta
from celery import shared_task
from prometheus_client import Counter
from sqlalchemy.orm import Session
from journey_analyzer.config import get_settings
from journey_analyzer.consolidation.consolidator import consolidate_sessions as _consolidate
from journey_analyzer.infrastructure import db
from journey_analyzer.pipeline import rebuild_sessions
from journey_analyzer.storage.sql import SqlEventStore, SqlJourneyStore

logger = logging.getLogger(__name__)

JOURNEYS_REBUILT = Counter('journeys_rebuilt_total', 'Journeys re-derived and upserted', ['mode'])
JOURNEY_REBUILD_ERRORS = Counter('journey_rebuild_errors_total', 'Journeys that failed to rebuild', ['mode'])
BOT_JOURNEYS = Counter('journey_bot_detections_total', 'Rebuilt journeys flagged as bots', ['bot_type'])
CONSOLIDATION_SESSIONS = Counter('consolidation_sessions_emitted_total', 'Sessions emitted by IP consolidation')
DUPLICATES_DELETED = Counter('consolidation_duplicates_deleted_total', 'Journeys folded into another session and deleted')
ORPHANS_DELETED = Counter('consolidation_orphans_deleted_total', 'Journeys without any IP-bearing event deleted')


def _rebuild(session: Session, session_ids, mode: str) -> dict:
    summary = rebuild_sessions(SqlEventStore(session), SqlJourneyStore(session), session_ids, get_settings().heuristics)
    journeys = summary.pop("journeys")
    JOURNEYS_REBUILT.labels(mode=mode).inc(len(journeys))
    JOURNEY_REBUILD_ERRORS.labels(mode=mode).inc(len(summary["errors"]))
    for journey in journeys:
        if journey.bot.is_bot:
            BOT_JOURNEYS.labels(bot_type=journey.bot.bot_type or "unknown").inc()
    return summary


@shared_task
def rebuild_recent_journeys(minutes: int | None = None):
    """Re-derive every session that received events inside the rolling cutoff.

    Sessions are rebuilt per session id, so a recent session that IP consolidation had
    folded or renumbered comes back as its own journey with ``visit_number`` 1. Run
    ``consolidate_sessions`` again to re-merge them.
    """
    settings = get_settings()
    window = minutes if minutes is not None else settings.heuristics.incremental_cutoff_minutes
    cutoff = datetime.utcnow() - timedelta(minutes=window)
    session: Session = db.SessionLocal()
    try:
        session_ids = SqlEventStore(session).list_unique_session_ids(since=cutoff)
        return _rebuild(session, session_ids, "incremental")
    finally:
        session.close()


@shared_task
def rebuild_all_journeys():
    session: Session = db.SessionLocal()
    try:
        session_ids = SqlEventStore(session).list_unique_session_ids()
        return _rebuild(session, session_ids, "full")
    finally:
        session.close()


@shared_task
def rebuild_journey(session_id: str):
    session: Session = db.SessionLocal()
    try:
        return _rebuild(session, [session_id], "single")
    finally:
        session.close()


@shared_task
def consolidate_sessions(site_id: int | None = None):
    """Re-segment all events by IP into 30-minute-gap sessions (on demand)."""
    settings = get_settings()
    scope = site_id if site_id is not None else settings.site_id
    session: Session = db.SessionLocal()
    try:
        summary = _consolidate(SqlEventStore(session), SqlJourneyStore(session), scope, settings.heuristics)
        CONSOLIDATION_SESSIONS.inc(summary["sessions"])
        DUPLICATES_DELETED.inc(summary["duplicates_deleted"])
        ORPHANS_DELETED.inc(summary["orphans_deleted"])
        return summary
    finally:
        session.close()


def run_consolidation(site_id: int | None = None):  # non-task wrapper for scripts and tests
    return consolidate_sessions.run(site_id)
