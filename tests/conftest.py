import os
from datetime import datetime, timedelta

# Point the engine at in-memory SQLite before any package module builds it
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy import create_engine, delete
from sqlalchemy.pool import StaticPool

from journey_analyzer.config import reset_settings
from journey_analyzer.infrastructure import db
from journey_analyzer.models.tables import Journey as JourneyRow, JourneyEvent
from journey_analyzer.validation.events import TrackedEvent

reset_settings()

_engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
db.override_engine(_engine)
db.Base.metadata.create_all(_engine)

BASE_TIME = datetime(2024, 3, 4, 9, 0, 0)
CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HOME_IP = "81.2.69.160"


def _row(event_type, at=0, session_id="s1", **fields):
    row = {
        "session_id": session_id,
        "event_type": event_type,
        "occurred_at": BASE_TIME + timedelta(seconds=at),
        "ip_address": HOME_IP,
        "user_agent": CHROME_UA,
        "visitor_id": "v1",
        "site_id": 1,
    }
    row.update(fields)
    return row


@pytest.fixture
def make_event():
    """Build a TrackedEvent ``at`` seconds after a fixed base time."""
    def _make(event_type, at=0, session_id="s1", **fields):
        return TrackedEvent.model_validate(_row(event_type, at, session_id, **fields))
    return _make


@pytest.fixture
def session():
    s = db.SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.execute(delete(JourneyEvent))
        s.execute(delete(JourneyRow))
        s.commit()
        s.close()


@pytest.fixture
def store_events(session):
    """Insert raw event rows; keyword names follow the tracking payload."""
    def _store(*specs):
        for spec in specs:
            spec = dict(spec)
            event_type = spec.pop("event_type")
            at = spec.pop("at", 0)
            session_id = spec.pop("session_id", "s1")
            row = _row(event_type, at, session_id, **spec)
            session.add(JourneyEvent(
                journey_id=row.pop("session_id"),
                event_metadata=row.pop("metadata", None),
                **row,
            ))
        session.commit()
    return _store
